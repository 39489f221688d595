"""
Unit tests for the flat postfix tree: bookkeeping, the child cursor,
subtree extraction and the O(1) queries.
"""

import numpy as np
import pytest

from conftest import build, c, f, x, y
from tree_evolution import Interpreter, Node, Tree


def snapshot(tree):
    return [(n.arity, n.length, n.depth, n.parent) for n in tree]


class TestBookkeeping:
    """Test length/depth/parent recomputation."""

    def test_sample_tree_fields(self, sample_tree):
        assert [n.length for n in sample_tree] == [0, 0, 0, 2, 4]
        assert [n.depth for n in sample_tree] == [1, 1, 1, 2, 3]
        assert [n.parent for n in sample_tree] == [4, 3, 3, 4, None]
        assert [n.arity for n in sample_tree] == [0, 0, 0, 2, 2]

    def test_update_is_idempotent(self, random_trees):
        for tree in random_trees:
            first = snapshot(tree.update_nodes())
            second = snapshot(tree.update_nodes())
            assert first == second

    def test_not_consistent_until_updated(self):
        tree = Tree([x(), y(), f('add')])
        assert tree[-1].parent is None
        assert tree[0].parent is None
        tree.update_nodes()
        assert tree[0].parent == 2
        assert tree[1].parent == 2

    def test_nary_node(self):
        tree = build(x(), y(), c(1.0), f('add', 3))
        assert tree[-1].length == 3
        assert tree.child_indices(3) == [2, 1, 0]

    def test_malformed_sequence_fails_fast(self):
        with pytest.raises(AssertionError):
            Tree([x(), f('add')]).update_nodes()

    def test_forest_fails_fast(self):
        with pytest.raises(AssertionError):
            Tree([x(), y()]).update_nodes()


class TestChildCursor:
    """Test the arithmetic child iterator."""

    def test_rightmost_first(self, sample_tree):
        assert list(sample_tree.children(4)) == [3, 0]
        assert list(sample_tree.children(3)) == [2, 1]

    def test_leaf_has_no_children(self, sample_tree):
        assert list(sample_tree.children(0)) == []
        assert sample_tree.child_indices(2) == []

    def test_restartable(self, sample_tree):
        cursor = sample_tree.children(4)
        assert list(cursor) == list(cursor) == [3, 0]

    def test_stays_inside_parent_range(self, random_trees):
        for tree in random_trees:
            for i, node in enumerate(tree):
                for j in tree.children(i):
                    assert i - node.length <= j < i

    def test_postfix_well_formed(self, random_trees):
        for tree in random_trees:
            for i, node in enumerate(tree):
                children = list(tree.children(i))
                assert len(children) == node.arity
                assert sum(tree[j].length + 1 for j in children) == node.length
            assert tree[-1].length + 1 == len(tree)
            assert tree.length == len(tree)

    def test_stale_bookkeeping_fails_fast(self):
        tree = build(x(), y(), f('add'))
        tree[2].length = 7
        with pytest.raises(AssertionError):
            list(tree.children(2))


class TestSubtree:
    """Test subtree extraction."""

    def test_extract_inner_subtree(self, sample_tree):
        sub = sample_tree.subtree(3)
        assert [n.name for n in sub] == ['y', 'constant', 'mul']
        assert sub[-1].parent is None
        assert sub.length == 3

    def test_extraction_is_independent(self, sample_tree):
        sub = sample_tree.subtree(3)
        sub[0].value = 10.0
        assert sample_tree[1].value == 1.0

    def test_every_index(self, random_trees, data):
        X, variables = data
        interpreter = Interpreter()
        for tree in random_trees:
            for i, node in enumerate(tree):
                sub = tree.subtree(i)
                assert sub[-1].length == node.length
                assert len(sub) == node.length + 1
                original = tree.nodes[i - node.length:i + 1]
                assert [(n.name, n.arity, n.length, n.depth, n.value) for n in sub] == \
                       [(n.name, n.arity, n.length, n.depth, n.value) for n in original]
                expected = interpreter.evaluate(Tree(n.copy() for n in original).update_nodes(), X, variables)
                np.testing.assert_array_equal(interpreter.evaluate(sub, X, variables), expected)


class TestQueries:
    """Test O(1) queries, levels and coefficients."""

    def test_queries(self, sample_tree):
        assert len(sample_tree) == 5
        assert sample_tree.length == 5
        assert sample_tree.depth == 3
        assert not sample_tree.empty
        assert sample_tree.visitation_length == 11

    def test_empty_tree(self):
        tree = Tree()
        assert tree.empty
        assert tree.length == 0
        assert tree.depth == 0
        assert tree.hash_value == 0

    def test_level(self, sample_tree):
        assert sample_tree.level(4) == 0
        assert sample_tree.level(3) == 1
        assert sample_tree.level(0) == 1
        assert sample_tree.level(1) == 2

    def test_set_enabled(self, sample_tree):
        sample_tree.set_enabled(3, False)
        assert [n.is_enabled for n in sample_tree] == [True, False, False, False, True]
        sample_tree.set_enabled(3, True)
        assert all(n.is_enabled for n in sample_tree)

    def test_coefficients(self, sample_tree):
        assert sample_tree.coefficients_count == 3
        np.testing.assert_array_equal(sample_tree.get_coefficients(), [1.0, 1.0, 2.0])
        sample_tree.set_coefficients([0.5, 1.5, 3.0])
        assert sample_tree[2].value == 3.0
        with pytest.raises(ValueError):
            sample_tree.set_coefficients([1.0])

    def test_copy_and_equality(self, sample_tree):
        clone = sample_tree.copy()
        assert clone == sample_tree
        clone[0].value = 4.0
        assert clone != sample_tree

    def test_str(self, sample_tree):
        assert str(sample_tree) == 'x y 2.000 * +'


class TestNode:
    """Test node construction."""

    def test_unknown_function(self):
        with pytest.raises(ValueError, match="Unknown function"):
            Node.function('frobnicate')

    def test_unary_arity(self):
        with pytest.raises(ValueError):
            Node.function('sin', 2)

    def test_terminal_without_children(self):
        with pytest.raises(ValueError):
            Node('constant', 'constant', arity=1)

    def test_commutativity(self):
        assert f('add').is_commutative
        assert f('mul').is_commutative
        assert not f('sub').is_commutative
        assert not x().is_commutative

    def test_static_hash_identifies_symbol(self):
        assert f('add').hash_value == f('add').hash_value
        assert f('add').hash_value != f('mul').hash_value
        assert x().hash_value != y().hash_value
        assert c(1.0).hash_value == c(2.0).hash_value
