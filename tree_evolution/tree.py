"""
tree_evolution/tree.py - Flat postfix tree representation, hashing and canonicalization
"""
from typing import Iterable, Iterator, List, Optional, Sequence

import numpy as np

from .hashing import DEFAULT_HASHER, Hasher, HashMode, pack_hashes, pack_leaf
from .nodes import Node


class SubtreeIterator:
    """Restartable cursor over the direct children of one node.

    Children are yielded as storage indices, rightmost child first. Each step
    jumps over the current child's whole subtree (``length + 1`` slots); the
    walk ends as soon as the index leaves the parent's subtree range
    ``[i - length(i), i)``. Only stored lengths are consulted, so the
    bookkeeping must be current.
    """

    def __init__(self, nodes: Sequence[Node], index: int):
        self._nodes = nodes
        self.parent_index = index

    def __iter__(self) -> Iterator[int]:
        nodes = self._nodes
        i = self.parent_index
        lower = i - nodes[i].length
        assert 0 <= lower <= i < len(nodes), f"stale bookkeeping at node {i}"
        j = i - 1
        while j >= lower:
            yield j
            j -= nodes[j].length + 1


class Tree:
    """Expression tree stored as a flat list of nodes in postfix order.

    The root is always the last node. A freshly constructed tree is not
    self-consistent until ``update_nodes`` has run; every structural edit must
    be followed by another call.
    """

    def __init__(self, nodes: Optional[Iterable[Node]] = None):
        self._nodes: List[Node] = list(nodes) if nodes is not None else []

    @property
    def nodes(self) -> List[Node]:
        return self._nodes

    def __getitem__(self, i: int) -> Node:
        return self._nodes[i]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Tree):
            return NotImplemented
        return self._nodes == other._nodes

    __hash__ = None

    # Queries read off the root's bookkeeping

    @property
    def empty(self) -> bool:
        return not self._nodes

    @property
    def length(self) -> int:
        """Total node count"""
        return self._nodes[-1].length + 1 if self._nodes else 0

    @property
    def depth(self) -> int:
        return self._nodes[-1].depth if self._nodes else 0

    @property
    def hash_value(self) -> int:
        return self._nodes[-1].calculated_hash_value if self._nodes else 0

    @property
    def visitation_length(self) -> int:
        """Sum of all subtree sizes"""
        return sum(node.length + 1 for node in self._nodes)

    @property
    def coefficients_count(self) -> int:
        return sum(1 for node in self._nodes if node.is_leaf)

    # Navigation

    def children(self, i: int) -> SubtreeIterator:
        return SubtreeIterator(self._nodes, i)

    def child_indices(self, i: int) -> List[int]:
        if self._nodes[i].is_leaf:
            return []
        return list(self.children(i))

    def level(self, i: int) -> int:
        """Distance from node i to the root, following parent links"""
        level = 0
        while self._nodes[i].parent is not None:
            i = self._nodes[i].parent
            level += 1
        return level

    # Bookkeeping and structural edits

    def update_nodes(self) -> 'Tree':
        """Recompute length, depth and parent of every node in one pass.

        Arity is taken as given. Children always precede their parent, so
        their fields are already up to date when the parent is reached.
        """
        nodes = self._nodes
        for i, node in enumerate(nodes):
            node.parent = None
            node.depth = 1
            node.length = 0
            if node.is_leaf:
                continue
            j = i - 1
            for _ in range(node.arity):
                assert j >= 0, f"node {i} has fewer than {node.arity} operands"
                child = nodes[j]
                node.length += child.length + 1
                node.depth = max(node.depth, child.depth + 1)
                child.parent = i
                j -= child.length + 1
        assert not nodes or nodes[-1].length == len(nodes) - 1, "node sequence has more than one root"
        return self

    def subtree(self, i: int) -> 'Tree':
        """Independent copy of the subtree rooted at node i"""
        node = self._nodes[i]
        return Tree(n.copy() for n in self._nodes[i - node.length:i + 1]).update_nodes()

    def set_enabled(self, i: int, enabled: bool) -> None:
        for j in range(i - self._nodes[i].length, i + 1):
            self._nodes[j].is_enabled = enabled

    def copy(self) -> 'Tree':
        return Tree(node.copy() for node in self._nodes)

    # Coefficients

    def get_coefficients(self) -> np.ndarray:
        return np.array([node.value for node in self._nodes if node.is_leaf], dtype=np.float64)

    def set_coefficients(self, coefficients: Sequence[float]) -> None:
        leaves = [node for node in self._nodes if node.is_leaf]
        if len(coefficients) != len(leaves):
            raise ValueError(f"Expected {len(leaves)} coefficients, got {len(coefficients)}")
        for node, value in zip(leaves, coefficients):
            node.value = float(value)

    # Structural hashing and canonicalization

    def _canonical_children(self, i: int) -> List[int]:
        children = list(self.children(i))
        if self._nodes[i].is_commutative:
            children.sort(key=self._child_key)
        return children

    def _child_key(self, j: int):
        # subtree values break ties between relaxed hashes that ignore them
        nodes = self._nodes
        values = tuple(n.value for n in nodes[j - nodes[j].length:j + 1])
        return nodes[j].sort_key(), values

    def _leaf_hash(self, node: Node, hasher: Hasher, mode: HashMode) -> int:
        if mode is HashMode.STRICT:
            return hasher(pack_leaf(node.hash_value, node.value))
        return node.hash_value

    def hash(self, hasher: Optional[Hasher] = None, mode: HashMode = HashMode.STRICT) -> 'Tree':
        """Compute every node's structural hash, leaves towards the root.

        An internal node hashes its children's hashes followed by its own
        static hash. Children of commutative nodes are taken in canonical
        order so operand order does not change the result.
        """
        hasher = hasher or DEFAULT_HASHER
        mode = HashMode(mode)
        nodes = self._nodes
        for i, node in enumerate(nodes):
            if node.is_leaf:
                node.calculated_hash_value = self._leaf_hash(node, hasher, mode)
                continue
            hashes = [nodes[j].calculated_hash_value for j in self._canonical_children(i)]
            hashes.append(node.hash_value)
            node.calculated_hash_value = hasher(pack_hashes(hashes))
        return self

    def sort(self, strict: bool = True, hasher: Optional[Hasher] = None) -> 'Tree':
        """Physically reorder the operands of commutative nodes into canonical order.

        Hashes are computed on the way up, exactly as ``hash`` does, so two
        trees that differ only in commutative operand order end up with
        identical node sequences.
        """
        hasher = hasher or DEFAULT_HASHER
        mode = HashMode.STRICT if strict else HashMode.RELAXED
        nodes = self._nodes
        for i in range(len(nodes)):
            node = nodes[i]
            if node.is_leaf:
                node.calculated_hash_value = self._leaf_hash(node, hasher, mode)
                continue
            children = self._canonical_children(i)
            hashes = [nodes[j].calculated_hash_value for j in children]
            hashes.append(node.hash_value)
            if node.is_commutative:
                blocks = [nodes[j - nodes[j].length:j + 1] for j in children]
                nodes[i - node.length:i] = [n for block in blocks for n in block]
            node.calculated_hash_value = hasher(pack_hashes(hashes))
        return self.update_nodes()

    def reduce(self) -> 'Tree':
        """Fold nested children of the same commutative operation into their parent.

        A child is absorbed when its static hash equals the parent's, e.g.
        ``add(add(x, y), z)`` becomes ``add(x, y, z)``. Absorbed nodes are
        disabled, then removed.
        """
        nodes = self._nodes
        reduced = False
        for i, node in enumerate(nodes):
            if node.is_leaf or not node.is_commutative:
                continue
            for j in self.children(i):
                child = nodes[j]
                if not child.is_leaf and child.hash_value == node.hash_value:
                    child.is_enabled = False
                    node.arity += child.arity - 1
                    reduced = True
        if reduced:
            self._nodes = [node for node in nodes if node.is_enabled]
        return self.update_nodes()

    def __str__(self):
        return ' '.join(str(node) for node in self._nodes)

    def __repr__(self):
        return f"Tree(length={len(self)}, depth={self.depth})"
