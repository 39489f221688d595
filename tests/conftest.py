"""
Shared fixtures for the tree_evolution test suite.
"""

import numpy as np
import pytest

from tree_evolution import GrowTreeCreator, Node, Tree


def x():
    return Node.variable('x')


def y():
    return Node.variable('y')


def c(value):
    return Node.constant(value)


def f(name, arity=None):
    return Node.function(name, arity)


def build(*nodes):
    """Build a tree from nodes listed in postfix order."""
    return Tree(nodes).update_nodes()


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def sample_tree():
    """x + y * 2  ->  x y 2 * +"""
    return build(x(), y(), c(2.0), f('mul'), f('add'))


@pytest.fixture
def random_trees():
    """A batch of random trees over two inputs."""
    random = np.random.default_rng(7)
    creator = GrowTreeCreator(['x', 'y'])
    return [creator(random, max_depth=int(random.integers(2, 8))) for _ in range(50)]


@pytest.fixture
def data():
    random = np.random.default_rng(0)
    X = random.uniform(-1.0, 1.0, size=(30, 2))
    return X, {'x': 0, 'y': 1}
