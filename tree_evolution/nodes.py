"""
tree_evolution/nodes.py - Postfix tree nodes and the primitive set
"""
from typing import Optional

from .hashing import DEFAULT_HASHER

# Primitive sets for random generation
UNARY_OPS = ['exp', 'log', 'sin', 'cos', 'tanh', 'sqrt', 'abs', 'square']
BINARY_OPS = ['add', 'sub', 'mul', 'div', 'fmin', 'fmax']
COMMUTATIVE_OPS = {'add', 'mul', 'fmin', 'fmax'}

SYMBOLS = {
    'add': '+', 'sub': '-', 'mul': '*', 'div': '/',
    'fmin': 'min', 'fmax': 'max',
}

FUNCTION = 'function'
CONSTANT = 'constant'
VARIABLE = 'variable'


class Node:
    """One operation or terminal of a postfix-encoded tree.

    Besides the symbol itself a node carries the bookkeeping that the owning
    tree recomputes after every structural edit:

    - ``arity``: number of direct children
    - ``length``: number of nodes below this one (0 for leaves), so the
      subtree of node ``i`` spans indices ``i - length .. i``
    - ``depth``: 1 for leaves, 1 + deepest child otherwise
    - ``parent``: index of the parent node, ``None`` for the root
    - ``hash_value``: static hash identifying the symbol
    - ``calculated_hash_value``: structural hash of the subtree rooted here
    """

    __slots__ = ('kind', 'name', 'arity', 'length', 'depth', 'parent',
                 'hash_value', 'calculated_hash_value', 'value', 'is_enabled')

    def __init__(self, kind: str, name: str, arity: int = 0, value: float = 1.0,
                 hash_value: Optional[int] = None):
        if kind not in (FUNCTION, CONSTANT, VARIABLE):
            raise ValueError(f"Unknown node kind: {kind}")
        if kind == FUNCTION and arity < 1:
            raise ValueError(f"Function node '{name}' needs at least one child")
        if kind != FUNCTION and arity != 0:
            raise ValueError(f"Terminal node '{name}' cannot have children")

        self.kind = kind
        self.name = name
        self.arity = arity
        self.length = arity
        self.depth = 1
        self.parent = None
        # keyed on kind and name: a variable called "add" is not the add operation
        if hash_value is None:
            hash_value = DEFAULT_HASHER.symbol(f"{kind}:{name}")
        self.hash_value = hash_value
        self.calculated_hash_value = self.hash_value
        self.value = float(value)
        self.is_enabled = True

    @classmethod
    def function(cls, name: str, arity: Optional[int] = None) -> 'Node':
        if name in UNARY_OPS:
            if arity not in (None, 1):
                raise ValueError(f"Unary function '{name}' takes exactly one child")
            return cls(FUNCTION, name, 1)
        if name in BINARY_OPS:
            return cls(FUNCTION, name, 2 if arity is None else arity)
        raise ValueError(f"Unknown function: {name}")

    @classmethod
    def constant(cls, value: float) -> 'Node':
        return cls(CONSTANT, CONSTANT, 0, value)

    @classmethod
    def variable(cls, name: str, weight: float = 1.0) -> 'Node':
        return cls(VARIABLE, name, 0, weight)

    @property
    def is_leaf(self) -> bool:
        return self.arity == 0

    @property
    def is_constant(self) -> bool:
        return self.kind == CONSTANT

    @property
    def is_variable(self) -> bool:
        return self.kind == VARIABLE

    @property
    def is_commutative(self) -> bool:
        return self.kind == FUNCTION and self.name in COMMUTATIVE_OPS

    @property
    def size(self) -> int:
        """Subtree size including this node"""
        return self.length + 1

    def sort_key(self):
        return (self.hash_value, self.calculated_hash_value, self.length, self.value)

    def copy(self) -> 'Node':
        node = Node.__new__(Node)
        for slot in Node.__slots__:
            setattr(node, slot, getattr(self, slot))
        return node

    def __lt__(self, other: 'Node') -> bool:
        return self.sort_key() < other.sort_key()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return all(getattr(self, slot) == getattr(other, slot) for slot in Node.__slots__)

    __hash__ = None

    def __str__(self):
        if self.kind == CONSTANT:
            return f"{self.value:.3f}"
        if self.kind == VARIABLE:
            return self.name if self.value == 1.0 else f"{self.value:.3f}*{self.name}"
        return SYMBOLS.get(self.name, self.name)

    def __repr__(self):
        return (f"Node({self.name!r}, arity={self.arity}, length={self.length}, "
                f"depth={self.depth}, parent={self.parent})")
