"""
tree_evolution - Genetic programming on flat postfix expression trees

Trees are stored as postfix node arrays with per-node length/arity/depth/parent
bookkeeping and Merkle-style structural hashes. Offspring are produced by
policy-driven recombinators (strict offspring selection or elitist plus).
"""

__version__ = "0.1.0"
__author__ = "Tree Evolution Project"

from .hashing import Hasher, HashFunction, HashMode
from .nodes import (
    Node,
    UNARY_OPS, BINARY_OPS, COMMUTATIVE_OPS
)
from .tree import Tree, SubtreeIterator
from .individual import Individual
from .operators import (
    EvaluatorBase, SelectorBase, CrossoverBase, MutatorBase,
    GrowTreeCreator, TournamentSelector, RandomSelector, SubtreeCrossover,
    OnePointMutation, ChangeFunctionMutation, ChangeVariableMutation, MultiMutation
)
from .evaluator import Interpreter, Evaluator
from .recombinator import RecombinatorBase, OffspringSelectionRecombinator, PlusRecombinator
from .population import Population
from .config import GPConfig

__all__ = [
    'Hasher', 'HashFunction', 'HashMode',
    'Node', 'UNARY_OPS', 'BINARY_OPS', 'COMMUTATIVE_OPS',
    'Tree', 'SubtreeIterator',
    'Individual',
    'EvaluatorBase', 'SelectorBase', 'CrossoverBase', 'MutatorBase',
    'GrowTreeCreator', 'TournamentSelector', 'RandomSelector', 'SubtreeCrossover',
    'OnePointMutation', 'ChangeFunctionMutation', 'ChangeVariableMutation', 'MultiMutation',
    'Interpreter', 'Evaluator',
    'RecombinatorBase', 'OffspringSelectionRecombinator', 'PlusRecombinator',
    'Population',
    'GPConfig'
]
