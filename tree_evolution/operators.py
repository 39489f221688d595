"""
tree_evolution/operators.py - Collaborator interfaces and default genetic operators

The recombinators are composed from four narrow roles (evaluator, selector,
crossover, mutator). The abstract bases below define those roles; the
concrete classes are the defaults used by the population and the CLI.
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .hashing import HashMode
from .individual import Individual
from .nodes import BINARY_OPS, UNARY_OPS, Node
from .tree import Tree


class EvaluatorBase(ABC):
    """Genotype -> fitness, with a monotonically increasing evaluation counter"""

    @abstractmethod
    def __call__(self, random: np.random.Generator, individual: Individual) -> float:
        pass

    @property
    @abstractmethod
    def evaluation_count(self) -> int:
        pass

    @property
    def budget_exhausted(self) -> bool:
        return False


class SelectorBase(ABC):
    """Picks parent indices out of a prepared population snapshot"""

    selectable_type = Individual

    def __init__(self, maximization: bool = False, objective_index: int = 0):
        self.maximization = maximization
        self.objective_index = objective_index
        self._population: Sequence[Individual] = ()

    def prepare(self, population: Sequence[Individual]) -> None:
        self._population = population

    @property
    def population(self) -> Sequence[Individual]:
        return self._population

    @abstractmethod
    def __call__(self, random: np.random.Generator) -> int:
        pass


class CrossoverBase(ABC):
    """Two genotypes -> one new genotype; the inputs are left untouched"""

    @abstractmethod
    def __call__(self, random: np.random.Generator, lhs: Tree, rhs: Tree) -> Tree:
        pass


class MutatorBase(ABC):
    """One genotype -> one mutated genotype; the input is consumed"""

    @abstractmethod
    def __call__(self, random: np.random.Generator, tree: Tree) -> Tree:
        pass


# Tree creation

class GrowTreeCreator:
    """Random trees grown top-down, terminals becoming likelier with depth"""

    def __init__(self, variables: Sequence[str], unary_ops: Sequence[str] = UNARY_OPS,
                 binary_ops: Sequence[str] = BINARY_OPS, terminal_probability: float = 0.3,
                 constant_range: Tuple[float, float] = (-2.0, 2.0)):
        if not variables:
            raise ValueError("At least one input variable is required")
        self.variables = list(variables)
        self.unary_ops = list(unary_ops)
        self.binary_ops = list(binary_ops)
        self.terminal_probability = terminal_probability
        self.constant_range = constant_range

    def __call__(self, random: np.random.Generator, max_depth: int = 5) -> Tree:
        nodes: List[Node] = []
        self._grow(random, nodes, 1, max_depth)
        return Tree(nodes).update_nodes()

    def terminal(self, random: np.random.Generator) -> Node:
        if random.random() < 0.7:
            return Node.variable(self.variables[random.integers(len(self.variables))])
        return Node.constant(random.uniform(*self.constant_range))

    def _grow(self, random: np.random.Generator, nodes: List[Node], depth: int, max_depth: int) -> None:
        if depth >= max_depth or random.random() < self.terminal_probability:
            nodes.append(self.terminal(random))
            return
        if self.unary_ops and random.random() < 0.3:
            self._grow(random, nodes, depth + 1, max_depth)
            nodes.append(Node.function(self.unary_ops[random.integers(len(self.unary_ops))]))
            return
        self._grow(random, nodes, depth + 1, max_depth)
        self._grow(random, nodes, depth + 1, max_depth)
        nodes.append(Node.function(self.binary_ops[random.integers(len(self.binary_ops))]))


# Selection

class TournamentSelector(SelectorBase):
    """Best of k individuals drawn uniformly with replacement"""

    def __init__(self, tournament_size: int = 5, maximization: bool = False, objective_index: int = 0):
        super().__init__(maximization, objective_index)
        if tournament_size < 1:
            raise ValueError("tournament_size must be positive")
        self.tournament_size = tournament_size

    def __call__(self, random: np.random.Generator) -> int:
        population = self.population
        candidates = random.integers(0, len(population), size=self.tournament_size)
        fitness = np.array([population[i][self.objective_index] for i in candidates])
        # NaN never wins a tournament
        if self.maximization:
            fitness = np.where(np.isnan(fitness), -np.inf, fitness)
            return int(candidates[np.argmax(fitness)])
        fitness = np.where(np.isnan(fitness), np.inf, fitness)
        return int(candidates[np.argmin(fitness)])


class RandomSelector(SelectorBase):
    """Uniform random parent selection"""

    def __call__(self, random: np.random.Generator) -> int:
        return int(random.integers(len(self.population)))


# Crossover

class SubtreeCrossover(CrossoverBase):
    """Replace a random subtree of the first parent with one from the second.

    Cut points are biased towards function nodes. Donor subtrees that would
    break the length/depth limits are skipped, and so are donors whose
    structural hash equals the subtree being replaced, since swapping those
    changes nothing.
    """

    def __init__(self, internal_probability: float = 0.9, max_depth: int = 10, max_length: int = 50):
        self.internal_probability = internal_probability
        self.max_depth = max_depth
        self.max_length = max_length

    def _cut_point(self, random: np.random.Generator, tree: Tree,
                   candidates: Optional[Sequence[int]] = None) -> int:
        indices = range(len(tree)) if candidates is None else candidates
        internal = [i for i in indices if not tree[i].is_leaf]
        leaves = [i for i in indices if tree[i].is_leaf]
        pool = internal if internal and (not leaves or random.random() < self.internal_probability) else leaves
        return pool[random.integers(len(pool))]

    def __call__(self, random: np.random.Generator, lhs: Tree, rhs: Tree) -> Tree:
        lhs = lhs.copy().hash(mode=HashMode.STRICT)
        rhs = rhs.copy().hash(mode=HashMode.STRICT)

        i = self._cut_point(random, lhs)
        cut = lhs[i]
        remaining = len(lhs) - cut.size
        level = lhs.level(i)

        donors = [j for j in range(len(rhs))
                  if remaining + rhs[j].size <= self.max_length
                  and level + rhs[j].depth <= self.max_depth
                  and rhs[j].calculated_hash_value != cut.calculated_hash_value]
        if not donors:
            return lhs

        j = self._cut_point(random, rhs, donors)
        donor = rhs.nodes[j - rhs[j].length:j + 1]
        child = lhs.nodes[:i - cut.length] + donor + lhs.nodes[i + 1:]
        return Tree(child).update_nodes()


# Mutation

class OnePointMutation(MutatorBase):
    """Perturb the value of one random leaf with normal noise"""

    def __init__(self, scale: float = 1.0):
        self.scale = scale

    def __call__(self, random: np.random.Generator, tree: Tree) -> Tree:
        leaves = [i for i, node in enumerate(tree) if node.is_leaf]
        if not leaves:
            return tree
        node = tree[leaves[random.integers(len(leaves))]]
        node.value += random.normal(0.0, self.scale)
        return tree


class ChangeFunctionMutation(MutatorBase):
    """Swap one function node for another of compatible arity"""

    def __init__(self, unary_ops: Sequence[str] = UNARY_OPS, binary_ops: Sequence[str] = BINARY_OPS):
        self.unary_ops = list(unary_ops)
        self.binary_ops = list(binary_ops)

    def __call__(self, random: np.random.Generator, tree: Tree) -> Tree:
        functions = [i for i, node in enumerate(tree) if not node.is_leaf]
        if not functions:
            return tree
        i = functions[random.integers(len(functions))]
        arity = tree[i].arity
        choices = self.unary_ops if arity == 1 else self.binary_ops
        if not choices:
            return tree
        tree.nodes[i] = Node.function(choices[random.integers(len(choices))], arity)
        return tree.update_nodes()


class ChangeVariableMutation(MutatorBase):
    """Point one variable leaf at a different input, keeping its weight"""

    def __init__(self, variables: Sequence[str]):
        self.variables = list(variables)

    def __call__(self, random: np.random.Generator, tree: Tree) -> Tree:
        positions = [i for i, node in enumerate(tree) if node.is_variable]
        if not positions or not self.variables:
            return tree
        i = positions[random.integers(len(positions))]
        name = self.variables[random.integers(len(self.variables))]
        tree.nodes[i] = Node.variable(name, tree[i].value)
        return tree.update_nodes()


class MultiMutation(MutatorBase):
    """Apply one mutator picked at random according to its weight"""

    def __init__(self):
        self.mutators: List[MutatorBase] = []
        self.weights: List[float] = []

    def add(self, mutator: MutatorBase, weight: float = 1.0) -> 'MultiMutation':
        if weight <= 0:
            raise ValueError("Mutator weight must be positive")
        self.mutators.append(mutator)
        self.weights.append(weight)
        return self

    def __call__(self, random: np.random.Generator, tree: Tree) -> Tree:
        if not self.mutators:
            return tree
        p = np.asarray(self.weights) / sum(self.weights)
        return self.mutators[random.choice(len(self.mutators), p=p)](random, tree)
