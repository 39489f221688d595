"""
tree_evolution/recombinator.py - Offspring production policies

A recombinator produces at most one offspring per call. Both policies share
the same breeding protocol:

1. draw two Bernoulli trials for crossover and mutation; if neither fires
   there is no offspring and the caller simply tries again
2. select one parent, or two when crossover fires
3. cross the parents over and/or mutate (a copy of) the genotype
4. evaluate the child

They differ in what they do with the evaluated child.
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

from .fitness import best_of, is_better, worst_fitness
from .individual import Individual
from .operators import CrossoverBase, EvaluatorBase, MutatorBase, SelectorBase

logger = logging.getLogger(__name__)


class RecombinatorBase(ABC):
    """Composes the evaluator, selector, crossover and mutator roles"""

    def __init__(self, evaluator: EvaluatorBase, selector: SelectorBase,
                 crossover: CrossoverBase, mutator: MutatorBase):
        self.evaluator = evaluator
        self.selector = selector
        self.crossover = crossover
        self.mutator = mutator

    def prepare(self, population: Sequence[Individual]) -> None:
        """Must be called once per generation before producing offspring"""
        self.selector.prepare(population)

    def terminate(self) -> bool:
        return self.evaluator.budget_exhausted

    def _breed(self, random: np.random.Generator, p_crossover: float,
               p_mutation: float) -> Optional[Tuple[Individual, Tuple[Individual, ...]]]:
        """Run steps 1-4 of the protocol; returns the child and its parents"""
        do_crossover = random.random() < p_crossover
        do_mutation = random.random() < p_mutation
        if not (do_crossover or do_mutation):
            return None

        population = self.selector.population
        first = population[self.selector(random)]
        parents: Tuple[Individual, ...] = (first,)

        if do_crossover:
            second = population[self.selector(random)]
            parents = (first, second)
            genotype = self.crossover(random, first.genotype, second.genotype)
        else:
            genotype = first.genotype.copy()

        if do_mutation:
            genotype = self.mutator(random, genotype)

        child = Individual(genotype, n_objectives=len(first.fitness))
        child[self.selector.objective_index] = self.evaluator(random, child)
        return child, parents

    @abstractmethod
    def __call__(self, random: np.random.Generator, p_crossover: float,
                 p_mutation: float) -> Optional[Individual]:
        pass


class OffspringSelectionRecombinator(RecombinatorBase):
    """Strict-improvement policy.

    A child is accepted only if its fitness is finite and strictly better
    than its best parent. Every evaluation counts towards the selection
    pressure, and ``terminate`` turns true once the pressure exceeds
    ``max_selection_pressure``.
    """

    def __init__(self, evaluator: EvaluatorBase, selector: SelectorBase,
                 crossover: CrossoverBase, mutator: MutatorBase,
                 max_selection_pressure: float = 100):
        super().__init__(evaluator, selector, crossover, mutator)
        self.max_selection_pressure = max_selection_pressure
        self._last_evaluations = evaluator.evaluation_count

    def prepare(self, population: Sequence[Individual]) -> None:
        super().prepare(population)
        self._last_evaluations = self.evaluator.evaluation_count

    @property
    def selection_pressure(self) -> float:
        population = self.selector.population
        if not population:
            return 0.0
        return (self.evaluator.evaluation_count - self._last_evaluations) / len(population)

    def terminate(self) -> bool:
        if super().terminate():
            return True
        if self.selection_pressure > self.max_selection_pressure:
            logger.info("Selection pressure %.2f exceeded the maximum of %s",
                        self.selection_pressure, self.max_selection_pressure)
            return True
        return False

    def __call__(self, random: np.random.Generator, p_crossover: float,
                 p_mutation: float) -> Optional[Individual]:
        bred = self._breed(random, p_crossover, p_mutation)
        if bred is None:
            return None
        child, parents = bred

        index = self.selector.objective_index
        maximize = self.selector.maximization
        reference = best_of([parent[index] for parent in parents], maximize)

        if math.isfinite(child[index]) and is_better(child[index], reference, maximize):
            return child
        return None


class PlusRecombinator(RecombinatorBase):
    """Elitist-plus policy.

    Never rejects: the result is the best of the child and its parents, so
    the offspring stream is never worse than its immediate lineage. A
    non-finite child fitness is replaced by the worst possible value.
    """

    def __call__(self, random: np.random.Generator, p_crossover: float,
                 p_mutation: float) -> Optional[Individual]:
        bred = self._breed(random, p_crossover, p_mutation)
        if bred is None:
            return None
        child, parents = bred

        index = self.selector.objective_index
        maximize = self.selector.maximization
        if not math.isfinite(child[index]):
            child[index] = worst_fitness(maximize)

        best = child
        for parent in parents:
            if is_better(parent[index], best[index], maximize):
                best = parent
        return child if best is child else best.copy()
