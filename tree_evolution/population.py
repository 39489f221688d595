"""
tree_evolution/population.py - Population management and the generational loop
"""
import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

from .hashing import HashMode
from .individual import Individual
from .operators import EvaluatorBase, GrowTreeCreator
from .recombinator import RecombinatorBase

logger = logging.getLogger(__name__)


class Population:
    """Manages a population of individuals across generations.

    Individuals are treated as read-only while a generation is being bred;
    the whole population is replaced at the generation boundary.
    """

    def __init__(self, size: int, creator: GrowTreeCreator, random: np.random.Generator,
                 max_depth: int = 5, maximize: bool = False, objective_index: int = 0,
                 n_objectives: int = 1):
        if size < 1:
            raise ValueError("Population size must be positive")
        self.size = size
        self.maximize = maximize
        self.objective_index = objective_index
        self.generation = 0
        self.individuals: List[Individual] = [
            Individual(creator(random, max_depth), n_objectives=n_objectives)
            for _ in range(size)
        ]

    def __len__(self) -> int:
        return len(self.individuals)

    def __iter__(self):
        return iter(self.individuals)

    def _sort_key(self, individual: Individual) -> float:
        value = individual[self.objective_index]
        if math.isnan(value):
            return math.inf
        return -value if self.maximize else value

    def evaluate(self, evaluator: EvaluatorBase, random: np.random.Generator) -> None:
        """Assign fitness to every individual"""
        for individual in self.individuals:
            individual[self.objective_index] = evaluator(random, individual)

    def evolve_generation(self, recombinator: RecombinatorBase, random: np.random.Generator,
                          p_crossover: float = 1.0, p_mutation: float = 0.25,
                          pool_size: Optional[int] = None, deduplicate: bool = False,
                          hash_mode: HashMode = HashMode.STRICT,
                          max_attempts: Optional[int] = None) -> Dict[str, Any]:
        """Breed one generation and replace the population.

        The recombinator is asked for offspring until the pool is full or it
        signals termination, or after ``max_attempts`` calls (100 per pool
        slot by default). Offspring are merged with the current
        individuals and the best ``size`` of them survive.
        """
        if p_crossover <= 0 and p_mutation <= 0:
            raise ValueError("At least one of crossover or mutation must have a positive probability")
        pool_size = pool_size or self.size
        max_attempts = max_attempts or 100 * pool_size
        recombinator.prepare(self.individuals)

        seen = set()
        if deduplicate:
            seen = {ind.genotype.hash(mode=hash_mode).hash_value for ind in self.individuals}

        offspring: List[Individual] = []
        attempts = 0
        duplicates = 0
        terminated = False
        while len(offspring) < pool_size:
            if recombinator.terminate() or attempts >= max_attempts:
                terminated = True
                break
            attempts += 1
            child = recombinator(random, p_crossover, p_mutation)
            if child is None:
                continue
            if deduplicate:
                key = child.genotype.hash(mode=hash_mode).hash_value
                if key in seen:
                    duplicates += 1
                    continue
                seen.add(key)
            offspring.append(child)

        merged = sorted(self.individuals + offspring, key=self._sort_key)
        self.individuals = merged[:self.size]
        self.generation += 1

        logger.info("Generation %d: %d offspring from %d attempts (%d duplicates)%s",
                    self.generation, len(offspring), attempts, duplicates,
                    ", terminated" if terminated else "")
        return {
            'generation': self.generation,
            'offspring': len(offspring),
            'attempts': attempts,
            'duplicates': duplicates,
            'terminated': terminated,
        }

    def get_best(self, n: int = 1) -> List[Individual]:
        """Get the best n individuals"""
        return sorted(self.individuals, key=self._sort_key)[:n]

    def get_stats(self) -> Dict[str, Any]:
        """Get population statistics"""
        if not self.individuals:
            return {}

        fitnesses = np.array([ind[self.objective_index] for ind in self.individuals])
        finite = fitnesses[np.isfinite(fitnesses)]
        lengths = [len(ind.genotype) for ind in self.individuals]
        depths = [ind.genotype.depth for ind in self.individuals]

        def summary(values) -> Dict[str, float]:
            if len(values) == 0:
                return {'min': math.nan, 'max': math.nan, 'mean': math.nan, 'std': math.nan}
            return {
                'min': float(np.min(values)),
                'max': float(np.max(values)),
                'mean': float(np.mean(values)),
                'std': float(np.std(values)),
            }

        return {
            'generation': self.generation,
            'population_size': len(self.individuals),
            'fitness': summary(finite),
            'length': summary(lengths),
            'depth': summary(depths),
        }

    def diversity_stats(self, hash_mode: HashMode = HashMode.STRICT) -> Dict[str, float]:
        """Calculate population diversity from structural hashes"""
        if len(self.individuals) < 2:
            return {'structural_diversity': 0.0, 'unique_structures': len(self.individuals)}

        hashes = [ind.genotype.hash(mode=hash_mode).hash_value for ind in self.individuals]
        unique_structures = len(set(hashes))
        return {
            'structural_diversity': unique_structures / len(hashes),
            'unique_structures': unique_structures,
        }
