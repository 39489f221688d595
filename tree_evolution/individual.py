"""
tree_evolution/individual.py - Individual: a tree genotype plus its fitness vector
"""
from typing import Optional, Sequence

import numpy as np

from .tree import Tree


class Individual:
    """Represents one candidate solution of the population"""

    def __init__(self, genotype: Optional[Tree] = None, n_objectives: int = 1,
                 fitness: Optional[Sequence[float]] = None):
        self.genotype = genotype if genotype is not None else Tree()
        if fitness is None:
            self.fitness = np.full(n_objectives, np.nan)
        else:
            self.fitness = np.array(fitness, dtype=np.float64)

    def __getitem__(self, objective: int) -> float:
        return float(self.fitness[objective])

    def __setitem__(self, objective: int, value: float) -> None:
        self.fitness[objective] = value

    def copy(self) -> 'Individual':
        return Individual(self.genotype.copy(), fitness=self.fitness.copy())

    def __str__(self) -> str:
        fitness = ', '.join(f"{f:.4f}" for f in self.fitness)
        return f"Individual([{fitness}], length={len(self.genotype)}): {self.genotype}"
