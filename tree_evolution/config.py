"""
tree_evolution/config.py - Run configuration
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .hashing import HashMode

RECOMBINATORS = ('os', 'plus')


@dataclass
class GPConfig:
    """Parameters of one evolutionary run"""
    population_size: int = 100
    pool_size: Optional[int] = None  # offspring per generation, defaults to population_size
    generations: int = 50
    evaluations: Optional[int] = None  # evaluation budget, unlimited when None
    max_length: int = 50
    max_depth: int = 10
    initial_depth: int = 5
    crossover_probability: float = 1.0
    crossover_internal_probability: float = 0.9
    mutation_probability: float = 0.25
    tournament_size: int = 5
    recombinator: str = 'os'
    max_selection_pressure: float = 100.0
    metric: str = 'mse'
    iterations: int = 0  # coefficient tuning steps per evaluation
    hash_mode: HashMode = HashMode.STRICT
    deduplicate: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.hash_mode = HashMode(self.hash_mode)
        if self.pool_size is None:
            self.pool_size = self.population_size

        if self.population_size < 1:
            raise ValueError("population_size must be positive")
        if self.pool_size < 1:
            raise ValueError("pool_size must be positive")
        if self.generations < 1:
            raise ValueError("generations must be positive")
        if self.evaluations is not None and self.evaluations < 1:
            raise ValueError("evaluations must be positive")
        if self.max_length < 1 or self.max_depth < 1:
            raise ValueError("max_length and max_depth must be positive")
        for name in ('crossover_probability', 'crossover_internal_probability', 'mutation_probability'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {value}")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be positive")
        if self.recombinator not in RECOMBINATORS:
            raise ValueError(f"recombinator must be one of {RECOMBINATORS}")
        if self.iterations < 0:
            raise ValueError("iterations must be non-negative")
        if self.max_selection_pressure <= 0:
            raise ValueError("max_selection_pressure must be positive")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['hash_mode'] = self.hash_mode.value
        return data
