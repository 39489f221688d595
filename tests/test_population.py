"""
Unit tests for population management and the generational loop.
"""

import math

import numpy as np
import pytest

from tree_evolution import (Evaluator, GrowTreeCreator, HashMode, MultiMutation, OnePointMutation,
                            OffspringSelectionRecombinator, PlusRecombinator, Population,
                            SubtreeCrossover, TournamentSelector)


@pytest.fixture
def problem():
    random = np.random.default_rng(11)
    X = random.uniform(-1.0, 1.0, size=(40, 2))
    y = X[:, 0] * X[:, 1] + X[:, 0]
    return X, y


def make_run(problem, cls=PlusRecombinator, size=20, seed=5, **kwargs):
    X, y = problem
    random = np.random.default_rng(seed)
    evaluator = Evaluator(X, y, ['x', 'y'])
    population = Population(size, GrowTreeCreator(['x', 'y']), random, max_depth=4)
    population.evaluate(evaluator, random)
    mutator = MultiMutation().add(OnePointMutation())
    recombinator = cls(evaluator, TournamentSelector(3), SubtreeCrossover(max_depth=8, max_length=40),
                       mutator, **kwargs)
    return population, recombinator, evaluator, random


class TestPopulation:
    """Test population creation and statistics."""

    def test_creation(self, problem):
        population, _, evaluator, _ = make_run(problem)
        assert len(population) == 20
        assert evaluator.evaluation_count == 20
        assert all(ind.genotype.depth <= 4 for ind in population)

    def test_invalid_size(self, rng):
        with pytest.raises(ValueError):
            Population(0, GrowTreeCreator(['x']), rng)

    def test_get_best_ignores_nan(self, problem):
        population, _, _, _ = make_run(problem)
        population.individuals[0][0] = math.nan
        best = population.get_best(3)
        assert all(not math.isnan(ind[0]) for ind in best)
        assert best[0][0] <= best[1][0] <= best[2][0]

    def test_stats(self, problem):
        population, _, _, _ = make_run(problem)
        stats = population.get_stats()
        assert stats['population_size'] == 20
        assert stats['fitness']['min'] <= stats['fitness']['mean'] <= stats['fitness']['max']
        assert stats['length']['min'] >= 1
        assert stats['depth']['max'] <= 4

    def test_diversity(self, problem):
        population, _, _, _ = make_run(problem)
        clone = population.individuals[0].copy()
        population.individuals = [clone.copy() for _ in range(5)]
        diversity = population.diversity_stats()
        assert diversity['unique_structures'] == 1
        assert diversity['structural_diversity'] == pytest.approx(0.2)


class TestEvolveGeneration:
    """Test breeding a generation."""

    def test_size_preserved(self, problem):
        population, recombinator, _, random = make_run(problem)
        for _ in range(3):
            info = population.evolve_generation(recombinator, random, 0.9, 0.25)
            assert len(population) == 20
            assert info['offspring'] == 20
        assert population.generation == 3

    def test_plus_never_degrades(self, problem):
        population, recombinator, _, random = make_run(problem)
        best = population.get_best()[0][0]
        for _ in range(5):
            population.evolve_generation(recombinator, random, 0.9, 0.25)
            current = population.get_best()[0][0]
            assert current <= best
            best = current

    def test_offspring_selection_terminates(self, problem):
        population, recombinator, evaluator, random = make_run(
            problem, OffspringSelectionRecombinator, max_selection_pressure=0.5)
        before = evaluator.evaluation_count
        info = population.evolve_generation(recombinator, random, 1.0, 0.25, pool_size=1000)
        assert info['terminated']
        assert info['offspring'] < 1000
        # pressure can overshoot the limit by at most one evaluation
        assert evaluator.evaluation_count - before <= 0.5 * 20 + 1
        assert len(population) == 20

    def test_attempt_limit(self, problem):
        population, recombinator, _, random = make_run(problem, OffspringSelectionRecombinator)
        info = population.evolve_generation(recombinator, random, 1.0, 0.0, pool_size=10, max_attempts=7)
        assert info['attempts'] <= 7

    def test_zero_probabilities(self, problem):
        population, recombinator, _, random = make_run(problem)
        with pytest.raises(ValueError):
            population.evolve_generation(recombinator, random, 0.0, 0.0)

    def test_deduplicate(self, problem):
        population, recombinator, _, random = make_run(problem)
        info = population.evolve_generation(recombinator, random, 1.0, 0.0, deduplicate=True,
                                            hash_mode=HashMode.RELAXED, max_attempts=500)
        assert info['duplicates'] > 0
        assert info['attempts'] <= 500
        assert len(population) == 20
