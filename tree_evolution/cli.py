"""
tree_evolution/cli.py - Command-line interface
"""
import logging
import time

import click
import numpy as np

from .config import RECOMBINATORS, GPConfig
from .evaluator import Evaluator
from .fitness import METRICS
from .hashing import HashMode
from .nodes import BINARY_OPS, COMMUTATIVE_OPS, UNARY_OPS
from .operators import (ChangeFunctionMutation, ChangeVariableMutation, GrowTreeCreator,
                        MultiMutation, OnePointMutation, SubtreeCrossover, TournamentSelector)
from .population import Population
from .recombinator import OffspringSelectionRecombinator, PlusRecombinator

# Synthetic regression problems: (number of inputs, input range, target function)
BENCHMARKS = {
    'nguyen5': (1, (-1.0, 1.0), lambda X: np.sin(X[:, 0] ** 2) * np.cos(X[:, 0]) - 1.0),
    'nguyen7': (1, (0.0, 2.0), lambda X: np.log(X[:, 0] + 1.0) + np.log(X[:, 0] ** 2 + 1.0)),
    'poly': (2, (-1.0, 1.0), lambda X: X[:, 0] * X[:, 1] + X[:, 0] ** 2 - 0.5 * X[:, 1]),
    'kotanchek': (2, (0.0, 4.0), lambda X: np.exp(-(X[:, 0] - 1.0) ** 2) / (1.2 + (X[:, 1] - 2.5) ** 2)),
}


def make_problem(name: str, rows: int, random: np.random.Generator):
    n_inputs, (low, high), target = BENCHMARKS[name]
    X = random.uniform(low, high, size=(rows, n_inputs))
    variables = [f"x{i}" for i in range(n_inputs)]
    return X, target(X), variables


def build_recombinator(config: GPConfig, evaluator: Evaluator, variables):
    selector = TournamentSelector(config.tournament_size)
    crossover = SubtreeCrossover(config.crossover_internal_probability,
                                 config.max_depth, config.max_length)
    mutator = (MultiMutation()
               .add(OnePointMutation())
               .add(ChangeFunctionMutation())
               .add(ChangeVariableMutation(variables)))
    if config.recombinator == 'os':
        return OffspringSelectionRecombinator(evaluator, selector, crossover, mutator,
                                              config.max_selection_pressure)
    return PlusRecombinator(evaluator, selector, crossover, mutator)


@click.group()
def cli():
    """Tree Evolution - genetic programming on postfix expression trees"""
    pass


@cli.command()
@click.option('--benchmark', '-b', type=click.Choice(sorted(BENCHMARKS)), default='nguyen5',
              help='Synthetic problem to solve')
@click.option('--rows', default=100, help='Number of generated data rows')
@click.option('--generations', '-g', default=50, help='Number of generations to evolve')
@click.option('--population', '-p', default=100, help='Population size')
@click.option('--pool-size', default=None, type=int, help='Offspring per generation (default: population size)')
@click.option('--evaluations', default=None, type=int, help='Evaluation budget')
@click.option('--recombinator', '-r', type=click.Choice(RECOMBINATORS), default='os',
              help='Offspring selection (os) or elitist plus (plus)')
@click.option('--selection-pressure', default=100.0, help='Maximum selection pressure (os only)')
@click.option('--crossover-rate', default=1.0, help='Crossover probability (0.0-1.0)')
@click.option('--mutation-rate', default=0.25, help='Mutation probability (0.0-1.0)')
@click.option('--tournament-size', default=5, help='Tournament selection size')
@click.option('--max-length', default=50, help='Maximum tree length')
@click.option('--max-depth', default=10, help='Maximum tree depth')
@click.option('--metric', type=click.Choice(sorted(METRICS)), default='mse', help='Error metric')
@click.option('--iterations', default=0, help='Local coefficient optimization iterations per evaluation')
@click.option('--hash-mode', type=click.Choice([m.value for m in HashMode]), default='strict',
              help='Whether constant values take part in structural hashes')
@click.option('--deduplicate', is_flag=True, help='Reject offspring structurally identical to existing trees')
@click.option('--seed', default=None, type=int, help='Random seed')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def evolve(benchmark, rows, generations, population, pool_size, evaluations, recombinator,
           selection_pressure, crossover_rate, mutation_rate, tournament_size, max_length,
           max_depth, metric, iterations, hash_mode, deduplicate, seed, verbose):
    """Evolve expressions for a synthetic regression benchmark"""

    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    try:
        config = GPConfig(population_size=population, pool_size=pool_size, generations=generations,
                          evaluations=evaluations, max_length=max_length, max_depth=max_depth,
                          crossover_probability=crossover_rate, mutation_probability=mutation_rate,
                          tournament_size=tournament_size, recombinator=recombinator,
                          max_selection_pressure=selection_pressure, metric=metric, iterations=iterations,
                          hash_mode=hash_mode, deduplicate=deduplicate, seed=seed)
    except ValueError as e:
        raise click.BadParameter(str(e))

    random = np.random.default_rng(config.seed)
    X, y, variables = make_problem(benchmark, rows, random)

    evaluator = Evaluator(X, y, variables, metric=config.metric, budget=config.evaluations,
                          iterations=config.iterations)
    creator = GrowTreeCreator(variables)
    recomb = build_recombinator(config, evaluator, variables)

    click.echo(f"Starting evolution: {config.generations} generations, population {config.population_size}")
    click.echo(f"Benchmark: {benchmark}, recombinator: {config.recombinator}, metric: {config.metric}")

    pop = Population(config.population_size, creator, random, max_depth=config.initial_depth)
    pop.evaluate(evaluator, random)

    start_time = time.time()
    for gen in range(config.generations):
        info = pop.evolve_generation(recomb, random, config.crossover_probability,
                                     config.mutation_probability, pool_size=config.pool_size,
                                     deduplicate=config.deduplicate, hash_mode=config.hash_mode)
        stats = pop.get_stats()

        if verbose or gen % 10 == 0 or gen == config.generations - 1:
            fitness_stats = stats['fitness']
            diversity = pop.diversity_stats(config.hash_mode)
            click.echo(f"Gen {gen:3d}/{config.generations}: "
                       f"Best={fitness_stats['min']:.6f} "
                       f"Avg={fitness_stats['mean']:.6f} "
                       f"Offspring={info['offspring']} "
                       f"Unique={diversity['unique_structures']} "
                       f"Evaluations={evaluator.evaluation_count}")

        if evaluator.budget_exhausted:
            click.echo("Evaluation budget exhausted")
            break

    total_time = time.time() - start_time
    best = pop.get_best(1)[0]
    click.echo(f"\nEvolution completed in {total_time:.1f}s")
    click.echo(f"Best fitness: {best[0]:.6f}")
    click.echo(f"Best tree (postfix): {best.genotype}")


@cli.command()
def primitives():
    """Show the primitive set"""
    click.echo("Unary functions:")
    for name in UNARY_OPS:
        click.echo(f"  {name}")
    click.echo("N-ary functions:")
    for name in BINARY_OPS:
        suffix = " (commutative)" if name in COMMUTATIVE_OPS else ""
        click.echo(f"  {name}{suffix}")
    click.echo("Terminals:")
    click.echo("  constant")
    click.echo("  variable")


if __name__ == '__main__':
    cli()
