"""
tree_evolution/evaluator.py - Numeric interpretation of postfix trees and fitness evaluation
"""
import functools
import logging
import math
import threading
from typing import Callable, Dict, Optional, Sequence

import numpy as np
from scipy import optimize

from .fitness import get_metric
from .individual import Individual
from .operators import EvaluatorBase
from .tree import Tree

logger = logging.getLogger(__name__)

DIVISION_EPSILON = 1e-10
RESIDUAL_PENALTY = 1e10


def protected_div(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    divisor = np.where(np.abs(b) < DIVISION_EPSILON, 1.0, b)
    return a / divisor


def protected_log(x: np.ndarray) -> np.ndarray:
    return np.log(np.maximum(np.abs(x), DIVISION_EPSILON))


UNARY_FUNCTIONS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    'exp': np.exp,
    'log': protected_log,
    'sin': np.sin,
    'cos': np.cos,
    'tanh': np.tanh,
    'sqrt': lambda x: np.sqrt(np.abs(x)),
    'abs': np.abs,
    'square': np.square,
}

BINARY_FUNCTIONS: Dict[str, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    'add': np.add,
    'sub': np.subtract,
    'mul': np.multiply,
    'div': protected_div,
    'fmin': np.fmin,
    'fmax': np.fmax,
}


class Interpreter:
    """Evaluates a tree over the rows of a data matrix.

    Nodes are visited left to right; by then every operand of a node has
    already been computed, so one buffer per node is all the state needed.
    """

    def evaluate(self, tree: Tree, X: np.ndarray, variables: Dict[str, int]) -> np.ndarray:
        n_rows = X.shape[0]
        buffer = [None] * len(tree)
        with np.errstate(all='ignore'):
            for i, node in enumerate(tree):
                if node.is_constant:
                    buffer[i] = np.full(n_rows, node.value)
                elif node.is_variable:
                    try:
                        column = variables[node.name]
                    except KeyError:
                        raise ValueError(f"Unknown variable: {node.name}") from None
                    buffer[i] = node.value * X[:, column]
                elif node.name in UNARY_FUNCTIONS:
                    buffer[i] = UNARY_FUNCTIONS[node.name](buffer[i - 1])
                elif node.name in BINARY_FUNCTIONS:
                    # the child cursor runs right to left
                    args = [buffer[j] for j in reversed(tree.child_indices(i))]
                    buffer[i] = functools.reduce(BINARY_FUNCTIONS[node.name], args)
                else:
                    raise ValueError(f"Unsupported primitive: {node.name}")
        return buffer[-1] if buffer else np.zeros(n_rows)


class Evaluator(EvaluatorBase):
    """Fitness = error metric between the tree's output and the target.

    The evaluation counter is guarded by a lock so that recombinators running
    on several workers can share one evaluator. With ``iterations > 0`` the
    leaf coefficients are tuned by ``optimize`` before scoring, and the tuned
    values are written back into the genotype.
    """

    def __init__(self, X: np.ndarray, y: np.ndarray, variables: Sequence[str],
                 metric: str = 'mse', budget: Optional[int] = None,
                 interpreter: Optional[Interpreter] = None, iterations: int = 0):
        self.X = np.asarray(X, dtype=np.float64)
        self.y = np.asarray(y, dtype=np.float64)
        if self.X.ndim != 2 or self.X.shape[0] != self.y.shape[0]:
            raise ValueError(f"Data shape mismatch: X {self.X.shape}, y {self.y.shape}")
        if self.X.shape[1] != len(variables):
            raise ValueError(f"Expected {self.X.shape[1]} variable names, got {len(variables)}")
        self.variables = {name: column for column, name in enumerate(variables)}
        self.metric_name = metric
        self.metric = get_metric(metric)
        self.budget = budget
        self.interpreter = interpreter or Interpreter()
        if iterations < 0:
            raise ValueError("iterations must be non-negative")
        self.iterations = iterations
        self._evaluations = 0
        self._lock = threading.Lock()

    def __call__(self, random: np.random.Generator, individual: Individual) -> float:
        with self._lock:
            self._evaluations += 1
        if self.iterations > 0:
            self.optimize(individual.genotype)
        y_pred = self.interpreter.evaluate(individual.genotype, self.X, self.variables)
        fitness = self.metric(self.y, y_pred)
        if not math.isfinite(fitness):
            logger.debug("Non-finite fitness for %s", individual.genotype)
            return math.nan
        return fitness

    def optimize(self, tree: Tree) -> bool:
        """Tune the leaf coefficients of ``tree`` in place by nonlinear least squares.

        Runs at most ``iterations`` residual evaluations and keeps the result
        only if it lowers the squared error. Returns whether the tree changed.
        """
        x0 = tree.get_coefficients()
        if len(x0) == 0:
            return False

        def residuals(coefficients):
            tree.set_coefficients(coefficients)
            r = self.interpreter.evaluate(tree, self.X, self.variables) - self.y
            return np.where(np.isfinite(r), r, RESIDUAL_PENALTY)

        initial = residuals(x0)
        if not np.all(np.abs(initial) < RESIDUAL_PENALTY):
            tree.set_coefficients(x0)
            return False

        with np.errstate(all='ignore'):
            result = optimize.least_squares(residuals, x0, method='trf', max_nfev=self.iterations)
        if np.all(np.isfinite(result.x)) and result.cost < 0.5 * float(np.sum(initial ** 2)):
            tree.set_coefficients(result.x)
            return True
        tree.set_coefficients(x0)
        return False

    def predict(self, tree: Tree, X: Optional[np.ndarray] = None) -> np.ndarray:
        return self.interpreter.evaluate(tree, self.X if X is None else np.asarray(X), self.variables)

    @property
    def evaluation_count(self) -> int:
        with self._lock:
            return self._evaluations

    @property
    def budget_exhausted(self) -> bool:
        return self.budget is not None and self.evaluation_count >= self.budget

    def reset(self) -> None:
        with self._lock:
            self._evaluations = 0
