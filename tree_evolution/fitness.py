"""
tree_evolution/fitness.py - Error metrics and fitness comparison helpers
"""
import math
import warnings
from typing import Callable, Dict

import numpy as np
from scipy import stats

WORST_MINIMIZED = float(np.finfo(np.float64).max)
WORST_MAXIMIZED = float(np.finfo(np.float64).min)


def mean_squared_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    with np.errstate(all='ignore'):
        return float(np.mean((y_true - y_pred) ** 2))


def normalized_mse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """MSE divided by the target variance"""
    variance = np.var(y_true)
    if variance == 0:
        return mean_squared_error(y_true, y_pred)
    return mean_squared_error(y_true, y_pred) / float(variance)


def r2_error(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """1 - r^2 of the Pearson correlation; lower is better"""
    if not np.all(np.isfinite(y_pred)):
        return math.nan
    with warnings.catch_warnings():
        # constant predictions have no defined correlation
        warnings.simplefilter('ignore')
        r, _ = stats.pearsonr(y_true, y_pred)
    return 1.0 - float(r) ** 2


METRICS: Dict[str, Callable[[np.ndarray, np.ndarray], float]] = {
    'mse': mean_squared_error,
    'nmse': normalized_mse,
    'r2': r2_error,
}


def get_metric(name: str) -> Callable[[np.ndarray, np.ndarray], float]:
    try:
        return METRICS[name]
    except KeyError:
        raise ValueError(f"Unknown error metric: {name} (choose from {sorted(METRICS)})") from None


def worst_fitness(maximize: bool) -> float:
    """Sentinel that every finite fitness beats"""
    return WORST_MAXIMIZED if maximize else WORST_MINIMIZED


def is_better(candidate: float, reference: float, maximize: bool) -> bool:
    """Strict comparison under the optimization sense"""
    return candidate > reference if maximize else candidate < reference


def best_of(values, maximize: bool) -> float:
    """Best finite value, or the worst sentinel when there is none"""
    finite = [v for v in values if math.isfinite(v)]
    if not finite:
        return worst_fitness(maximize)
    return max(finite) if maximize else min(finite)
