# FILE: econrag/analysis/stats.py
"""
Numerical kernels for series analysis.

All functions take plain value sequences (observation order) and return
Python floats so payloads serialize cleanly.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from econrag.errors import InsufficientDataError


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    r_squared: float


@dataclass(frozen=True)
class PolynomialFit:
    order: int
    # Ascending powers of the zero-based observation index
    coefficients: List[float]
    r_squared: float


def r_squared(y: np.ndarray, predicted: np.ndarray) -> float:
    """1 - SS_res / SS_tot, defined as 0 when SS_tot == 0."""
    ss_res = float(np.sum((y - predicted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    return 0.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot


def _least_squares(x: np.ndarray, y: np.ndarray) -> TrendFit:
    x_mean = x.mean()
    y_mean = y.mean()

    sxx = float(np.sum((x - x_mean) ** 2))
    sxy = float(np.sum((x - x_mean) * (y - y_mean)))
    slope = sxy / sxx
    intercept = float(y_mean - slope * x_mean)

    return TrendFit(
        slope=float(slope),
        intercept=intercept,
        r_squared=float(r_squared(y, intercept + slope * x)),
    )


def linear_trend(values: Sequence[float]) -> TrendFit:
    """
    Ordinary least squares of value against zero-based observation index.

    R^2 = 1 - SS_res / SS_tot, defined as 0 when SS_tot == 0.
    """
    if len(values) < 2:
        raise InsufficientDataError(f"trend needs at least 2 observations, got {len(values)}")
    y = np.asarray(values, dtype=float)
    return _least_squares(np.arange(len(y), dtype=float), y)


def log_trend(values: Sequence[float]) -> TrendFit:
    """Fit value = intercept + slope * ln(index + 1)."""
    if len(values) < 2:
        raise InsufficientDataError(f"log trend needs at least 2 observations, got {len(values)}")
    y = np.asarray(values, dtype=float)
    return _least_squares(np.log(np.arange(1, len(y) + 1, dtype=float)), y)


def polynomial_fits(values: Sequence[float], max_order: int) -> List[PolynomialFit]:
    """
    Least-squares polynomials of order 1..max_order against observation index.

    Orders are capped at n - 1 (an order n - 1 polynomial already passes
    through every point). Fitting happens on a scaled domain for numerical
    stability; coefficients are converted back to the raw index.
    """
    if len(values) < 2:
        raise InsufficientDataError(f"polynomial fit needs at least 2 observations, got {len(values)}")
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)

    fits = []
    for order in range(1, min(max_order, len(y) - 1) + 1):
        poly = np.polynomial.Polynomial.fit(x, y, order)
        fits.append(PolynomialFit(
            order=order,
            coefficients=[float(c) for c in poly.convert().coef],
            r_squared=float(r_squared(y, poly(x))),
        ))
    return fits


def volatility(values: Sequence[float]) -> Tuple[float, float]:
    """Mean and population standard deviation."""
    if len(values) == 0:
        raise InsufficientDataError("volatility needs at least 1 observation")
    y = np.asarray(values, dtype=float)
    return float(y.mean()), float(y.std(ddof=0))


def z_scores(values: Sequence[float], mean: float, std: float) -> List[float]:
    """Per-observation z-score; all zero for a flat series."""
    if std == 0:
        return [0.0] * len(values)
    y = np.asarray(values, dtype=float)
    return [float(z) for z in (y - mean) / std]


def anomaly_flags(scores: Sequence[float], threshold: float) -> List[bool]:
    return [abs(z) > threshold for z in scores]


def percent_change(values: Sequence[float]) -> Optional[List[float]]:
    """Period-over-period percent change; None when a prior value is zero."""
    y = np.asarray(values, dtype=float)
    prev = y[:-1]
    if np.any(prev == 0):
        return None
    return [float(p) for p in (y[1:] - prev) / prev * 100.0]


def percent_change_trend(values: Sequence[float]) -> Optional[TrendFit]:
    """Linear trend of the percent-change series, when it has at least 2 points."""
    if len(values) < 3:
        return None
    changes = percent_change(values)
    if changes is None:
        return None
    return linear_trend(changes)
