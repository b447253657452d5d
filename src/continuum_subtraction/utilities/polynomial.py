"""Polynomial helpers for the turning point fit.

Least-squares polynomial fitting with a degree fallback, evaluation, and the
real roots of a quadratic.
"""

from __future__ import annotations
from typing import Sequence, Tuple
import numpy as np
from numpy.polynomial import polynomial as P
import logging

logger = logging.getLogger(__name__)


def fit_polynomial(
    x: Sequence[float],
    y: Sequence[float],
    degree: int = 3
) -> np.ndarray:
    """Fit a polynomial by least squares, lowering the degree on failure.

    The fit is attempted with ``degree`` first. If the solution contains
    non-finite coefficients (degenerate normal equations), the degree is
    reduced until a finite solution is found.

    Args:
        x: Abscissae
        y: Ordinates
        degree: Highest degree to try

    Returns:
        Coefficients in ascending powers, always of length ``degree + 1``
        (missing high-order terms are zero).

    Raises:
        ValueError: If x and y differ in length, or no degree yields a finite fit
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have the same length, got {x.size} and {y.size}")
    if x.size == 0:
        raise ValueError("Cannot fit a polynomial to zero points")

    coeffs = np.zeros(degree + 1)
    d = min(degree, x.size - 1)
    while d >= 0:
        try:
            fitted = P.polyfit(x, y, d)
        except np.linalg.LinAlgError as e:
            logger.debug(f"Degree {d} fit failed: {e}")
            fitted = None
        if fitted is not None and np.all(np.isfinite(fitted)):
            coeffs[:fitted.size] = fitted
            if d < degree:
                logger.debug(f"Polynomial fit fell back to degree {d}")
            return coeffs
        d -= 1

    raise ValueError("No finite polynomial fit found")


def evaluate(coeffs: Sequence[float], x):
    """Evaluate a polynomial given in ascending powers."""
    return P.polyval(x, np.asarray(coeffs, dtype=np.float64))


def solve_quadratic(a: float, b: float, c: float) -> Tuple[float, ...]:
    """Real roots of ``a*x**2 + b*x + c = 0``.

    Returns:
        Two roots (smaller first) for a proper quadratic, one root if the
        equation is linear, and an empty tuple if there is no real root.
    """
    if a == 0:
        if b == 0:
            return ()
        return (-c / b,)

    disc = b * b - 4 * a * c
    if disc < 0:
        return ()
    sq = np.sqrt(disc)
    x1 = (-b - sq) / (2 * a)
    x2 = (-b + sq) / (2 * a)
    return (float(min(x1, x2)), float(max(x1, x2)))


def derivative_roots(coeffs: Sequence[float]) -> Tuple[float, ...]:
    """Stationary points of a cubic ``a0 + a1*x + a2*x**2 + a3*x**3``.

    Solves ``3*a3*x**2 + 2*a2*x + a1 = 0``.
    """
    a0, a1, a2, a3 = (list(coeffs) + [0.0] * 4)[:4]
    return solve_quadratic(3 * a3, 2 * a2, a1)
