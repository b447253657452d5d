"""Turning point detection on the blackness curve.

The fraction of black pixels rises with the trial factor mue. The factor at
which it rises fastest is taken as the continuum fraction of the narrowband
image. CurveFitter finds that point:

1. normalize black counts to fractions of all pixels
2. differentiate with the 5-point central difference stencil
3. select the neighbourhood of the dominant slope peak
4. fit a cubic to the slopes of that neighbourhood
5. take the stationary point of the cubic closest to its empirical maximum
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import numpy as np
import logging

from continuum_subtraction.processing.scanner import CurvePoint
from continuum_subtraction.results import ReductionStatus, SlopePoint
from continuum_subtraction.utilities.polynomial import (
    derivative_roots, evaluate, fit_polynomial
)

logger = logging.getLogger(__name__)

STENCIL_RADIUS = 2
MIN_SCAN_POINTS = 7
# A peak this close to the end of the slope curve is unreliable
BOUNDARY_MARGIN = 7
# Normalized slope where the diagnostic curve starts
RELEVANT_SLOPE = 0.025
FIT_DEGREE = 3


@dataclass
class FitResult:
    """Outcome of the turning point fit.

    Attributes:
        status: SUCCEEDED or the reason no factor was found
        mue: Refined reduction factor, -1 on failure
        curve: Diagnostic slope points from the first relevant slope on
        slopes: All slope points (normalized slope)
        coefficients: Cubic fit coefficients in ascending powers
        roots: Stationary points of the cubic
        peak_index: Index of the maximum slope in ``slopes``
        max_slope: Maximum raw slope
        candidates: Number of points used for the fit
    """
    status: ReductionStatus
    mue: float = -1.0
    curve: Tuple[SlopePoint, ...] = field(default_factory=tuple)
    slopes: Tuple[SlopePoint, ...] = field(default_factory=tuple)
    coefficients: Optional[np.ndarray] = None
    roots: Tuple[float, ...] = ()
    peak_index: int = -1
    max_slope: float = 0.0
    candidates: int = 0
    message: str = ''


def five_point_slopes(y: np.ndarray, step_size: float) -> np.ndarray:
    """First derivative by the 5-point central difference.

    Element ``j`` is the derivative at ``y[j + 2]``; the result has
    ``len(y) - 4`` elements.
    """
    y = np.asarray(y, dtype=np.float64)
    if y.size < 2 * STENCIL_RADIUS + 1:
        return np.empty(0)
    return (y[:-4] - 8 * y[1:-3] + 8 * y[3:-1] - y[4:]) / (12 * step_size)


class CurveFitter:
    """Refine the scan curve into a reduction factor.

    Example:
        >>> fitter = CurveFitter(step_size=0.001)
        >>> fit = fitter.fit(outcome.points, outcome.pixel_count)
        >>> if fit.status is ReductionStatus.SUCCEEDED:
        ...     print(f"mue = {fit.mue:.6f}")
    """

    def __init__(self, step_size: float = 0.001):
        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")
        self.step_size = step_size

    def fit(self, points: Sequence[CurvePoint], pixel_count: int) -> FitResult:
        """Locate the turning point of a blackness curve.

        Args:
            points: Raw scan points (mue, black pixel count)
            pixel_count: Total number of samples N

        Returns:
            FitResult; ``mue`` is -1 unless status is SUCCEEDED

        Raises:
            ValueError: If counts are not raw integer counts in [0, N]
        """
        if pixel_count <= 0:
            raise ValueError(f"pixel_count must be positive, got {pixel_count}")

        mues = np.array([p.mue for p in points], dtype=np.float64)
        counts = np.array([p.black_count for p in points], dtype=np.float64)
        self._check_counts(counts, pixel_count)

        if mues.size < MIN_SCAN_POINTS:
            msg = f"Only {mues.size} scan points, at least {MIN_SCAN_POINTS} needed"
            logger.warning(msg)
            return FitResult(ReductionStatus.INSUFFICIENT_DATA, message=msg)

        y = counts / pixel_count
        raw = five_point_slopes(y, self.step_size)
        # Each slope is labelled with the mue at its stencil centre, not the newest point
        centre_mue = mues[STENCIL_RADIUS:-STENCIL_RADIUS]
        centre_y = y[STENCIL_RADIUS:-STENCIL_RADIUS]

        peak_index, max_slope, max_delta = self._peak(raw)
        if max_slope <= 0:
            msg = "Blackness curve has no positive slope"
            logger.warning(msg)
            return FitResult(ReductionStatus.NO_DOMINANT_SLOPE, max_slope=max_slope, message=msg)

        normalized = raw / max_slope
        slopes = tuple(
            SlopePoint(float(m), float(v), float(s))
            for m, v, s in zip(centre_mue, centre_y, normalized)
        )
        curve = self._relevant_curve(slopes)

        if peak_index > raw.size - BOUNDARY_MARGIN:
            msg = (
                f"Slope peak at index {peak_index} lies within {BOUNDARY_MARGIN - 1} "
                f"samples of the end ({raw.size})"
            )
            logger.warning(f"No solution: {msg}")
            return FitResult(
                ReductionStatus.NO_SOLUTION, curve=curve, slopes=slopes,
                peak_index=peak_index, max_slope=max_slope, message=msg
            )

        threshold = max_slope - 2 * max_delta
        xs, ss = self._peak_neighbourhood(centre_mue, raw, threshold, peak_index)
        if xs.size == 0:
            msg = "No slope point above the neighbourhood threshold"
            logger.warning(f"No solution: {msg}")
            return FitResult(
                ReductionStatus.NO_SOLUTION, curve=curve, slopes=slopes,
                peak_index=peak_index, max_slope=max_slope, message=msg
            )

        coeffs = fit_polynomial(xs, ss, FIT_DEGREE)
        for i, c in enumerate(coeffs):
            logger.debug(f"Coeff {i}\t{c}")
        roots = derivative_roots(coeffs)

        result = FitResult(
            ReductionStatus.NO_SOLUTION, curve=curve, slopes=slopes,
            coefficients=coeffs, roots=roots, peak_index=peak_index,
            max_slope=max_slope, candidates=len(xs)
        )
        if not roots:
            result.message = "Fitted slope curve has no stationary point"
            logger.warning(f"No solution: {result.message}")
            return result

        fitted = evaluate(coeffs, xs)
        x_max = xs[int(np.argmax(fitted))]
        mue = min(roots, key=lambda r: abs(r - x_max))
        if not np.isfinite(mue):
            result.message = f"Turning point is not finite: {mue}"
            return result

        logger.debug(f"solved {mue}")
        result.status = ReductionStatus.SUCCEEDED
        result.mue = float(mue)
        return result

    def _check_counts(self, counts: np.ndarray, pixel_count: int) -> None:
        """Reject fractions and counts outside [0, N]."""
        if counts.size == 0:
            return
        if np.any(counts != np.round(counts)):
            raise ValueError(
                "CurveFitter expects raw black pixel counts, got fractional values "
                "(curve already normalized?)"
            )
        if counts.min() < 0 or counts.max() > pixel_count:
            raise ValueError(
                f"Black pixel counts must be in [0, {pixel_count}], "
                f"got [{counts.min():.0f}, {counts.max():.0f}]"
            )

    def _peak(self, slopes: np.ndarray) -> Tuple[int, float, float]:
        """Index and value of the maximum slope and the largest slope jump."""
        peak_index = -1
        max_slope = 0.0
        max_delta = 0.0
        previous = 0.0
        for i, s in enumerate(slopes):
            delta = abs(s - previous)
            if i > 0 and delta > max_delta:
                max_delta = delta
            previous = s
            if s > max_slope:
                max_slope = float(s)
                peak_index = i
        return peak_index, max_slope, float(max_delta)

    def _peak_neighbourhood(
        self,
        mues: np.ndarray,
        slopes: np.ndarray,
        threshold: float,
        peak_index: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Slope points above threshold.

        Dips below the threshold within one stencil width after the peak are
        skipped; the first one further out ends the collection.
        """
        xs: List[float] = []
        ss: List[float] = []
        for i, s in enumerate(slopes):
            if s > threshold:
                xs.append(mues[i])
                ss.append(s)
            elif i > peak_index + 2 * STENCIL_RADIUS:
                break
        return np.array(xs), np.array(ss)

    def _relevant_curve(self, slopes: Tuple[SlopePoint, ...]) -> Tuple[SlopePoint, ...]:
        for i, point in enumerate(slopes):
            if point.slope > RELEVANT_SLOPE:
                return slopes[i:]
        return slopes
