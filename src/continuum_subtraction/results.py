"""Result records of a continuum reduction.

This module provides:
- ReductionStatus: Outcome of a reduction
- SlopePoint: One point of the diagnostic blackness/slope curve
- ReductionResult: Reduction factor, diagnostic curve and run details
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple
import math

from continuum_subtraction.exceptions import (
    Cancelled, InsufficientData, NoDominantSlope, NoSolution
)


class ReductionStatus(Enum):
    """Outcome of a reduction."""
    SUCCEEDED = 'succeeded'
    INSUFFICIENT_DATA = 'insufficient_data'
    NO_DOMINANT_SLOPE = 'no_dominant_slope'
    NO_SOLUTION = 'no_solution'
    CANCELLED = 'cancelled'

    @property
    def ok(self) -> bool:
        return self is ReductionStatus.SUCCEEDED


_FAILURES = {
    ReductionStatus.INSUFFICIENT_DATA: InsufficientData,
    ReductionStatus.NO_DOMINANT_SLOPE: NoDominantSlope,
    ReductionStatus.NO_SOLUTION: NoSolution,
    ReductionStatus.CANCELLED: Cancelled,
}


@dataclass(frozen=True)
class SlopePoint:
    """Diagnostic curve point.

    Attributes:
        mue: Trial reduction factor
        y: Fraction of black pixels in [0, 1]
        slope: Blackening rate, normalized to the maximum slope
    """
    mue: float
    y: float
    slope: float


@dataclass
class ReductionResult:
    """Outcome of a continuum reduction.

    ``mue`` refers to the mean-equalized broadband the scan ran on.
    ``effective_mue`` is the same factor expressed for the original broadband,
    i.e. ``narrowband - effective_mue * broadband`` equals
    ``narrowband - mue * equalized_broadband``.

    Attributes:
        status: Outcome of the reduction
        mue: Reduction factor, ``<= 0`` when no solution was found
        curve: Diagnostic curve from the first visually relevant slope on
        broadband_scale: Mean-equalization factor applied to the broadband
        initial_mue: Starting guess of the scan
        step_size: Scan increment
        iterations: Completed scan iterations
        scan_points: Number of raw curve points recorded
        message: Human-readable explanation of a failure
    """
    status: ReductionStatus
    mue: float = -1.0
    curve: Tuple[SlopePoint, ...] = field(default_factory=tuple)
    broadband_scale: float = 1.0
    initial_mue: float = 0.0
    step_size: float = 0.0
    iterations: int = 0
    scan_points: int = 0
    message: str = ''

    @property
    def ok(self) -> bool:
        return self.status.ok and self.mue > 0

    @property
    def effective_mue(self) -> float:
        """Reduction factor relative to the un-equalized broadband."""
        if self.mue <= 0:
            return self.mue
        return self.mue * self.broadband_scale

    def raise_for_status(self) -> 'ReductionResult':
        """Raise the typed failure matching the status; return self on success.

        Raises:
            InsufficientData, NoDominantSlope, NoSolution, Cancelled
        """
        if self.status is ReductionStatus.SUCCEEDED:
            if self.mue > 0 and math.isfinite(self.mue):
                return self
            raise NoSolution(self.message or f"Reduction returned mue={self.mue}")
        raise _FAILURES[self.status](self.message or self.status.value)

    def __repr__(self):
        return (
            f"ReductionResult(status={self.status.value}, mue={self.mue:.8f}, "
            f"curve={len(self.curve)} points, iterations={self.iterations})"
        )
