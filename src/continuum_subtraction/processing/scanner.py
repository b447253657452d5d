"""Blackness scan over trial reduction factors.

For an increasing sequence of trial factors ``mue`` the scanner counts the
pixels for which ``narrowband - broadband * mue <= 0`` ("black"). A pixel that
goes black is frozen out of later iterations: subtracting more continuum can
only darken it further. That holds only for positive broadband samples;
pixels with zero or negative broadband are not reconsidered either.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import math
import numpy as np
import logging

from continuum_subtraction.exceptions import GeometryMismatch

logger = logging.getLogger(__name__)

# The scan starts this many steps below the initial guess
LEAD_IN_STEPS = 4


@dataclass(frozen=True)
class CurvePoint:
    """One scan sample: trial factor and number of black pixels."""
    mue: float
    black_count: int


@dataclass
class ScanContext:
    """Caller-owned control state of a running scan.

    A GUI sets the cancellation flag through :meth:`cancel` (for example from
    a button handler reached through ``event_callback``), or supplies a
    ``should_cancel`` callable that is polled once per iteration.

    Attributes:
        progress_callback: Called with the black fraction in [0, 1] whenever it
            grows by at least one per mille
        event_callback: Called every ``event_interval`` iterations, before the
            cancellation check; use it to pump a host event loop
        should_cancel: Optional cancellation query
        event_interval: Iterations between event callback calls
        cancelled: Cancellation flag
    """
    progress_callback: Optional[Callable[[float], None]] = None
    event_callback: Optional[Callable[[], None]] = None
    should_cancel: Optional[Callable[[], bool]] = None
    event_interval: int = 1
    cancelled: bool = False

    def cancel(self) -> None:
        """Request cancellation of the running scan."""
        self.cancelled = True

    def is_cancelled(self) -> bool:
        if self.cancelled:
            return True
        if self.should_cancel is not None and self.should_cancel():
            self.cancelled = True
        return self.cancelled


@dataclass
class ScanOutcome:
    """Result of a blackness scan.

    Attributes:
        points: Curve points in increasing mue order
        final_mue: Last trial factor evaluated
        iterations: Number of completed iterations
        pixel_count: Total number of samples N
        black_count: Black (or excluded) pixels after the last iteration
        cancelled: True if the scan was aborted
    """
    points: List[CurvePoint] = field(default_factory=list)
    final_mue: float = 0.0
    iterations: int = 0
    pixel_count: int = 0
    black_count: int = 0
    cancelled: bool = False

    @property
    def mues(self) -> np.ndarray:
        return np.array([p.mue for p in self.points], dtype=np.float64)

    @property
    def black_counts(self) -> np.ndarray:
        return np.array([p.black_count for p in self.points], dtype=np.int64)


class BlacknessScanner:
    """Scan trial reduction factors and record the blackness curve.

    Example:
        >>> scanner = BlacknessScanner(step_size=0.001)
        >>> mask = store.fresh_mask()
        >>> outcome = scanner.scan(store.narrowband, store.broadband, mask,
        ...                        initial_mue=0.2, black_pixel_limit=0.9 * len(mask))
        >>> len(outcome.points)
    """

    def __init__(self, step_size: float = 0.001):
        """Initialize the scanner.

        Args:
            step_size: Increment of mue per iteration
        """
        if step_size <= 0:
            raise ValueError(f"step_size must be positive, got {step_size}")
        self.step_size = step_size

    def scan(
        self,
        narrowband: np.ndarray,
        broadband: np.ndarray,
        mask: np.ndarray,
        initial_mue: float,
        black_pixel_limit: float,
        context: Optional[ScanContext] = None
    ) -> ScanOutcome:
        """Run the scan until the black pixel limit is reached or cancelled.

        The mask is mutated in place: pixels found black are set to 0 and stay
        0. Pixels already 0 on entry count as black from the first iteration
        but are never evaluated.

        There is no iteration cap. Input where pixels never go black loops
        until the context cancels the scan.

        Args:
            narrowband: Narrowband samples (length N)
            broadband: Broadband samples (length N)
            mask: int8 flags (length N), mutated
            initial_mue: Initial guess of the reduction factor
            black_pixel_limit: Black pixel count at which the scan stops
            context: Progress, event and cancellation control

        Returns:
            ScanOutcome with the recorded curve

        Raises:
            GeometryMismatch: If the arrays differ in length
            ValueError: If the mask is not writable or the limit exceeds N
        """
        narrowband = np.asarray(narrowband).ravel()
        broadband = np.asarray(broadband).ravel()
        if narrowband.size != broadband.size:
            raise GeometryMismatch('narrowband', narrowband.shape, 'broadband', broadband.shape)
        if mask.size != narrowband.size:
            raise GeometryMismatch('narrowband', narrowband.shape, 'mask', mask.shape)
        if not mask.flags.writeable:
            raise ValueError("mask must be writable")
        if not 0 <= black_pixel_limit <= narrowband.size:
            raise ValueError(
                f"black_pixel_limit must be in [0, {narrowband.size}], got {black_pixel_limit}"
            )

        context = context or ScanContext()
        n = narrowband.size
        start = initial_mue - LEAD_IN_STEPS * self.step_size
        active = np.flatnonzero(mask)

        outcome = ScanOutcome(final_mue=start, pixel_count=n, black_count=n - active.size)
        count = 0
        progress = 0

        logger.debug(
            f"Scan start mue={start:.6f}, step={self.step_size}, "
            f"limit={black_pixel_limit:.0f} of {n}"
        )

        while True:
            if context.event_callback is not None and outcome.iterations % context.event_interval == 0:
                context.event_callback()
            if context.is_cancelled():
                logger.warning(
                    f"***cancel*** mue = {outcome.final_mue:.4f}, black level counts = {count}"
                )
                outcome.cancelled = True
                return outcome

            mue = start + (outcome.iterations + 1) * self.step_size

            per_mille = math.floor(count / n * 1000)
            if per_mille > progress:
                if context.progress_callback is not None:
                    context.progress_callback(count / n)
                progress = per_mille

            baseline = n - active.size
            is_black = (narrowband[active] - broadband[active] * mue) <= 0
            mask[active[is_black]] = 0
            active = active[~is_black]

            outcome.iterations += 1
            outcome.final_mue = mue
            outcome.black_count = n - active.size

            if active.size > 0:
                count = n - active.size
                outcome.points.append(CurvePoint(mue, count))

            if baseline >= black_pixel_limit:
                logger.debug(
                    f"Black pixel limit reached at mue={mue:.6f} "
                    f"after {outcome.iterations} iterations"
                )
                return outcome
