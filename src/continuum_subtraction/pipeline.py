"""Continuum reduction orchestration.

This module provides the ContinuumReducer class that validates an image pair,
equalizes the broadband brightness, derives the starting guess, and runs the
blackness scan and turning point fit to produce the reduction factor mue.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, Union
import numpy as np
import logging

from continuum_subtraction.config import ReductionSettings
from continuum_subtraction.exceptions import DegenerateImage, IdenticalViews
from continuum_subtraction.postprocessing.history_tracker import HistoryTracker
from continuum_subtraction.preprocessing.fits_loader import LoadedImage
from continuum_subtraction.preprocessing.sample_store import PixelSampleStore
from continuum_subtraction.processing.curve_fitter import CurveFitter, FitResult
from continuum_subtraction.processing.scanner import BlacknessScanner, ScanContext, ScanOutcome
from continuum_subtraction.results import ReductionResult, ReductionStatus

logger = logging.getLogger(__name__)

ImageInput = Union[np.ndarray, LoadedImage]


class ReducerState(Enum):
    """Lifecycle of a reduction."""
    IDLE = 'idle'
    VALIDATING = 'validating'
    SCANNING = 'scanning'
    FITTING = 'fitting'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


def initial_mue(narrowband_median: float, broadband_median: float) -> float:
    """Starting guess: half the ratio of the smaller to the larger median."""
    high = max(narrowband_median, broadband_median)
    if not high > 0:
        raise DegenerateImage(
            f"Medians must not both be <= 0 (narrowband={narrowband_median}, "
            f"broadband={broadband_median})"
        )
    return 0.5 * min(narrowband_median, broadband_median) / high


class ContinuumReducer:
    """Find the fraction of a broadband image to subtract from a narrowband image.

    The broadband is first scaled to the narrowband mean. The scan then
    increases the trial factor until ``limit_percent`` of all pixels are
    black, and the curve fit turns the blackness curve into the factor at
    which pixels blacken fastest.

    Example:
        >>> reducer = ContinuumReducer(ReductionSettings(limit_percent=90))
        >>> result = reducer.reduce(ha, red, mask=star_mask)
        >>> if result.ok:
        ...     emission = ha - result.effective_mue * red
    """

    def __init__(
        self,
        settings: Optional[ReductionSettings] = None,
        history: Optional[HistoryTracker] = None
    ):
        """Initialize the reducer.

        Args:
            settings: Run configuration (defaults to ReductionSettings())
            history: Tracker receiving one entry per stage
        """
        self.settings = settings or ReductionSettings()
        self.history = history if history is not None else HistoryTracker()
        self.scanner = BlacknessScanner(self.settings.step_size)
        self.fitter = CurveFitter(self.settings.step_size)

        self.state = ReducerState.IDLE
        self.last_scan: Optional[ScanOutcome] = None
        self.last_fit: Optional[FitResult] = None

    def _set_state(self, state: ReducerState) -> None:
        logger.debug(f"Reducer state {self.state.value} -> {state.value}")
        self.state = state

    def reduce(
        self,
        narrowband: ImageInput,
        broadband: ImageInput,
        mask: Optional[ImageInput] = None,
        context: Optional[ScanContext] = None
    ) -> ReductionResult:
        """Validate the inputs and compute the reduction factor.

        Args:
            narrowband: Narrowband image (array or LoadedImage)
            broadband: Broadband image of the same geometry
            mask: Optional exclusion mask image (bright pixels are excluded)
            context: Progress, event and cancellation control of the scan

        Returns:
            ReductionResult; check ``result.ok`` or call ``raise_for_status()``

        Raises:
            IdenticalViews: If narrowband and broadband (or the mask) are the same image
            GeometryMismatch: If the image dimensions differ
            DegenerateImage: If the images are black or have no finite pixels
        """
        self._set_state(ReducerState.VALIDATING)
        try:
            self._check_distinct(narrowband, broadband, mask)
            store = PixelSampleStore(
                _pixels(narrowband),
                _pixels(broadband),
                mask_image=None if mask is None else _pixels(mask)
            )
        except Exception:
            self._set_state(ReducerState.FAILED)
            raise

        logger.info(f"Narrowband image....{_name(narrowband, 'narrowband')}")
        logger.info(f"Broadband image.....{_name(broadband, 'broadband')}")
        if mask is not None:
            logger.info(f"Mask image..........{_name(mask, 'mask')}")

        return self.reduce_store(store, context=context)

    def reduce_store(
        self,
        store: PixelSampleStore,
        context: Optional[ScanContext] = None
    ) -> ReductionResult:
        """Compute the reduction factor from prepared samples.

        The store is not modified; its broadband is equalized into a copy and
        the scan runs on a fresh copy of the mask.

        Args:
            store: Samples of a validated image pair
            context: Progress, event and cancellation control of the scan

        Returns:
            ReductionResult

        Raises:
            DegenerateImage: If the statistics leave nothing to scan
        """
        try:
            return self._reduce_store(store, context)
        except Exception:
            self._set_state(ReducerState.FAILED)
            raise

    def _reduce_store(
        self,
        store: PixelSampleStore,
        context: Optional[ScanContext]
    ) -> ReductionResult:
        settings = self.settings
        if self.state is not ReducerState.VALIDATING:
            self._set_state(ReducerState.VALIDATING)
        if context is None:
            context = ScanContext(event_interval=settings.event_interval)

        equalized = store.equalize_broadband(truncate=settings.truncate_equalized)
        self.history.record(
            'equalize_mean',
            {'factor': round(equalized.broadband_scale, 8), 'truncate': settings.truncate_equalized},
            'PixelSampleStore'
        )

        nb_median, bb_median = equalized.medians()
        start = initial_mue(nb_median, bb_median)
        limit = settings.black_pixel_limit(equalized.pixel_count)

        logger.info(f"Start with mue.......{start}")
        logger.info(f"Increment............{settings.step_size}")
        logger.info(f"Black pixel limit....{limit:.0f} of {equalized.pixel_count}")

        self._set_state(ReducerState.SCANNING)
        scan = self.scanner.scan(
            equalized.narrowband,
            equalized.broadband,
            equalized.fresh_mask(),
            initial_mue=start,
            black_pixel_limit=limit,
            context=context
        )
        self.last_scan = scan
        self.history.record(
            'scan',
            {
                'initial_mue': round(start, 8),
                'step_size': settings.step_size,
                'limit_percent': settings.limit_percent,
                'iterations': scan.iterations,
            },
            'BlacknessScanner',
            notes='cancelled' if scan.cancelled else None
        )

        base = dict(
            broadband_scale=equalized.broadband_scale,
            initial_mue=start,
            step_size=settings.step_size,
            iterations=scan.iterations,
            scan_points=len(scan.points),
        )

        if scan.cancelled:
            self._set_state(ReducerState.CANCELLED)
            self.last_fit = None
            return ReductionResult(
                ReductionStatus.CANCELLED,
                message=f"Cancelled after {scan.iterations} iterations",
                **base
            )

        self._set_state(ReducerState.FITTING)
        fit = self.fitter.fit(scan.points, scan.pixel_count)
        self.last_fit = fit
        self.history.record(
            'fit',
            {'status': fit.status.value, 'mue': round(fit.mue, 8), 'candidates': fit.candidates},
            'CurveFitter'
        )

        logger.info(f"Curve points {len(fit.curve)}")
        if fit.status is ReductionStatus.SUCCEEDED and fit.mue > 0:
            self._set_state(ReducerState.SUCCEEDED)
            logger.info(
                f"Reduction factor mue: {fit.mue:.8f} "
                f"({fit.mue * equalized.broadband_scale:.8f} of the original broadband)"
            )
            return ReductionResult(ReductionStatus.SUCCEEDED, mue=fit.mue, curve=fit.curve, **base)

        status = fit.status
        if status is ReductionStatus.SUCCEEDED:
            status = ReductionStatus.NO_SOLUTION
        self._set_state(ReducerState.FAILED)
        logger.warning("CS processing returned no solution")
        return ReductionResult(
            status,
            mue=-1.0,
            curve=fit.curve,
            message=fit.message or f"Turning point {fit.mue} is not positive",
            **base
        )

    def _check_distinct(self, narrowband, broadband, mask) -> None:
        if _same_image(narrowband, broadband):
            raise IdenticalViews("Narrowband and broadband must be different")
        if mask is not None and (_same_image(mask, narrowband) or _same_image(mask, broadband)):
            raise IdenticalViews("The mask must be different to narrowband and broadband")


def _pixels(image: ImageInput) -> np.ndarray:
    return image.data if isinstance(image, LoadedImage) else np.asarray(image)


def _name(image: ImageInput, default: str) -> str:
    return image.name if isinstance(image, LoadedImage) else default


def _same_image(a: ImageInput, b: ImageInput) -> bool:
    """True if both inputs refer to the same source image."""
    if a is b:
        return True
    if isinstance(a, LoadedImage) and isinstance(b, LoadedImage):
        if a.name == b.name and a.channel == b.channel:
            return True
    return _pixels(a) is _pixels(b)
