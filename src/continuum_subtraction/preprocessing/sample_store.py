"""Flattened pixel samples for the blackness scan.

This module provides the PixelSampleStore class holding the narrowband and
broadband samples of an image pair together with the int8 evaluation mask.
"""

from __future__ import annotations
from typing import Optional, Tuple
import numpy as np
import logging

from continuum_subtraction.exceptions import DegenerateImage, GeometryMismatch

logger = logging.getLogger(__name__)


def _as_samples(image: np.ndarray) -> np.ndarray:
    """Flatten an image into a contiguous, read-only float array."""
    data = np.asarray(image)
    if not np.issubdtype(data.dtype, np.floating):
        data = data.astype(np.float64)
    samples = np.ascontiguousarray(data.ravel()).copy()
    samples.flags.writeable = False
    return samples


def _finite_flags(narrowband: np.ndarray, broadband: np.ndarray) -> np.ndarray:
    """1 where both samples are finite, 0 for NaN or infinite samples."""
    return (np.isfinite(narrowband) & np.isfinite(broadband)).astype(np.int8)


def mask_from_image(mask_image: np.ndarray) -> np.ndarray:
    """Derive evaluation flags from a mask image.

    Pixels brighter than the mask image mean (typically stars) are excluded
    with flag 0; all others get flag 1.

    Args:
        mask_image: Grayscale mask image

    Returns:
        int8 array of length mask_image.size
    """
    values = np.asarray(mask_image, dtype=np.float64).ravel()
    threshold = float(np.nanmean(values))
    # Values equal to the mean up to rounding are kept
    above = (values > threshold) & ~np.isclose(values, threshold, rtol=1e-9, atol=0.0)
    flags = np.where(above, 0, 1).astype(np.int8)
    rejected = int(flags.size - np.count_nonzero(flags))
    logger.info(f"# of pixel rejected {rejected}, mask threshold {threshold:.6f}")
    return flags


class PixelSampleStore:
    """Narrowband/broadband samples and the evaluation mask of an image pair.

    All three arrays have the length ``width * height`` of the source images.
    The sample arrays are read-only. The mask is owned by the store; scanners
    work on a copy obtained from :meth:`fresh_mask` so repeated reductions on
    the same store are independent. Pixels that are NaN or infinite in either
    image get mask 0 and are left out of all statistics.

    Example:
        >>> store = PixelSampleStore(ha_data, red_data, mask_image=star_mask)
        >>> equalized = store.equalize_broadband()
        >>> nb_median, bb_median = equalized.medians()
    """

    def __init__(
        self,
        narrowband: np.ndarray,
        broadband: np.ndarray,
        mask_image: Optional[np.ndarray] = None
    ):
        """Capture samples from the source images.

        Args:
            narrowband: Narrowband image (2D)
            broadband: Broadband image, same shape as narrowband
            mask_image: Optional exclusion mask image, same shape as narrowband

        Raises:
            GeometryMismatch: If the image shapes differ
        """
        narrowband = np.asarray(narrowband)
        broadband = np.asarray(broadband)

        if narrowband.shape != broadband.shape:
            raise GeometryMismatch('narrowband', narrowband.shape, 'broadband', broadband.shape)
        if mask_image is not None:
            mask_image = np.asarray(mask_image)
            if mask_image.shape != narrowband.shape:
                raise GeometryMismatch('narrowband', narrowband.shape, 'mask', mask_image.shape)

        self.shape: Tuple[int, ...] = narrowband.shape
        self.narrowband = _as_samples(narrowband)
        self.broadband = _as_samples(broadband)
        self.has_mask = mask_image is not None
        self.mask = _finite_flags(self.narrowband, self.broadband)
        if self.has_mask:
            self.mask &= mask_from_image(mask_image)
        self._log_non_finite()
        self.broadband_scale = 1.0

    @classmethod
    def from_samples(
        cls,
        narrowband: np.ndarray,
        broadband: np.ndarray,
        mask: Optional[np.ndarray] = None,
        shape: Optional[Tuple[int, ...]] = None
    ) -> 'PixelSampleStore':
        """Build a store from already flattened samples and mask flags.

        Args:
            narrowband: Narrowband samples
            broadband: Broadband samples
            mask: Optional flags (non-zero = evaluate); all ones if omitted
            shape: Original image shape (defaults to the flat length)

        Raises:
            GeometryMismatch: If the lengths differ
        """
        narrowband = np.asarray(narrowband).ravel()
        broadband = np.asarray(broadband).ravel()
        store = cls(narrowband, broadband)
        if mask is not None:
            flags = np.asarray(mask).ravel()
            if flags.shape != narrowband.shape:
                raise GeometryMismatch('narrowband', narrowband.shape, 'mask', flags.shape)
            finite = _finite_flags(store.narrowband, store.broadband)
            store.mask = (flags != 0).astype(np.int8) & finite
            store.has_mask = True
        if shape is not None:
            store.shape = tuple(shape)
        return store

    def __len__(self) -> int:
        return self.narrowband.size

    @property
    def pixel_count(self) -> int:
        """Number of samples, ``width * height``."""
        return self.narrowband.size

    def fresh_mask(self) -> np.ndarray:
        """Writable copy of the evaluation mask for one scan."""
        return self.mask.copy()

    def _finite_samples(self) -> Tuple[np.ndarray, np.ndarray]:
        """Samples of the pixels where both images are finite."""
        finite = np.isfinite(self.narrowband) & np.isfinite(self.broadband)
        if not finite.any():
            raise DegenerateImage("No pixel has finite narrowband and broadband values")
        return self.narrowband[finite], self.broadband[finite]

    def _log_non_finite(self) -> None:
        finite = _finite_flags(self.narrowband, self.broadband)
        non_finite = int(self.pixel_count - np.count_nonzero(finite))
        if non_finite:
            logger.warning(f"{non_finite} pixels with NaN or infinite values excluded")

    def medians(self) -> Tuple[float, float]:
        """Return ``(median_narrowband, median_broadband)`` over finite pixels."""
        narrowband, broadband = self._finite_samples()
        return float(np.median(narrowband)), float(np.median(broadband))

    def equalize_broadband(self, truncate: bool = True) -> 'PixelSampleStore':
        """Scale the broadband samples to the narrowband mean.

        The broadband is multiplied by ``f = mean(narrowband) / mean(broadband)``.
        This is a brightness match by a single scalar, not a linear regression.
        Both means are taken over the pixels where both images are finite.

        Args:
            truncate: Clip the scaled samples to [0, 1]

        Returns:
            New store sharing the narrowband samples and mask, with
            ``broadband_scale`` set to the total factor applied.

        Raises:
            DegenerateImage: If the broadband mean is zero or no pixel is finite
        """
        narrowband, broadband = self._finite_samples()
        bb_mean = float(np.mean(broadband))
        if bb_mean == 0:
            raise DegenerateImage("Cannot equalize a broadband image with zero mean")
        factor = float(np.mean(narrowband)) / bb_mean
        if not np.isfinite(factor):
            raise DegenerateImage(f"Equalization factor is not finite: {factor}")

        scaled = self.broadband * factor
        if truncate:
            # Clipping must not turn infinite samples into valid ones
            scaled = np.where(np.isfinite(scaled), np.clip(scaled, 0.0, 1.0), np.nan)
        logger.debug(f"Equalized broadband mean with factor {factor:.6f}")

        store = PixelSampleStore.__new__(PixelSampleStore)
        store.shape = self.shape
        store.narrowband = self.narrowband
        store.broadband = _as_samples(scaled)
        store.has_mask = self.has_mask
        store.mask = self.mask.copy()
        store.broadband_scale = self.broadband_scale * factor
        return store

    def __repr__(self) -> str:
        return (
            f"PixelSampleStore(shape={self.shape}, masked={self.has_mask}, "
            f"excluded={int(self.pixel_count - np.count_nonzero(self.mask))})"
        )
