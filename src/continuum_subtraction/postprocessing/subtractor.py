"""Continuum subtraction and emission line integration.

Ie  = NB - mue * BB              (emission image)
BB* = BB + Ie * contingent       (broadband enhanced by the emission)

For a colour broadband each channel may receive its own emission image and
contingent; channels without one are kept as they are.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple
import numpy as np
import logging

from continuum_subtraction.exceptions import GeometryMismatch
from continuum_subtraction.preprocessing.fits_loader import CHANNEL_NAMES, channel_axis
from continuum_subtraction.results import ReductionResult

logger = logging.getLogger(__name__)


class ContinuumSubtractor:
    """Apply a reduction factor to full images.

    Example:
        >>> subtractor = ContinuumSubtractor()
        >>> emission = subtractor.apply(ha, red, result)
        >>> enhanced_red = subtractor.integrate(red, emission, contingent=0.8)
        >>> enhanced_rgb = subtractor.integrate_rgb(
        ...     rgb, {0: (ha_emission, 0.8), 2: (oiii_emission, 1.0)})
    """

    def __init__(self, truncate: bool = True):
        """Initialize the subtractor.

        Args:
            truncate: Clip results to [0, 1]
        """
        self.truncate = truncate

    def subtract(
        self,
        narrowband: np.ndarray,
        broadband: np.ndarray,
        mue: float,
        mask: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Compute ``narrowband - mue * broadband``.

        Args:
            narrowband: Narrowband image
            broadband: Broadband image of the same shape
            mue: Reduction factor (must be positive)
            mask: Optional mask in [0, 1]; the result is multiplied by ``1 - mask``

        Returns:
            float32 emission image
        """
        if mue <= 0:
            raise ValueError(f"Reduction factor must be positive, got {mue}")
        narrowband = np.asarray(narrowband, dtype=np.float32)
        broadband = np.asarray(broadband, dtype=np.float32)
        if narrowband.shape != broadband.shape:
            raise GeometryMismatch('narrowband', narrowband.shape, 'broadband', broadband.shape)

        emission = narrowband - broadband * np.float32(mue)
        if mask is not None:
            mask = np.asarray(mask, dtype=np.float32)
            if mask.shape != narrowband.shape:
                raise GeometryMismatch('narrowband', narrowband.shape, 'mask', mask.shape)
            emission = emission * (1 - mask)

        logger.info(f"Subtract {mue}")
        return self._finish(emission)

    def apply(
        self,
        narrowband: np.ndarray,
        broadband: np.ndarray,
        result: ReductionResult,
        mask: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Subtract the continuum found by a reduction from the original images.

        Uses ``result.effective_mue`` since ``broadband`` is the un-equalized image.

        Raises:
            ReductionFailure: If the reduction has no solution
        """
        result.raise_for_status()
        return self.subtract(narrowband, broadband, result.effective_mue, mask=mask)

    def integrate(
        self,
        broadband: np.ndarray,
        emission: np.ndarray,
        contingent: float = 1.0
    ) -> np.ndarray:
        """Add the emission image to a broadband channel.

        Args:
            broadband: Broadband channel
            emission: Emission image from :meth:`subtract`
            contingent: Weight of the emission

        Returns:
            float32 enhanced broadband channel
        """
        broadband = np.asarray(broadband, dtype=np.float32)
        emission = np.asarray(emission, dtype=np.float32)
        if broadband.shape != emission.shape:
            raise GeometryMismatch('broadband', broadband.shape, 'emission', emission.shape)
        if contingent == 0:
            return broadband.copy()
        return self._finish(broadband + emission * np.float32(contingent))

    def integrate_rgb(
        self,
        cube: np.ndarray,
        channels: Dict[int, Tuple[np.ndarray, float]]
    ) -> np.ndarray:
        """Add emission images to the channels of a colour image.

        Args:
            cube: Colour image with channels first (FITS order) or last
            channels: Emission image and contingent per channel index

        Returns:
            float32 colour image in the axis order of ``cube``; channels not
            listed in ``channels`` are copied unchanged

        Raises:
            ValueError: If ``cube`` is not 3D or a channel index is out of range
            GeometryMismatch: If an emission image differs from the channel shape
        """
        cube = np.asarray(cube, dtype=np.float32)
        if cube.ndim != 3:
            raise ValueError(f"Expected a 3D colour image, got shape {cube.shape}")
        axis = channel_axis(cube.shape)
        planes = np.moveaxis(cube, axis, 0)

        enhanced = planes.copy()
        for index, (emission, contingent) in sorted(channels.items()):
            if not 0 <= index < planes.shape[0]:
                raise ValueError(f"Channel {index} out of range for {planes.shape[0]} channels")
            label = CHANNEL_NAMES[index] if index < len(CHANNEL_NAMES) else str(index)
            logger.info(f"Integrate emission into {label} channel, contingent {contingent}")
            enhanced[index] = self.integrate(planes[index], emission, contingent)

        return np.moveaxis(enhanced, 0, axis)

    def _finish(self, data: np.ndarray) -> np.ndarray:
        if self.truncate:
            data = np.clip(data, 0.0, 1.0)
        return data.astype(np.float32, copy=False)
