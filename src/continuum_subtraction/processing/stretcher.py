"""Display stretches for emission images.

This module provides the Stretcher class. Its default 'auto_stf' method is
the screen transfer function auto stretch: a shadows clipping point a few
MAD units below the median, and a midtones balance that maps the median
background to a target level.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Literal
import numpy as np
import logging

from astropy.stats import mad_std
from astropy.visualization import AsinhStretch, LinearStretch, SqrtStretch

from continuum_subtraction.config import DEFAULT_SHADOWS_CLIPPING, DEFAULT_TARGET_BACKGROUND

logger = logging.getLogger(__name__)


StretchMethod = Literal['auto_stf', 'linear', 'sqrt', 'asinh']


def mtf(m: float, x):
    """Midtones transfer function with balance ``m``.

    Maps 0 to 0, ``m`` to 0.5 and 1 to 1.
    """
    x = np.asarray(x, dtype=np.float64)
    if m == 0.5:
        return x
    with np.errstate(divide='ignore', invalid='ignore'):
        y = ((m - 1) * x) / ((2 * m - 1) * x - m)
    y = np.where(x <= 0, 0.0, np.where(x >= 1, 1.0, y))
    if y.ndim == 0:
        return float(y)
    return y


@dataclass(frozen=True)
class STFParameters:
    """Screen transfer function parameters.

    Attributes:
        shadows: Shadows clipping point c0 in [0, 1]
        midtones: Midtones balance m
        highlights: Highlights clipping point c1
    """
    shadows: float
    midtones: float
    highlights: float = 1.0


class Stretcher:
    """Apply display stretches to linear image data in [0, 1].

    Example:
        >>> stretcher = Stretcher()
        >>> preview = stretcher.stretch(emission, method='auto_stf')
        >>> stretcher.last_parameters
        STFParameters(shadows=0.0012, midtones=0.031, highlights=1.0)
    """

    def __init__(
        self,
        shadows_clipping: float = DEFAULT_SHADOWS_CLIPPING,
        target_background: float = DEFAULT_TARGET_BACKGROUND
    ):
        """Initialize the Stretcher.

        Args:
            shadows_clipping: Shadows clipping point in MAD units from the median
            target_background: Target median background after stretching
        """
        if not (0 < target_background < 1):
            raise ValueError(f"target_background must be in (0, 1), got {target_background}")
        self.shadows_clipping = shadows_clipping
        self.target_background = target_background
        self.last_parameters = None

    def auto_stf(self, data: np.ndarray) -> STFParameters:
        """Compute auto stretch parameters from image statistics."""
        finite = np.asarray(data, dtype=np.float64)
        finite = finite[np.isfinite(finite)]
        if finite.size == 0:
            raise ValueError("data has no finite values")

        median = float(np.median(finite))
        # MAD scaled to be coherent with a normal distribution
        mad = float(mad_std(finite))

        c0 = 0.0
        if 1 + mad != 1:
            c0 = median + self.shadows_clipping * mad
        c0 = min(max(c0, 0.0), 1.0)
        m = mtf(self.target_background, median - c0)

        logger.debug(f"Auto STF: median={median:.6f}, MAD={mad:.6f}, c0={c0:.6f}, m={m:.6f}")
        return STFParameters(shadows=c0, midtones=float(m))

    def apply_stf(self, data: np.ndarray, params: STFParameters) -> np.ndarray:
        """Clip shadows and highlights, rescale, and apply the midtones transfer."""
        data = np.asarray(data, dtype=np.float64)
        span = params.highlights - params.shadows
        if span <= 0:
            return np.zeros_like(data)
        rescaled = np.clip((data - params.shadows) / span, 0, 1)
        return mtf(params.midtones, rescaled)

    def stretch(
        self,
        data: np.ndarray,
        method: StretchMethod = 'auto_stf',
        **kwargs
    ) -> np.ndarray:
        """Stretch data for display.

        Args:
            data: Linear input data in [0, 1]
            method: Stretch method
            **kwargs: Method parameters ('a' for asinh)

        Returns:
            Stretched data in [0, 1]
        """
        if data is None or data.size == 0:
            raise ValueError("data is empty or None")

        logger.debug(f"Applying {method} stretch")

        if method == 'auto_stf':
            params = self.auto_stf(data)
            self.last_parameters = params
            stretched = self.apply_stf(data, params)
        elif method == 'linear':
            stretched = LinearStretch()(np.clip(data, 0, 1))
        elif method == 'sqrt':
            stretched = SqrtStretch()(np.clip(data, 0, 1))
        elif method == 'asinh':
            a = kwargs.get('a', 0.1)
            if a <= 0:
                raise ValueError(f"Parameter 'a' must be positive, got {a}")
            stretched = AsinhStretch(a=a)(np.clip(data, 0, 1))
        else:
            raise ValueError(
                f"Unknown stretch method '{method}'. "
                f"Must be one of: auto_stf, linear, sqrt, asinh"
            )

        stretched = np.nan_to_num(stretched, nan=0.0, posinf=1.0, neginf=0.0)
        return np.clip(stretched, 0, 1)
