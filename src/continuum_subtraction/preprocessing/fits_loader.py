"""FITS image loading for continuum subtraction.

This module provides the FITSLoader class, which reads narrowband, broadband
and mask images from FITS files, paths or open HDU lists and returns 2D
float arrays. Colour broadband images are reduced to a single channel.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
import numpy as np
import logging

from astropy.io import fits

logger = logging.getLogger(__name__)

CHANNEL_NAMES = ('Red', 'Green', 'Blue')


def channel_axis(shape) -> int:
    """Axis holding the channels of a colour cube: 0 (FITS order) or -1."""
    # FITS colour cubes store channels first; arrays from other tools channels last
    if shape[0] in (3, 4) and shape[-1] not in (3, 4):
        return 0
    return -1 if shape[-1] in (3, 4) else 0


@dataclass
class LoadedImage:
    """A single image plane read from a FITS source.

    Attributes:
        name: Identifier of the image (file stem or given name)
        data: 2D float32 pixel array
        header: FITS header of the HDU the data came from
        channel: Channel index extracted from a colour image, or None
    """
    name: str
    data: np.ndarray
    header: fits.Header
    channel: Optional[int] = None

    @property
    def shape(self):
        return self.data.shape


class FITSLoader:
    """Read image planes from FITS inputs.

    Accepts file paths, file-like objects and already opened HDU lists. The
    first HDU carrying image data is used. Three-dimensional data is treated
    as a colour cube with channels along the first (FITS) or last axis.

    Example:
        >>> loader = FITSLoader()
        >>> ha = loader.load('Ha.fits')
        >>> red = loader.load('RGB.fits', channel=0)
    """

    def load(
        self,
        source: Union[str, Path, fits.HDUList],
        channel: Optional[int] = None,
        name: Optional[str] = None
    ) -> LoadedImage:
        """Load one image plane.

        Args:
            source: FITS path, file object or HDUList
            channel: Channel to extract from colour data (default: 0 for colour, ignored for mono)
            name: Identifier to use instead of the file stem

        Returns:
            LoadedImage with 2D float32 data

        Raises:
            ValueError: If no image data is found or the channel is out of range
        """
        data, header, default_name = self._read(source)
        name = name or default_name
        plane, used_channel = self._select_plane(data, channel, name)
        logger.debug(f"Loaded {name}: shape={plane.shape}, channel={used_channel}")
        return LoadedImage(
            name=name,
            data=np.asarray(plane, dtype=np.float32),
            header=header.copy(),
            channel=used_channel
        )

    def load_cube(
        self,
        source: Union[str, Path, fits.HDUList],
        name: Optional[str] = None
    ) -> LoadedImage:
        """Load the complete image data, keeping all channels of a colour image.

        Args:
            source: FITS path, file object or HDUList
            name: Identifier to use instead of the file stem

        Returns:
            LoadedImage with 2D or 3D float32 data in the axis order of the file

        Raises:
            ValueError: If no 2D or 3D image data is found
        """
        data, header, default_name = self._read(source)
        name = name or default_name
        if data.ndim not in (2, 3):
            raise ValueError(f"{name}: expected 2D or 3D image data, got shape {data.shape}")
        logger.debug(f"Loaded {name}: shape={data.shape}")
        return LoadedImage(
            name=name,
            data=np.asarray(data, dtype=np.float32),
            header=header.copy()
        )

    def _read(self, source):
        if isinstance(source, fits.HDUList):
            data, header = self._first_image(source)
            return data, header, 'hdulist'
        with fits.open(source) as hdul:
            data, header = self._first_image(hdul)
            data = np.array(data)
            header = header.copy()
        default_name = Path(source).stem if isinstance(source, (str, Path)) else 'stream'
        return data, header, default_name

    def _first_image(self, hdul: fits.HDUList):
        """Return data and header of the first HDU holding an image."""
        for hdu in hdul:
            if hdu.data is not None and getattr(hdu.data, 'ndim', 0) >= 2:
                return hdu.data, hdu.header
        raise ValueError("No image data found in FITS input")

    def _select_plane(self, data: np.ndarray, channel: Optional[int], name: str):
        if data.ndim == 2:
            if channel not in (None, 0):
                logger.warning(f"{name} is monochrome, ignoring channel {channel}")
            return data, None

        if data.ndim != 3:
            raise ValueError(f"{name}: expected 2D or 3D image data, got shape {data.shape}")

        channel = 0 if channel is None else channel
        axis = channel_axis(data.shape)
        count = data.shape[axis]
        if not (0 <= channel < count):
            raise ValueError(f"{name}: channel {channel} out of range for {count} channels")

        plane = data[channel] if axis == 0 else data[..., channel]
        label = CHANNEL_NAMES[channel] if channel < len(CHANNEL_NAMES) else str(channel)
        logger.info(f"Extracted {label} channel of {name}")
        return plane, channel
