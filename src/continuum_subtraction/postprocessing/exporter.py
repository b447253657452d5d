"""Export of emission images.

This module provides the ImageExporter class for saving the continuum
subtracted image as FITS (full precision, with EMISSION keyword and processing
history) and as a stretched PNG preview.
"""

from typing import Optional, Dict, Any, Union
from pathlib import Path
import numpy as np
import logging

from astropy.io import fits
from PIL import Image, PngImagePlugin

from continuum_subtraction.postprocessing.history_tracker import HistoryTracker

logger = logging.getLogger(__name__)


class ImageExporter:
    """Save emission images with their provenance.

    Example:
        >>> exporter = ImageExporter()
        >>> exporter.save_fits(emission, 'Ha_emission.fits', history=reducer.history,
        ...                    keywords={'CS_MUE': (result.effective_mue, 'Reduction factor')})
        >>> exporter.save_png(stretcher.stretch(emission), 'Ha_emission.png')
    """

    def save_fits(
        self,
        data: np.ndarray,
        filepath: Union[str, Path],
        header: Optional[fits.Header] = None,
        history: Optional[HistoryTracker] = None,
        keywords: Optional[Dict[str, Any]] = None,
        emission: bool = True,
        overwrite: bool = True
    ) -> Path:
        """Save an image as 32-bit float FITS.

        The header gets ``EMISSION = T`` (unless ``emission`` is False), any
        extra ``keywords`` (value or ``(value, comment)``), and one HISTORY
        card per recorded step.

        Args:
            data: 2D image data
            filepath: Output path
            header: Header to start from (e.g. the narrowband header)
            history: Processing history to append as HISTORY cards
            keywords: Additional header keywords
            emission: Mark the image as an emission line image
            overwrite: Replace an existing file

        Returns:
            Path to saved file
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        out_header = header.copy() if header is not None else fits.Header()
        # Drop structural keywords of the source, astropy regenerates them
        for key in ('SIMPLE', 'BITPIX', 'NAXIS', 'NAXIS1', 'NAXIS2', 'NAXIS3', 'EXTEND',
                    'BSCALE', 'BZERO'):
            out_header.remove(key, ignore_missing=True, remove_all=True)

        if emission:
            out_header['EMISSION'] = (True, 'Emission line image')
        for key, value in (keywords or {}).items():
            out_header[key] = value
        if history is not None:
            for comment in history.to_fits_header():
                out_header['HISTORY'] = comment

        hdu = fits.PrimaryHDU(data=np.asarray(data, dtype=np.float32), header=out_header)
        hdu.writeto(filepath, overwrite=overwrite)

        logger.info(f"Saved FITS to {filepath}")
        return filepath

    def save_png(
        self,
        data: np.ndarray,
        filepath: Union[str, Path],
        metadata: Optional[Dict[str, Any]] = None,
        bit_depth: int = 8
    ) -> Path:
        """Save a grayscale preview as PNG.

        Args:
            data: 2D image data in [0, 1] (stretch it first)
            filepath: Output path
            metadata: Optional PNG text chunks
            bit_depth: 8 or 16

        Returns:
            Path to saved file
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"Expected 2D grayscale data, got shape {data.shape}")
        data = np.clip(np.nan_to_num(data.astype(np.float64)), 0, 1)

        if bit_depth == 8:
            data_scaled = np.round(data * 255).astype(np.uint8)
        elif bit_depth == 16:
            data_scaled = np.round(data * 65535).astype(np.uint16)
        else:
            raise ValueError(f"bit_depth must be 8 or 16, got {bit_depth}")

        img = Image.fromarray(data_scaled)

        pnginfo = None
        if metadata:
            pnginfo = PngImagePlugin.PngInfo()
            for key, value in metadata.items():
                pnginfo.add_text(str(key), str(value))

        img.save(filepath, format='PNG', pnginfo=pnginfo)

        logger.info(f"Saved {bit_depth}-bit PNG to {filepath}")
        return filepath
