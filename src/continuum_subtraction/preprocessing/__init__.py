"""Input handling for continuum subtraction.

- FITSLoader: Read image planes from FITS inputs
- PixelSampleStore: Flattened samples and evaluation mask of an image pair
"""

from .fits_loader import FITSLoader, LoadedImage
from .sample_store import PixelSampleStore, mask_from_image

__all__ = ['FITSLoader', 'LoadedImage', 'PixelSampleStore', 'mask_from_image']
