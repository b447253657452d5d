"""Pytest configuration and fixtures for continuum_subtraction tests."""

import pytest
import numpy as np
from astropy.io import fits

from fixtures.synthetic_pairs import make_pair, write_fits


# ============================================================================
# Test Data Fixtures
# ============================================================================

@pytest.fixture(scope="session")
def continuum_fraction():
    """Continuum fraction built into the synthetic pairs."""
    return 0.4


@pytest.fixture(scope="function")
def synthetic_pair(continuum_fraction):
    """100x100 (narrowband, broadband) pair with a known continuum fraction."""
    return make_pair(shape=(100, 100), continuum=continuum_fraction)


@pytest.fixture(scope="function")
def star_mask(synthetic_pair):
    """Mask image marking 1% of the pixels as stars."""
    mask = np.zeros_like(synthetic_pair[0])
    mask[::10, ::10] = 1.0
    return mask


@pytest.fixture(scope="function")
def sample_fits_data():
    """Random 2D image data with a minimal header."""
    np.random.seed(42)
    data = np.random.rand(40, 50).astype(np.float32)
    header = fits.Header()
    header['OBJECT'] = 'Test Field'
    header['FILTER'] = 'Ha'
    return data, header


@pytest.fixture(scope="function")
def sample_rgb_cube():
    """Colour cube in FITS axis order (channels first)."""
    cube = np.stack([np.full((20, 30), v, dtype=np.float32) for v in (0.1, 0.2, 0.3)])
    return cube


# ============================================================================
# Component Fixtures
# ============================================================================

@pytest.fixture
def settings():
    """ReductionSettings with defaults."""
    from continuum_subtraction import ReductionSettings
    return ReductionSettings()


@pytest.fixture
def fits_loader():
    """FITSLoader instance."""
    from continuum_subtraction.preprocessing import FITSLoader
    return FITSLoader()


@pytest.fixture
def scanner():
    """BlacknessScanner with the default step."""
    from continuum_subtraction.processing import BlacknessScanner
    return BlacknessScanner(step_size=0.001)


@pytest.fixture
def curve_fitter():
    """CurveFitter with the default step."""
    from continuum_subtraction.processing import CurveFitter
    return CurveFitter(step_size=0.001)


@pytest.fixture
def stretcher():
    """Stretcher instance."""
    from continuum_subtraction.processing import Stretcher
    return Stretcher()


@pytest.fixture
def reducer():
    """ContinuumReducer with default settings."""
    from continuum_subtraction import ContinuumReducer
    return ContinuumReducer()


@pytest.fixture
def subtractor():
    """ContinuumSubtractor instance."""
    from continuum_subtraction.postprocessing import ContinuumSubtractor
    return ContinuumSubtractor()


@pytest.fixture
def history_tracker():
    """HistoryTracker instance."""
    from continuum_subtraction.postprocessing import HistoryTracker
    return HistoryTracker()


@pytest.fixture
def image_exporter():
    """ImageExporter instance."""
    from continuum_subtraction.postprocessing import ImageExporter
    return ImageExporter()


# ============================================================================
# Temporary File Fixtures
# ============================================================================

@pytest.fixture
def temp_output_dir(tmp_path):
    """Temporary directory for test outputs."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(exist_ok=True)
    return output_dir


@pytest.fixture
def temp_fits_file(tmp_path, sample_fits_data):
    """Create a temporary FITS file for testing."""
    data, header = sample_fits_data
    fits_file = tmp_path / "test.fits"
    fits.PrimaryHDU(data=data, header=header).writeto(fits_file, overwrite=True)
    return fits_file


@pytest.fixture
def synthetic_fits_files(tmp_path, synthetic_pair):
    """Synthetic pair written as Ha.fits and Red.fits."""
    narrowband, broadband = synthetic_pair
    return (
        write_fits(tmp_path / "Ha.fits", narrowband, FILTER='Ha'),
        write_fits(tmp_path / "Red.fits", broadband, FILTER='R'),
    )


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
