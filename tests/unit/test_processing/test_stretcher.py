"""Unit tests for Stretcher."""

import pytest
import numpy as np

from continuum_subtraction.processing import Stretcher, STFParameters
from continuum_subtraction.processing.stretcher import mtf


class TestMidtonesTransfer:
    """Test the midtones transfer function."""

    def test_fixed_points(self):
        """Test that 0, m and 1 map to 0, 0.5 and 1."""
        assert mtf(0.25, 0.0) == 0.0
        assert mtf(0.25, 0.25) == pytest.approx(0.5)
        assert mtf(0.25, 1.0) == 1.0

    def test_identity_balance(self):
        """Test that a balance of 0.5 leaves data unchanged."""
        x = np.linspace(0, 1, 11)

        assert np.allclose(mtf(0.5, x), x)

    def test_monotonic(self):
        """Test that the transfer is increasing."""
        y = mtf(0.1, np.linspace(0, 1, 101))

        assert np.all(np.diff(y) > 0)


class TestStretcher:
    """Test display stretches."""

    def test_auto_stf_parameters(self, stretcher):
        """Test shadows clipping below the median and a brightening midtone."""
        np.random.seed(0)
        data = np.clip(0.05 + 0.01 * np.random.randn(64, 64), 0, 1)

        params = stretcher.auto_stf(data)

        assert isinstance(params, STFParameters)
        assert 0 <= params.shadows < np.median(data)
        assert 0 < params.midtones < 0.5
        assert params.highlights == 1.0

    def test_auto_stf_sets_background(self, stretcher):
        """Test that the median maps to the target background."""
        np.random.seed(1)
        data = np.clip(0.05 + 0.01 * np.random.randn(64, 64), 0, 1)

        stretched = stretcher.stretch(data, method='auto_stf')

        assert np.median(stretched) == pytest.approx(0.25, abs=0.01)
        assert stretcher.last_parameters is not None

    def test_auto_stf_constant_image(self, stretcher):
        """Test that an image without dispersion is not clipped."""
        params = stretcher.auto_stf(np.full((8, 8), 0.1))

        assert params.shadows == 0.0

    @pytest.mark.parametrize('method', ['auto_stf', 'linear', 'sqrt', 'asinh'])
    def test_output_range(self, stretcher, method):
        """Test that every method returns data in [0, 1]."""
        np.random.seed(2)
        data = np.random.rand(32, 32) * 0.3

        stretched = stretcher.stretch(data, method=method)

        assert stretched.shape == data.shape
        assert 0 <= stretched.min() <= stretched.max() <= 1

    def test_unknown_method(self, stretcher):
        """Test that an unknown method is rejected."""
        with pytest.raises(ValueError, match="Unknown stretch method"):
            stretcher.stretch(np.ones((4, 4)), method='histogram')

    def test_asinh_parameter(self, stretcher):
        """Test that the asinh softening must be positive."""
        with pytest.raises(ValueError):
            stretcher.stretch(np.ones((4, 4)), method='asinh', a=0)

    def test_empty_data(self, stretcher):
        """Test that empty data is rejected."""
        with pytest.raises(ValueError):
            stretcher.stretch(np.array([]))

    def test_invalid_target_background(self):
        """Test that the target background must lie in (0, 1)."""
        with pytest.raises(ValueError):
            Stretcher(target_background=1.0)
