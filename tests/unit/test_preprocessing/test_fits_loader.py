"""Unit tests for FITSLoader."""

import pytest
import numpy as np
from astropy.io import fits


class TestFITSLoader:
    """Test loading of mono and colour image planes."""

    def test_load_path(self, fits_loader, temp_fits_file, sample_fits_data):
        """Test loading a 2D FITS file from a path."""
        data, _ = sample_fits_data

        image = fits_loader.load(temp_fits_file)

        assert image.name == 'test'
        assert image.shape == (40, 50)
        assert image.data.dtype == np.float32
        assert image.channel is None
        assert image.header['FILTER'] == 'Ha'
        np.testing.assert_allclose(image.data, data)

    def test_load_with_name(self, fits_loader, temp_fits_file):
        """Test overriding the image name."""
        image = fits_loader.load(temp_fits_file, name='Halpha')

        assert image.name == 'Halpha'

    def test_load_hdulist(self, fits_loader, sample_fits_data):
        """Test loading from an already opened HDU list."""
        data, header = sample_fits_data
        hdul = fits.HDUList([fits.PrimaryHDU(data=data, header=header)])

        image = fits_loader.load(hdul, name='memory')

        assert image.name == 'memory'
        np.testing.assert_allclose(image.data, data)

    def test_skips_empty_primary(self, fits_loader, tmp_path, sample_fits_data):
        """Test that image data in an extension is found."""
        data, _ = sample_fits_data
        path = tmp_path / "ext.fits"
        fits.HDUList([fits.PrimaryHDU(), fits.ImageHDU(data=data)]).writeto(path)

        image = fits_loader.load(path)

        assert image.shape == data.shape

    def test_no_image_data(self, fits_loader, tmp_path):
        """Test that a FITS file without an image is rejected."""
        path = tmp_path / "empty.fits"
        fits.PrimaryHDU().writeto(path)

        with pytest.raises(ValueError, match="No image data"):
            fits_loader.load(path)

    def test_colour_channels_first(self, fits_loader, sample_rgb_cube):
        """Test extracting a channel from a FITS-ordered colour cube."""
        hdul = fits.HDUList([fits.PrimaryHDU(data=sample_rgb_cube)])

        image = fits_loader.load(hdul, channel=1)

        assert image.shape == (20, 30)
        assert image.channel == 1
        assert np.allclose(image.data, 0.2)

    def test_colour_channels_last(self, fits_loader, sample_rgb_cube):
        """Test extracting a channel from a channels-last cube."""
        cube = np.moveaxis(sample_rgb_cube, 0, -1)
        hdul = fits.HDUList([fits.PrimaryHDU(data=cube)])

        image = fits_loader.load(hdul, channel=2)

        assert image.shape == (20, 30)
        assert np.allclose(image.data, 0.3)

    def test_colour_defaults_to_red(self, fits_loader, sample_rgb_cube):
        """Test that the first channel is used when none is given."""
        hdul = fits.HDUList([fits.PrimaryHDU(data=sample_rgb_cube)])

        image = fits_loader.load(hdul)

        assert image.channel == 0
        assert np.allclose(image.data, 0.1)

    def test_channel_out_of_range(self, fits_loader, sample_rgb_cube):
        """Test that an invalid channel is rejected."""
        hdul = fits.HDUList([fits.PrimaryHDU(data=sample_rgb_cube)])

        with pytest.raises(ValueError, match="out of range"):
            fits_loader.load(hdul, channel=3)

    def test_mono_ignores_channel(self, fits_loader, temp_fits_file, caplog):
        """Test that a channel request on mono data is ignored with a warning."""
        with caplog.at_level('WARNING'):
            image = fits_loader.load(temp_fits_file, channel=2)

        assert image.channel is None
        assert "monochrome" in caplog.text

    def test_load_cube_keeps_channels(self, fits_loader, tmp_path, sample_rgb_cube):
        """Test that a colour image is loaded with all channels in file order."""
        path = tmp_path / "rgb.fits"
        fits.PrimaryHDU(data=sample_rgb_cube).writeto(path)

        image = fits_loader.load_cube(path)

        assert image.name == 'rgb'
        assert image.shape == (3, 20, 30)
        assert image.channel is None
        assert image.data.dtype == np.float32
        np.testing.assert_allclose(image.data[2], 0.3, atol=1e-6)

    def test_load_cube_mono(self, fits_loader, temp_fits_file, sample_fits_data):
        """Test that a mono image loads as a 2D cube."""
        data, _ = sample_fits_data

        image = fits_loader.load_cube(temp_fits_file)

        assert image.shape == data.shape
