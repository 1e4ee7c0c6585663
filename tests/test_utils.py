"""Tests for the utils module."""

import cv2
import numpy as np
import pytest

from panocut.utils import (
    decode_image,
    is_supported_extension,
    load_image,
    round_px,
    save_image,
)


class TestRoundPx:
    """Test cases for round_px."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.4, 2), (-0.5, -1), (-1.5, -2), (3.0, 3), (0.0, 0)],
    )
    def test_half_away_from_zero(self, value, expected):
        assert round_px(value) == expected

    def test_returns_int(self):
        assert isinstance(round_px(1079.6), int)


class TestIsSupportedExtension:
    """Test cases for is_supported_extension."""

    @pytest.mark.parametrize(
        "filename", ["photo.jpg", "PHOTO.JPEG", "scan.tiff", "shot.heic", "raw.dng", "pano.webp"]
    )
    def test_supported(self, filename):
        assert is_supported_extension(filename)

    @pytest.mark.parametrize("filename", ["notes.txt", "archive.zip", "photo", ""])
    def test_unsupported(self, filename):
        assert not is_supported_extension(filename)


class TestLoadImage:
    """Test cases for load_image."""

    def test_load_valid_image(self, tmp_path):
        """Test loading a valid image file."""
        img = np.zeros((100, 100, 3), dtype=np.uint8)
        img[:, :] = [128, 64, 32]
        img_path = tmp_path / "test.png"
        cv2.imwrite(str(img_path), img)

        loaded = load_image(img_path)
        assert loaded.shape == (100, 100, 3)

    def test_load_nonexistent_raises_error(self, tmp_path):
        """Test that loading nonexistent file raises ValueError."""
        with pytest.raises(ValueError, match="Failed to load"):
            load_image(tmp_path / "nonexistent.png")


class TestDecodeImage:
    """Test cases for decode_image."""

    def test_decode_png(self):
        img = np.full((12, 34, 3), 7, dtype=np.uint8)
        _, encoded = cv2.imencode(".png", img)
        decoded = decode_image(encoded.tobytes())
        np.testing.assert_array_equal(decoded, img)

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="empty"):
            decode_image(b"")

    def test_garbage_raises(self):
        with pytest.raises(ValueError, match="Failed to decode"):
            decode_image(b"definitely not an image")


class TestSaveImage:
    """Test cases for save_image."""

    def test_save_image(self, tmp_path):
        """Test saving an image to disk."""
        img = np.zeros((50, 50, 3), dtype=np.uint8)
        img_path = tmp_path / "output.png"

        save_image(img, img_path)
        assert img_path.exists()
