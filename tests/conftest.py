"""Shared pytest fixtures for panocut tests."""

import io
from pathlib import Path

import cv2
import numpy as np
import pytest


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def square_image() -> np.ndarray:
    """Create a square test image (1080x1080)."""
    img = np.zeros((1080, 1080, 3), dtype=np.uint8)
    img[:, :] = [128, 128, 128]  # gray background
    return img


@pytest.fixture
def panorama_2x1() -> np.ndarray:
    """Create an exact 2:1 panorama (2160x1080), left half blue, right half red."""
    img = np.zeros((1080, 2160, 3), dtype=np.uint8)
    img[:, :1080] = [255, 0, 0]
    img[:, 1080:] = [0, 0, 255]
    return img


@pytest.fixture
def panorama_uneven() -> np.ndarray:
    """Create a 2200x1080 panorama that is not a whole number of square tiles."""
    img = np.zeros((1080, 2200, 3), dtype=np.uint8)
    img[:, :] = [40, 160, 40]
    return img


@pytest.fixture
def panorama_bytes(panorama_uneven) -> io.BytesIO:
    """Uneven panorama encoded as PNG bytes for upload testing."""
    return image_to_bytes(panorama_uneven, '.png')


def create_test_image(width: int, height: int) -> np.ndarray:
    """Helper function to create test images of arbitrary size."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = [128, 128, 128]
    return img


def create_gradient_image(width: int, height: int) -> np.ndarray:
    """Create an image whose red channel increases from left to right.

    Args:
        width: Image width.
        height: Image height.

    Returns:
        BGR image; column order can be recovered from the red channel.
    """
    ramp = np.linspace(0, 255, width).astype(np.uint8)
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :, 2] = ramp[np.newaxis, :]
    img[:, :, 1] = 100
    return img


def image_to_bytes(image: np.ndarray, format: str = '.jpg') -> io.BytesIO:
    """Convert numpy image to bytes."""
    _, encoded = cv2.imencode(format, image)
    return io.BytesIO(encoded.tobytes())
