"""Utility functions for decoding images and pixel arithmetic."""

import math
import os
from pathlib import Path

import cv2
import numpy as np

SUPPORTED_EXTENSIONS = frozenset(
    {
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".webp",
        ".avif",
        ".bmp",
        ".heic",
        ".heif",
        ".arw",
        ".raw",
        # TIFF containers and TIFF-based raw formats
        ".tif",
        ".tiff",
        ".ptif",
        ".btf",
        ".dng",
        ".pef",
        ".nef",
        ".nrw",
        ".svs",
        ".ndpi",
        ".mrxs",
        ".scn",
    }
)


def round_px(value: float) -> int:
    """Round a pixel coordinate half away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def is_supported_extension(filename: str) -> bool:
    """Check whether a filename carries an accepted image extension."""
    return os.path.splitext(filename)[1].lower() in SUPPORTED_EXTENSIONS


def load_image(path: Path) -> np.ndarray:
    """Load an image from disk."""
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Failed to load image: {path}")
    return image


def decode_image(data: bytes) -> np.ndarray:
    """Decode uploaded bytes into a BGR bitmap."""
    if not data:
        raise ValueError("Failed to decode image: empty data")
    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Failed to decode image")
    return image


def save_image(image: np.ndarray, path: Path) -> None:
    """Save an image to disk."""
    cv2.imwrite(str(path), image)
