"""Naming, encoding and bundling of finished tiles."""

import io
import logging
import re
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

import cv2
import numpy as np

from .config import settings

logger = logging.getLogger(__name__)

_EXTENSION = re.compile(r"\.[^/.]+$")
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def generate_base_name(original_filename: str) -> str:
    """Strip the extension and replace characters unsafe in filenames."""
    without_ext = _EXTENSION.sub("", original_filename)
    return _UNSAFE_CHARS.sub("_", without_ext)


def slice_filename(base_name: str, index: int) -> str:
    """Filename for the tile at ``index`` (0-based), numbered from 01."""
    return f"{base_name}-{index + 1:02d}.jpg"


def encode_jpeg(tile: np.ndarray, quality: Optional[int] = None) -> bytes:
    """Encode a tile as JPEG bytes."""
    if quality is None:
        quality = settings.jpeg_quality
    ok, encoded = cv2.imencode(".jpg", tile, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise ValueError("Failed to encode tile as JPEG")
    return encoded.tobytes()


def export_slices(
    slices: Sequence[np.ndarray], output_dir: Path, base_name: str = "slide"
) -> List[Path]:
    """Write every tile to ``output_dir`` and return the written paths."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    paths = []
    for index, tile in enumerate(slices):
        path = output_dir / slice_filename(base_name, index)
        path.write_bytes(encode_jpeg(tile))
        paths.append(path)

    logger.info(f"Exported {len(paths)} slices to {output_dir}")
    return paths


def build_archive(slices: Sequence[np.ndarray], base_name: str = "slide") -> bytes:
    """Bundle every tile into an in-memory ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for index, tile in enumerate(slices):
            zf.writestr(slice_filename(base_name, index), encode_jpeg(tile))
    return buffer.getvalue()
