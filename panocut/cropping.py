"""Optimal crop calculation for splitting an image into equal tiles."""

import math
from dataclasses import dataclass

from .utils import round_px


@dataclass(frozen=True)
class CroppingResult:
    """Crop rectangle that fits a whole number of tiles."""

    slice_count: int
    crop_width: int
    crop_height: int
    x: int  # Left edge of the crop in source pixels
    y: int  # Top edge of the crop in source pixels


def _efficiency(slice_count: int, target_ratio: float, original_ratio: float) -> float:
    """Fraction of the original area kept when cropping to ``slice_count`` tiles."""
    total_ratio = slice_count * target_ratio
    if total_ratio == 0:
        return 0.0
    return min(total_ratio / original_ratio, original_ratio / total_ratio)


def compute_optimal_crop(
    image_width: int, image_height: int, target_ratio: float
) -> CroppingResult:
    """
    Find the tile count and centered crop that discard the least image area.

    Args:
        image_width: Source width in pixels.
        image_height: Source height in pixels.
        target_ratio: Width / height of a single tile.

    Returns:
        CroppingResult with integer geometry, rounded only at the end.
    """
    original_ratio = image_width / image_height

    ideal_slice_count = original_ratio / target_ratio if target_ratio > 0 else 1.0
    if not math.isfinite(ideal_slice_count):
        ideal_slice_count = 1.0

    low = max(1, math.floor(ideal_slice_count))
    high = max(1, math.ceil(ideal_slice_count))

    # Ties go to fewer, larger tiles
    if _efficiency(low, target_ratio, original_ratio) >= _efficiency(
        high, target_ratio, original_ratio
    ):
        best_slice_count = low
    else:
        best_slice_count = high

    best_aspect_ratio = best_slice_count * target_ratio
    if original_ratio > best_aspect_ratio:
        crop_height = float(image_height)
        crop_width = image_height * best_aspect_ratio
    else:
        crop_width = float(image_width)
        crop_height = image_width / best_aspect_ratio

    x = (image_width - crop_width) / 2
    y = (image_height - crop_height) / 2

    return CroppingResult(
        slice_count=best_slice_count,
        crop_width=round_px(crop_width),
        crop_height=round_px(crop_height),
        x=round_px(x),
        y=round_px(y),
    )
