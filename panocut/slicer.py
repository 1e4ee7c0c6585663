"""Panorama slicer producing fixed-size carousel tiles."""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .cropping import CroppingResult, compute_optimal_crop
from .schemas import ImageSize, SliceConfig, UnevenHandling
from .surfaces import FreshSurfaceProvider, Surface, SurfaceProvider, draw_image, fill_surface
from .utils import round_px

logger = logging.getLogger(__name__)

Rect = Tuple[int, int, int, int]


@dataclass
class SlicePlan:
    """Geometry for one slicing run, computed from the working image size."""

    slice_count: int
    slice_width: int  # Source pixels per tile on the adjusted canvas
    slice_height: int
    canvas_size: ImageSize  # Adjusted canvas the tiles are cut from
    source_rect: Rect  # Region of the working image drawn onto the canvas
    dest_rect: Rect  # Where that region lands on the canvas
    fill: bool = False  # Paint the padding color before drawing
    adjusted: bool = False
    crop: Optional[CroppingResult] = None


@dataclass
class SliceResult:
    """Tiles cut from one image, ordered left to right."""

    slices: List[np.ndarray] = field(default_factory=list)
    slice_count: int = 0
    slice_width: int = 0
    original_width: int = 0  # Working image width (after manual padding)
    original_height: int = 0

    def release(self) -> None:
        """Drop the tile buffers of a superseded result."""
        self.slices.clear()


class PanoramaSlicer:
    """Slice a wide image into equally sized carousel tiles."""

    def __init__(self, config: SliceConfig, provider: Optional[SurfaceProvider] = None):
        """
        Initialize the slicer.

        Args:
            config: Tile format, uneven-width policy and padding.
            provider: Surface allocator; a fresh buffer per surface if omitted.
        """
        self.config = config
        self.provider = provider if provider is not None else FreshSurfaceProvider()
        self.target = config.target_dimensions

    def plan(self, width: int, height: int) -> SlicePlan:
        """Compute tile geometry for a working image of the given size."""
        target = self.target
        policy = self.config.uneven_handling

        conversion_ratio = target.height / height
        ideal_slice_width = target.width / conversion_ratio
        slice_width = max(1, round_px(ideal_slice_width))
        # Count against the unrounded width; 1e-9 absorbs float noise at exact multiples
        slice_count = max(1, math.ceil(width / ideal_slice_width - 1e-9))

        # Width normalized to tile height must be a whole number of tiles
        normalized_width = round_px(width * conversion_ratio)
        needs_adjustment = (
            normalized_width % target.width != 0
            or policy == UnevenHandling.ONE_SLIDE_FIT
        )

        if not needs_adjustment:
            return SlicePlan(
                slice_count=slice_count,
                slice_width=slice_width,
                slice_height=height,
                canvas_size=ImageSize(width=width, height=height),
                source_rect=(0, 0, width, height),
                dest_rect=(0, 0, width, height),
            )

        if policy == UnevenHandling.PAD:
            padded_width = max(slice_count * slice_width, width)
            offset_x = round_px((padded_width - width) / 2)
            return SlicePlan(
                slice_count=slice_count,
                slice_width=slice_width,
                slice_height=height,
                canvas_size=ImageSize(width=padded_width, height=height),
                source_rect=(0, 0, width, height),
                dest_rect=(offset_x, 0, width, height),
                fill=True,
                adjusted=True,
            )

        if policy == UnevenHandling.CROP:
            crop = compute_optimal_crop(width, height, target.ratio)
            return SlicePlan(
                slice_count=crop.slice_count,
                slice_width=round_px(crop.crop_width / crop.slice_count),
                slice_height=crop.crop_height,
                canvas_size=ImageSize(width=crop.crop_width, height=crop.crop_height),
                source_rect=(crop.x, crop.y, crop.crop_width, crop.crop_height),
                dest_rect=(0, 0, crop.crop_width, crop.crop_height),
                adjusted=True,
                crop=crop,
            )

        # One slide: letterbox or pillarbox the whole image into a single tile
        image_aspect = width / height
        dest_x, dest_y = 0, 0
        dest_w, dest_h = target.width, target.height
        if image_aspect > target.ratio:
            dest_h = round_px(target.width / image_aspect)
            dest_y = round_px((target.height - dest_h) / 2)
        elif image_aspect < target.ratio:
            dest_w = round_px(target.height * image_aspect)
            dest_x = round_px((target.width - dest_w) / 2)
        return SlicePlan(
            slice_count=1,
            slice_width=target.width,
            slice_height=target.height,
            canvas_size=ImageSize(width=target.width, height=target.height),
            source_rect=(0, 0, width, height),
            dest_rect=(dest_x, dest_y, dest_w, dest_h),
            fill=True,
            adjusted=True,
        )

    def get_slice_count(self, width: int, height: int) -> int:
        """Calculate the number of tiles for an image of the given size."""
        padded_width = width + 2 * self.config.manual_padding_x
        padded_height = height + 2 * self.config.manual_padding_y
        return self.plan(padded_width, padded_height).slice_count

    def slice(self, image: np.ndarray) -> SliceResult:
        """
        Slice an image into carousel tiles.

        Args:
            image: Input image as numpy array (H, W, C); left untouched.

        Returns:
            SliceResult with one target-sized tile per slide.
        """
        intermediates: List[Surface] = []
        try:
            working, source_surface = self._build_source(image)
            if source_surface is not None:
                intermediates.append(source_surface)

            height, width = working.shape[:2]
            plan = self.plan(width, height)
            logger.debug(
                f"Working image {width}x{height}: {plan.slice_count} slices of "
                f"{plan.slice_width}x{plan.slice_height} "
                f"(adjusted={plan.adjusted}, policy={self.config.uneven_handling.value})"
            )

            canvas = self.provider.get_surface(
                plan.canvas_size.width,
                plan.canvas_size.height,
                _channels(working),
                key="slicer-adjusted-canvas",
            )
            intermediates.append(canvas)
            if plan.fill:
                fill_surface(canvas, self.config.padding_rgb)
            draw_image(canvas, working, plan.source_rect, plan.dest_rect)

            slices = [
                self._render_slice(canvas, plan, index)
                for index in range(plan.slice_count)
            ]
        finally:
            for surface in intermediates:
                self.provider.dispose_surface(surface)

        return SliceResult(
            slices=slices,
            slice_count=len(slices),
            slice_width=plan.slice_width,
            original_width=width,
            original_height=height,
        )

    def _build_source(self, image: np.ndarray) -> Tuple[np.ndarray, Optional[Surface]]:
        """Apply manual padding, returning the working image."""
        pad_x = self.config.manual_padding_x
        pad_y = self.config.manual_padding_y
        if pad_x == 0 and pad_y == 0:
            return image, None

        h, w = image.shape[:2]
        surface = self.provider.get_surface(
            w + 2 * pad_x, h + 2 * pad_y, _channels(image), key="slicer-source-canvas"
        )
        fill_surface(surface, self.config.padding_rgb)
        draw_image(surface, image, (0, 0, w, h), (pad_x, pad_y, w, h))
        return surface.pixels, surface

    def _render_slice(self, canvas: Surface, plan: SlicePlan, index: int) -> np.ndarray:
        tile = self.provider.get_surface(
            self.target.width,
            self.target.height,
            canvas.channels,
            key=f"slicer-full-slice-{index}",
        )
        draw_image(
            tile,
            canvas.pixels,
            (index * plan.slice_width, 0, plan.slice_width, plan.slice_height),
            (0, 0, self.target.width, self.target.height),
        )
        return self.provider.transfer_surface(tile)


def _channels(image: np.ndarray) -> int:
    return image.shape[2] if image.ndim == 3 else 3


def slice_image(
    image: np.ndarray, config: SliceConfig, provider: Optional[SurfaceProvider] = None
) -> SliceResult:
    """Slice ``image`` according to ``config``."""
    return PanoramaSlicer(config, provider).slice(image)
