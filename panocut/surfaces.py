"""Drawable surfaces backed by numpy arrays, with optional pooling."""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Set, Tuple

import cv2
import numpy as np

from .utils import round_px

logger = logging.getLogger(__name__)

Rect = Sequence[float]  # (x, y, width, height)


class SurfaceAllocationError(RuntimeError):
    """Raised when a drawing surface cannot be allocated."""


@dataclass
class Surface:
    """A 2D pixel buffer in OpenCV channel order (BGR or BGRA)."""

    pixels: np.ndarray
    key: Optional[str] = None

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def channels(self) -> int:
        return self.pixels.shape[2]


def _allocate(width: int, height: int, channels: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise SurfaceAllocationError(f"Invalid surface size: {width}x{height}")
    try:
        return np.zeros((height, width, channels), dtype=np.uint8)
    except MemoryError as e:
        raise SurfaceAllocationError(
            f"Failed to allocate {width}x{height}x{channels} surface"
        ) from e


class SurfaceProvider:
    """Allocates, clears and disposes drawing surfaces."""

    def get_surface(
        self, width: int, height: int, channels: int = 3, key: Optional[str] = None
    ) -> Surface:
        raise NotImplementedError

    def clear_surface(self, surface: Surface) -> None:
        surface.pixels[...] = 0

    def dispose_surface(self, surface: Surface) -> None:
        raise NotImplementedError

    def transfer_surface(self, surface: Surface) -> np.ndarray:
        """Hand the pixel buffer over to the caller; the provider forgets it."""
        raise NotImplementedError


class FreshSurfaceProvider(SurfaceProvider):
    """Allocates a new buffer for every request."""

    def get_surface(self, width, height, channels=3, key=None):
        return Surface(_allocate(width, height, channels), key)

    def dispose_surface(self, surface):
        # Unreferenced buffers are reclaimed by the garbage collector
        pass

    def transfer_surface(self, surface):
        return surface.pixels


class PooledSurfaceProvider(SurfaceProvider):
    """
    Reuses surfaces by key to avoid reallocating large buffers.

    A pooled surface is cleared before it is handed out again and is never
    given to two users at the same time; a key that is already checked out
    falls back to an unpooled buffer.
    """

    def __init__(self):
        self._pool: Dict[str, Surface] = {}
        self._in_use: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pool)

    def get_surface(self, width, height, channels=3, key=None):
        if key is None:
            return Surface(_allocate(width, height, channels))

        with self._lock:
            if key in self._in_use:
                logger.debug(f"Surface {key!r} busy, allocating unpooled buffer")
                return Surface(_allocate(width, height, channels))

            surface = self._pool.get(key)
            if surface is None or surface.pixels.shape != (height, width, channels):
                surface = Surface(_allocate(width, height, channels), key)
                self._pool[key] = surface
                logger.debug(
                    f"Created surface {key!r} {width}x{height}, pool size: {len(self._pool)}"
                )
            else:
                self.clear_surface(surface)
            self._in_use.add(key)
            return surface

    def dispose_surface(self, surface):
        with self._lock:
            if surface.key is not None and self._pool.get(surface.key) is surface:
                self._in_use.discard(surface.key)

    def transfer_surface(self, surface):
        with self._lock:
            if surface.key is not None and self._pool.get(surface.key) is surface:
                del self._pool[surface.key]
                self._in_use.discard(surface.key)
        return surface.pixels

    def clear(self) -> None:
        """Drop every idle surface from the pool."""
        with self._lock:
            for key in list(self._pool):
                if key not in self._in_use:
                    del self._pool[key]


def _bgr(color: Tuple[int, int, int], channels: int) -> Tuple[int, ...]:
    r, g, b = color
    return (b, g, r, 255) if channels == 4 else (b, g, r)


def _match_channels(image: np.ndarray, channels: int) -> np.ndarray:
    if image.ndim == 2:
        code = cv2.COLOR_GRAY2BGRA if channels == 4 else cv2.COLOR_GRAY2BGR
        return cv2.cvtColor(image, code)
    if image.shape[2] == channels:
        return image
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)


def _blit(dest: np.ndarray, patch: np.ndarray, x: int, y: int) -> None:
    """Copy ``patch`` into ``dest`` at (x, y), clipped to ``dest``."""
    dest_h, dest_w = dest.shape[:2]
    x0, y0 = max(x, 0), max(y, 0)
    x1 = min(x + patch.shape[1], dest_w)
    y1 = min(y + patch.shape[0], dest_h)
    if x1 <= x0 or y1 <= y0:
        return
    dest[y0:y1, x0:x1] = patch[y0 - y : y1 - y, x0 - x : x1 - x]


def fill_surface(surface: Surface, color: Tuple[int, int, int]) -> None:
    """Fill the whole surface with an (r, g, b) color."""
    surface.pixels[...] = _bgr(color, surface.channels)


def draw_image(
    surface: Surface, image: np.ndarray, src_rect: Rect, dest_rect: Rect
) -> None:
    """
    Draw a region of ``image`` into a region of ``surface``, resampling as needed.

    Coordinates are rounded before use. Source regions falling outside the
    image are clipped and the destination shrinks by the same proportion, so
    nothing is drawn where there is no source data.

    Args:
        surface: Destination surface.
        image: Source bitmap (H, W, C); never modified.
        src_rect: (x, y, width, height) in source pixels.
        dest_rect: (x, y, width, height) in destination pixels.
    """
    sx, sy, sw, sh = (round_px(v) for v in src_rect)
    dx, dy, dw, dh = (round_px(v) for v in dest_rect)
    if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
        return

    img_h, img_w = image.shape[:2]
    x0, y0 = max(sx, 0), max(sy, 0)
    x1, y1 = min(sx + sw, img_w), min(sy + sh, img_h)
    if x1 <= x0 or y1 <= y0:
        return

    scale_x = dw / sw
    scale_y = dh / sh
    tx0 = dx + round_px((x0 - sx) * scale_x)
    ty0 = dy + round_px((y0 - sy) * scale_y)
    tx1 = dx + round_px((x1 - sx) * scale_x)
    ty1 = dy + round_px((y1 - sy) * scale_y)
    if tx1 <= tx0 or ty1 <= ty0:
        return

    patch = _match_channels(np.ascontiguousarray(image[y0:y1, x0:x1]), surface.channels)
    out_w, out_h = tx1 - tx0, ty1 - ty0
    if (out_w, out_h) != (patch.shape[1], patch.shape[0]):
        shrinking = out_w * out_h < patch.shape[0] * patch.shape[1]
        patch = cv2.resize(
            patch,
            (out_w, out_h),
            interpolation=cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR,
        )
    _blit(surface.pixels, patch, tx0, ty0)
