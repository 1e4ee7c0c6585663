"""Pydantic models for slicing configuration and API responses."""

import re
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, Field, field_validator

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class AspectRatio(str, Enum):
    """Carousel tile formats."""

    SQUARE = "1:1"
    PORTRAIT = "4:5"


class UnevenHandling(str, Enum):
    """What to do when the image width is not a whole number of tiles."""

    PAD = "pad"
    CROP = "crop"
    ONE_SLIDE_FIT = "oneSlideFit"


class ImageSize(BaseModel):
    """Image dimensions."""

    width: int
    height: int

    @property
    def ratio(self) -> float:
        return self.width / self.height


TARGET_DIMENSIONS: Dict[AspectRatio, ImageSize] = {
    AspectRatio.SQUARE: ImageSize(width=1080, height=1080),
    AspectRatio.PORTRAIT: ImageSize(width=1080, height=1350),
}


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Parse ``#rgb`` or ``#rrggbb`` into an (r, g, b) tuple."""
    match = _HEX_COLOR.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return tuple(int(digits[i : i + 2], 16) for i in (0, 2, 4))


class SliceConfig(BaseModel):
    """Immutable configuration for one slicing request."""

    model_config = {"frozen": True}

    aspect_ratio: AspectRatio = AspectRatio.SQUARE
    uneven_handling: UnevenHandling = UnevenHandling.PAD
    padding_color: str = Field("#ffffff", description="Fill color for padding")
    manual_padding_x: int = Field(0, ge=0, description="Margin added left and right")
    manual_padding_y: int = Field(0, ge=0, description="Margin added top and bottom")

    @field_validator("padding_color")
    @classmethod
    def _normalize_color(cls, value: str) -> str:
        r, g, b = parse_hex_color(value)
        return f"#{r:02x}{g:02x}{b:02x}"

    @property
    def padding_rgb(self) -> Tuple[int, int, int]:
        return parse_hex_color(self.padding_color)

    @property
    def target_dimensions(self) -> ImageSize:
        return TARGET_DIMENSIONS[self.aspect_ratio]


class SliceResponse(BaseModel):
    """Response model for the slice endpoint."""

    slice_count: int = Field(..., description="Number of tiles produced")
    slice_width: int = Field(..., description="Source pixels consumed per tile")
    image_size: ImageSize = Field(..., description="Working image size after manual padding")
    tile_size: ImageSize
    base_name: str
    processing_time_ms: float
    slices: List[str] = Field(..., description="Base64-encoded JPEG tiles, left to right")


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    version: str
    aspect_ratios: List[str]
