"""FastAPI service for slicing panoramas into carousel tiles."""

import base64
import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

# Configure logging to output debug messages to stderr so the panocut
# logger and its children are visible when running under uvicorn
logging.basicConfig(
    level=logging.DEBUG,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("panocut")

from . import __version__
from .config import settings
from .export import build_archive, encode_jpeg, generate_base_name
from .schemas import (
    TARGET_DIMENSIONS,
    AspectRatio,
    HealthResponse,
    ImageSize,
    SliceConfig,
    SliceResponse,
    UnevenHandling,
)
from .slicer import SliceResult, slice_image
from .surfaces import FreshSurfaceProvider, PooledSurfaceProvider, SurfaceAllocationError
from .utils import decode_image, is_supported_extension

_provider = None


def get_provider():
    """Get or create the shared surface provider."""
    global _provider
    if _provider is None:
        _provider = (
            PooledSurfaceProvider() if settings.surface_pooling else FreshSurfaceProvider()
        )
    return _provider


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    # Shutdown: release pooled surfaces
    if isinstance(_provider, PooledSurfaceProvider):
        _provider.clear()


app = FastAPI(
    title="Panorama Carousel Slicer",
    description="Cut wide images into seamless fixed-ratio carousel tiles",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        aspect_ratios=[ratio.value for ratio in AspectRatio],
    )


async def _slice_upload(
    file: UploadFile,
    aspect_ratio: AspectRatio,
    uneven_handling: UnevenHandling,
    padding_color: str,
    manual_padding_x: int,
    manual_padding_y: int,
) -> SliceResult:
    """Validate and decode an upload, then slice it."""
    filename = file.filename or ""
    if filename and not is_supported_extension(filename):
        raise HTTPException(status_code=415, detail=f"Unsupported file type: {filename}")

    try:
        config = SliceConfig(
            aspect_ratio=aspect_ratio,
            uneven_handling=uneven_handling,
            padding_color=padding_color,
            manual_padding_x=manual_padding_x,
            manual_padding_y=manual_padding_y,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    contents = await file.read()
    try:
        image = decode_image(contents)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid image file")

    h, w = image.shape[:2]
    logger.debug(f"Received image: {w}x{h}, {len(contents)} bytes")
    if w * h > settings.max_image_pixels:
        raise HTTPException(
            status_code=413,
            detail=f"Image too large: {w}x{h} exceeds {settings.max_image_pixels} pixels",
        )

    try:
        result = slice_image(image, config, get_provider())
    except SurfaceAllocationError as e:
        logger.error(f"Slicing failed for {filename}: {e}")
        raise HTTPException(status_code=500, detail="Failed to process image") from e

    logger.debug(
        f"Sliced into {result.slice_count} tiles (slice_width={result.slice_width}, "
        f"aspect_ratio={config.aspect_ratio.value}, uneven={config.uneven_handling.value})"
    )
    return result


@app.post("/slice", response_model=SliceResponse)
async def slice_endpoint(
    file: UploadFile = File(..., description="Image file to slice"),
    aspect_ratio: AspectRatio = Form(default=AspectRatio(settings.default_aspect_ratio)),
    uneven_handling: UnevenHandling = Form(default=UnevenHandling(settings.default_uneven_handling)),
    padding_color: str = Form(default=settings.default_padding_color),
    manual_padding_x: int = Form(default=0, ge=0),
    manual_padding_y: int = Form(default=0, ge=0),
):
    """
    Slice an image into carousel tiles.

    Tiles are returned left to right as base64-encoded JPEG.
    """
    start_time = time.perf_counter()
    result = await _slice_upload(
        file, aspect_ratio, uneven_handling, padding_color, manual_padding_x, manual_padding_y
    )
    target = TARGET_DIMENSIONS[aspect_ratio]
    encoded = [base64.b64encode(encode_jpeg(tile)).decode("ascii") for tile in result.slices]
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    return SliceResponse(
        slice_count=result.slice_count,
        slice_width=result.slice_width,
        image_size=ImageSize(width=result.original_width, height=result.original_height),
        tile_size=ImageSize(width=target.width, height=target.height),
        base_name=generate_base_name(file.filename or "slide"),
        processing_time_ms=elapsed_ms,
        slices=encoded,
    )


@app.post("/slice/archive")
async def slice_archive_endpoint(
    file: UploadFile = File(..., description="Image file to slice"),
    aspect_ratio: AspectRatio = Form(default=AspectRatio(settings.default_aspect_ratio)),
    uneven_handling: UnevenHandling = Form(default=UnevenHandling(settings.default_uneven_handling)),
    padding_color: str = Form(default=settings.default_padding_color),
    manual_padding_x: int = Form(default=0, ge=0),
    manual_padding_y: int = Form(default=0, ge=0),
):
    """Slice an image and return every tile in a ZIP archive."""
    result = await _slice_upload(
        file, aspect_ratio, uneven_handling, padding_color, manual_padding_x, manual_padding_y
    )
    base_name = generate_base_name(file.filename or "slide")
    archive = build_archive(result.slices, base_name)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="{base_name}.zip"',
            "X-Slice-Count": str(result.slice_count),
        },
    )
