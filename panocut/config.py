"""Configuration management for the slicing service."""

from pydantic_settings import BaseSettings

from .schemas import SliceConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Slicing defaults
    default_aspect_ratio: str = "1:1"
    default_uneven_handling: str = "pad"
    default_padding_color: str = "#ffffff"

    # Export
    jpeg_quality: int = 95

    # Upload limits (checked before slicing)
    max_image_pixels: int = 200_000_000

    # Rendering surfaces and background work
    surface_pooling: bool = True
    worker_threads: int = 1
    reprocess_interval_ms: int = 150  # throttle for config changes

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000
    workers: int = 1

    model_config = {
        "env_prefix": "PANOCUT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()


def default_slice_config() -> SliceConfig:
    """Build a SliceConfig from the configured defaults."""
    return SliceConfig(
        aspect_ratio=settings.default_aspect_ratio,
        uneven_handling=settings.default_uneven_handling,
        padding_color=settings.default_padding_color,
    )
