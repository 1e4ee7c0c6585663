"""Panorama slicing for multi-image carousels."""

__version__ = "0.1.0"
