"""Tiered video-on-demand access API."""

__version__ = "1.0.0"
