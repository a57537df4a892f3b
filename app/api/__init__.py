"""API endpoints."""

from app.api import health, metrics, videos

__all__ = [
    "health",
    "metrics",
    "videos",
]
