"""Demo catalog for test mode."""

from app.testing.fixtures import DEMO_VIDEOS, demo_catalog

__all__ = ["DEMO_VIDEOS", "demo_catalog"]
