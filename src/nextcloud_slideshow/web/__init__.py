"""HTTP remote control for a running slideshow."""

from .api import create_app

__all__ = ["create_app"]
