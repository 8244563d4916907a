"""nextcloud-slideshow - rotating photo slideshow backed by a WebDAV repository."""

__version__ = "0.1.0"
__author__ = "nextcloud-slideshow contributors"
__license__ = "MIT"

import logging

from .config import RepositoryConfig, SlideshowConfig
from .errors import (
    ConfigurationError,
    EmptyResultError,
    NetworkError,
    NotFoundError,
    ParseError,
    RequestTimeoutError,
    SlideshowError,
)
from .models import CacheEntry, Direction, ExifRecord, PlaybackState, SlideshowState

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "RepositoryConfig",
    "SlideshowConfig",
    "CacheEntry",
    "Direction",
    "ExifRecord",
    "PlaybackState",
    "SlideshowState",
    "SlideshowError",
    "ConfigurationError",
    "NetworkError",
    "RequestTimeoutError",
    "ParseError",
    "EmptyResultError",
    "NotFoundError",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
