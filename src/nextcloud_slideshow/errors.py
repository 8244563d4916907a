"""Error taxonomy for the slideshow core."""

from typing import Optional


class SlideshowError(Exception):
    """Base class for all slideshow errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(SlideshowError):
    """Missing or invalid configuration. Fatal, reported once at startup."""


class NetworkError(SlideshowError):
    """HTTP failure or transport error. Carries the HTTP status when known."""

    def __init__(self, message: str, status: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message, details)
        self.status = status


class RequestTimeoutError(SlideshowError, TimeoutError):
    """A network request exceeded its timeout."""


class ParseError(SlideshowError):
    """A response body could not be parsed."""


class EmptyResultError(SlideshowError):
    """Listing succeeded but no images survived filtering."""


class NotFoundError(SlideshowError):
    """Geocoding returned no usable place name."""
