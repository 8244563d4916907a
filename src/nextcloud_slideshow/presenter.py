"""Presentation layer interface and the presenters shipped with the package."""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import click

from .models import OSM_ATTRIBUTION, CacheEntry

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """Receives the orchestrator's events.

    Only ``show_image`` is required. The orchestrator stays in the
    transitioning state until it returns or raises.
    """

    @abstractmethod
    async def show_image(self, entry: CacheEntry) -> None:
        """Render an image, including any transition animation.

        Args:
            entry: The image to show. Must not be mutated.
        """
        pass

    def list_received(self, count: int) -> None:
        """Called after a listing produced ``count`` images."""
        pass

    def image_updated(self, entry: CacheEntry) -> None:
        """Called when an already delivered entry gained metadata (e.g. a place name)."""
        pass

    def error(self, message: str, details: Optional[str] = None) -> None:
        """Called for every user-facing error."""
        pass

    def progress(self, message: str) -> None:
        """Free-form status update."""
        pass


class LoggingPresenter(Presenter):
    """Presenter that only logs. Useful headless and in tests."""

    async def show_image(self, entry: CacheEntry) -> None:
        logger.info(f"Showing {entry.filename} ({entry.size} bytes)")

    def list_received(self, count: int) -> None:
        logger.info(f"Received image list with {count} images")

    def error(self, message: str, details: Optional[str] = None) -> None:
        logger.error(f"{message}: {details}" if details else message)

    def progress(self, message: str) -> None:
        logger.debug(f"Fetch progress: {message}")


class ConsolePresenter(Presenter):
    """Prints each image's caption to the terminal.

    Optionally writes the current image to ``save_path`` so an external
    viewer can pick it up.
    """

    def __init__(self, animation_speed: int = 0, save_path: Optional[Path] = None, show_attribution: bool = True):
        self.animation_speed = animation_speed
        self.save_path = save_path
        self.show_attribution = show_attribution

    async def show_image(self, entry: CacheEntry) -> None:
        if self.save_path is not None:
            self.save_path.write_bytes(entry.raw_bytes)
        # Fade out, swap, fade in
        if self.animation_speed:
            await asyncio.sleep(self.animation_speed / 2000)
        click.echo(f"▶ {entry.filename}")
        self._echo_caption(entry)

    def image_updated(self, entry: CacheEntry) -> None:
        self._echo_caption(entry)

    def _echo_caption(self, entry: CacheEntry) -> None:
        caption = format_caption(entry)
        if caption:
            click.echo(f"  {caption}")
        if entry.exif.location and self.show_attribution:
            click.echo(f"  {OSM_ATTRIBUTION}")

    def list_received(self, count: int) -> None:
        click.echo(f"Received image list with {count} images")

    def error(self, message: str, details: Optional[str] = None) -> None:
        click.echo(f"Error: {message}" + (f" ({details})" if details else ""), err=True)

    def progress(self, message: str) -> None:
        click.echo(message)


def format_caption(entry: CacheEntry) -> str:
    """``date, place`` caption as shown under the image."""
    parts = []
    if entry.exif.date:
        parts.append(entry.exif.date.strftime("%d %B %Y"))
    if entry.exif.location:
        parts.append(entry.exif.location)
    return ", ".join(parts)
