"""Slideshow orchestrator: playback state, navigation and the two timers."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Dict, Optional, Set

import httpx

from .config import SlideshowConfig
from .errors import ConfigurationError, EmptyResultError, SlideshowError
from .fetcher import FetchLayer
from .geocoding import GeocodingResolver
from .models import CacheEntry, Direction, ImageList, PlaybackState, SlideshowState
from .presenter import LoggingPresenter, Presenter
from .repository import RepositoryClient, create_http_client

logger = logging.getLogger(__name__)

COMMANDS = ("next", "previous", "toggle", "pause", "resume", "refresh-list")


class Slideshow:
    """Drives a slideshow on a single asyncio event loop.

    All state changes happen on the loop thread, so nothing here is locked.
    Network calls are the only suspension points. While an image is being
    fetched and rendered the slideshow is *transitioning* and further
    advances are dropped rather than queued.
    """

    def __init__(
        self,
        config: SlideshowConfig,
        repository: RepositoryClient,
        fetcher: FetchLayer,
        presenter: Optional[Presenter] = None,
        rng: Optional[random.Random] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.repository = repository
        self.fetcher = fetcher
        self.presenter = presenter or LoggingPresenter()
        self.playback = PlaybackState()
        self.current_entry: Optional[CacheEntry] = None
        self._images: Optional[ImageList] = None
        self._rng = rng or random.Random()
        self._http_client = http_client
        self._advance_timer: Optional[asyncio.TimerHandle] = None
        self._refresh_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        self.fetcher.on_update = self._on_entry_updated

    @classmethod
    def create(
        cls,
        config: SlideshowConfig,
        presenter: Optional[Presenter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        geocoding_transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ) -> "Slideshow":
        """Validate ``config`` and wire up the full component graph.

        Raises:
            ConfigurationError: If the configuration is unusable.
        """
        config.validate()
        client = create_http_client(config.repository, transport)
        repository = RepositoryClient(config.repository, client)
        geocoder = None
        if config.enable_geocoding:
            geocoder = GeocodingResolver(transport=geocoding_transport)
        fetcher = FetchLayer(config, repository, client, geocoder=geocoder)
        return cls(config, repository, fetcher, presenter=presenter, rng=rng, http_client=client)

    # -- state ---------------------------------------------------------------

    @property
    def images(self) -> ImageList:
        return list(self._images or [])

    @property
    def state(self) -> SlideshowState:
        if self._images is None:
            return SlideshowState.STOPPED
        if self.playback.transitioning:
            return SlideshowState.TRANSITIONING
        if self.playback.running:
            return SlideshowState.PLAYING
        return SlideshowState.IDLE

    @property
    def current_identifier(self) -> Optional[str]:
        index = self.playback.current_index
        if index is None or not self._images or index >= len(self._images):
            return None
        return self._images[index]

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Arm the refresh timer and load the first listing."""
        if self._closed:
            raise ConfigurationError("Slideshow has been shut down")
        logger.info("Starting slideshow")
        self._arm_refresh_timer()
        await self.refresh_list()

    async def shutdown(self) -> None:
        """Cancel timers and background work, clear the cache, close clients."""
        if self._closed:
            return
        logger.info("Slideshow stopping...")
        self._closed = True
        self.playback.running = False
        self._cancel_advance_timer()
        self._cancel_refresh_timer()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.fetcher.close()
        if self._http_client is not None:
            await self._http_client.aclose()

    async def suspend(self) -> None:
        """Stop playback and list refreshes without forgetting the user's pause."""
        logger.info("Slideshow suspended")
        self._stop_playback()
        self._cancel_refresh_timer()

    async def wake(self) -> None:
        """Undo ``suspend``: re-arm the refresh timer and resume if allowed."""
        logger.info("Slideshow resumed")
        self._arm_refresh_timer()
        await self._auto_resume()

    async def drain(self) -> None:
        """Wait for every background task the slideshow spawned."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- list management -----------------------------------------------------

    async def refresh_list(self) -> bool:
        """Re-list the repository and replace the image list on success.

        Failures are reported to the presenter and leave the current list
        in place; the next refresh tick tries again.

        Returns:
            True if a new list was loaded.
        """
        self.presenter.progress("Connecting to repository...")
        try:
            images = await self.repository.list_images()
        except SlideshowError as e:
            logger.error(f"Failed to fetch image list: {e}")
            self.presenter.error(e.message, e.details)
            return False

        if self._closed:
            return False

        if not images:
            error = EmptyResultError("No images found in the specified repository path")
            logger.warning(error.message)
            self.presenter.error(error.message, error.details)
            return False

        self.list_loaded(images)
        return True

    def list_loaded(self, images: ImageList) -> None:
        """Replace the list wholesale and reset the position."""
        logger.info(f"Received image list with {len(images)} images")
        self._images = list(images)
        self.playback.current_index = None
        self.presenter.list_received(len(self._images))
        self._arm_refresh_timer()

        if self._images and not self.config.start_hidden:
            self._spawn(self._auto_resume())

    # -- commands ------------------------------------------------------------

    async def play(self) -> None:
        """Start playing and show the next image right away."""
        if self.playback.running:
            logger.debug("Already playing")
            return
        self.playback.running = True
        self.playback.user_paused = False
        logger.info("Image loading resumed")
        await self.advance(Direction.NEXT)

    resume = play

    async def pause(self) -> None:
        """Stop the advance timer. In-flight fetches and renders still finish."""
        self._stop_playback()
        self.playback.user_paused = True

    async def toggle(self) -> None:
        if self.playback.running:
            await self.pause()
        else:
            await self.play()

    async def next(self) -> Optional[CacheEntry]:
        self._cancel_advance_timer()
        return await self.advance(Direction.NEXT)

    async def previous(self) -> Optional[CacheEntry]:
        if self.config.random or not self._images:
            logger.debug("Previous ignored in random mode or with an empty list")
            return None
        self._cancel_advance_timer()
        return await self.advance(Direction.PREVIOUS)

    async def handle_command(self, command: str) -> None:
        """Dispatch one of ``COMMANDS``.

        Raises:
            ValueError: If the command is unknown.
        """
        handlers: Dict[str, Callable[[], Awaitable]] = {
            "next": self.next,
            "previous": self.previous,
            "toggle": self.toggle,
            "pause": self.pause,
            "resume": self.play,
            "refresh-list": self.refresh_list,
        }
        handler = handlers.get(command)
        if handler is None:
            raise ValueError(f"Unknown command: {command}")
        logger.debug(f"Received command: {command}")
        await handler()

    # -- advancing -----------------------------------------------------------

    def next_index(self, direction: Direction = Direction.NEXT) -> int:
        """Choose the index to show next. The list must not be empty."""
        count = len(self._images or [])
        if count == 0:
            raise IndexError("No images available")
        current = self.playback.current_index

        if self.config.random:
            # Never the same image twice in a row, unless there is only one
            while True:
                index = self._rng.randrange(count)
                if count == 1 or index != current:
                    return index

        if current is None:
            return count - 1 if direction is Direction.PREVIOUS else 0
        if direction is Direction.PREVIOUS:
            return (current - 1) % count
        return (current + 1) % count

    async def advance(self, direction: Direction = Direction.NEXT) -> Optional[CacheEntry]:
        """Fetch and render the next image.

        Returns:
            The entry that was shown, or None if nothing was shown.
        """
        if self.playback.transitioning:
            logger.debug("Animation in progress, skipping load request")
            return None

        if not self._images:
            logger.warning("No images available to display")
            self._schedule_advance()
            return None

        if direction is Direction.PREVIOUS and self.config.random:
            return None

        index = self.next_index(direction)
        self.playback.current_index = index
        identifier = self._images[index]

        self.playback.transitioning = True
        self.playback.pending_direction = direction
        try:
            return await self._load_and_show(identifier)
        finally:
            self.playback.transitioning = False
            self.playback.pending_direction = None
            self._schedule_advance()

    async def _load_and_show(self, identifier: str) -> Optional[CacheEntry]:
        logger.debug(f"Loading image: {identifier}")
        try:
            entry = await self.fetcher.get_image(
                identifier, self.config.show_width, self.config.show_height
            )
        except SlideshowError as e:
            logger.error(f"Error fetching image {identifier}: {e}")
            self.presenter.error(e.message, e.details)
            return None

        if self._closed:
            return None

        try:
            await self.presenter.show_image(entry)
        except Exception as e:
            logger.error(f"Failed to display image {identifier}: {e}")
            self.presenter.error(f"Failed to display image: {identifier}", str(e))
            return None

        self.current_entry = entry
        return entry

    def _on_entry_updated(self, entry: CacheEntry) -> None:
        if self.current_entry is entry:
            self.presenter.image_updated(entry)

    # -- timers --------------------------------------------------------------

    def _schedule_advance(self) -> None:
        if not self.playback.running or self._closed:
            return
        self._cancel_advance_timer()
        loop = asyncio.get_running_loop()
        self._advance_timer = loop.call_later(self.config.update_interval, self._on_advance_timer)

    def _on_advance_timer(self) -> None:
        self._advance_timer = None
        if self.playback.running:
            self._spawn(self.advance(Direction.NEXT))

    def _cancel_advance_timer(self) -> None:
        if self._advance_timer is not None:
            self._advance_timer.cancel()
            self._advance_timer = None

    def _arm_refresh_timer(self) -> None:
        if self._closed:
            return
        self._cancel_refresh_timer()
        loop = asyncio.get_running_loop()
        self._refresh_timer = loop.call_later(self.config.list_refresh_interval, self._on_refresh_timer)

    def _on_refresh_timer(self) -> None:
        logger.info("Refreshing image list...")
        self._refresh_timer = None
        # Keep ticking even if this refresh fails
        self._arm_refresh_timer()
        self._spawn(self.refresh_list())

    def _cancel_refresh_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    # -- helpers -------------------------------------------------------------

    def _stop_playback(self) -> None:
        self._cancel_advance_timer()
        if self.playback.running:
            logger.info("Image loading paused")
        self.playback.running = False

    async def _auto_resume(self) -> None:
        if self.playback.running or not self._images:
            return
        if self.config.start_paused or self.playback.user_paused:
            return
        await self.play()

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
