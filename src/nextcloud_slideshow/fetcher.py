"""Fetch & cache layer: downloads images, extracts metadata, enriches with place names."""

import asyncio
import base64
import logging
from typing import Callable, Optional, Set

import httpx

from .cache import ImageCache
from .config import IMAGE_TIMEOUT, SlideshowConfig
from .errors import NetworkError, RequestTimeoutError, SlideshowError
from .exif import ExifExtractor
from .geocoding import GeocodingResolver
from .models import CacheEntry, cache_key
from .repository import RepositoryClient

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"

UpdateListener = Callable[[CacheEntry], None]


class FetchLayer:
    """Serve images from the bounded cache, fetching on a miss.

    Concurrent requests for the same key are not coalesced; the later
    write wins, which is harmless because the payloads are identical.
    """

    def __init__(
        self,
        config: SlideshowConfig,
        repository: RepositoryClient,
        client: httpx.AsyncClient,
        geocoder: Optional[GeocodingResolver] = None,
        extractor: Optional[ExifExtractor] = None,
        on_update: Optional[UpdateListener] = None,
    ):
        self.config = config
        self.repository = repository
        self.cache = ImageCache(config.cache_size)
        self._client = client
        self._geocoder = geocoder
        self._extractor = extractor or ExifExtractor()
        self._background: Set[asyncio.Task] = set()
        self.on_update = on_update
        self.fetch_count = 0

    async def get_image(self, identifier: str, width: int, height: int) -> CacheEntry:
        """Return the cached entry for (identifier, width, height) or fetch it.

        Args:
            identifier: Image path relative to the repository root.
            width: Requested display width (part of the cache key only).
            height: Requested display height (part of the cache key only).

        Returns:
            The CacheEntry. Its ``exif.location`` may be filled in later.

        Raises:
            NetworkError: Transport failure or non-2xx status.
            RequestTimeoutError: The download exceeded 60 seconds.
        """
        key = cache_key(identifier, width, height)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Returning cached image data for: {identifier}")
            return cached

        entry = await self._download(identifier)
        self.cache.put(key, entry)

        coordinates = entry.exif.coordinates
        if coordinates is not None:
            if self.config.enable_geocoding and self._geocoder is not None:
                self._spawn(self._enrich_location(entry, *coordinates))
            else:
                logger.debug(
                    "Geocoding disabled - GPS coordinates extracted but no location lookup performed"
                )
        return entry

    async def _download(self, identifier: str) -> CacheEntry:
        url = self.repository.image_url(identifier)
        logger.debug(f"Fetching image data for: {identifier}")
        self.fetch_count += 1
        try:
            response = await self._client.get(url, timeout=IMAGE_TIMEOUT)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(f"Timeout downloading image: {identifier}", str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to fetch image: {identifier}", details=str(e)) from e

        if not response.is_success:
            raise NetworkError(
                f"Failed to download image: {identifier} (HTTP {response.status_code})",
                status=response.status_code,
            )

        payload = response.content
        mime_type = response.headers.get("content-type") or DEFAULT_MIME_TYPE
        encoded = f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"

        entry = CacheEntry(
            filename=identifier,
            encoded_data=encoded,
            mime_type=mime_type,
            size=len(payload),
            exif=self._extractor.extract(payload),
        )
        logger.debug(f"Successfully processed image: {identifier} ({round(len(payload) / 1024)}KB)")
        return entry

    async def _enrich_location(self, entry: CacheEntry, latitude: float, longitude: float) -> None:
        try:
            location = await self._geocoder.resolve(latitude, longitude)
        except SlideshowError as e:
            logger.debug(f"Reverse geocoding failed for {entry.filename}: {e}")
            return

        entry.exif.location = location
        entry.revision += 1
        logger.debug(f"Resolved location for {entry.filename}: {location}")
        if self.on_update is not None:
            try:
                self.on_update(entry)
            except Exception as e:
                logger.error(f"Update listener failed for {entry.filename}: {e}")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_for_background(self) -> None:
        """Wait until every pending geocoding lookup has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending lookups and drop the cache."""
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        self.cache.clear()
        if self._geocoder is not None:
            await self._geocoder.close()
