"""WebDAV repository client: discovers and filters candidate images."""

import logging
import posixpath
import re
import xml.etree.ElementTree as ET
from typing import List, Optional
from urllib.parse import quote, unquote, urlparse

import httpx

from .config import IMAGE_TIMEOUT, LIST_TIMEOUT, RepositoryConfig
from .errors import NetworkError, ParseError, RequestTimeoutError
from .models import ImageList

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff", ".tif"}


def create_http_client(
    repository: RepositoryConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Authenticated client shared by the repository client and the fetch layer."""
    return httpx.AsyncClient(
        auth=httpx.BasicAuth(repository.username, repository.password),
        timeout=IMAGE_TIMEOUT,
        transport=transport,
    )


class RepositoryClient:
    """Lists the images below the configured repository path."""

    def __init__(self, repository: RepositoryConfig, client: httpx.AsyncClient):
        self.repository = repository
        self._client = client
        self._exclude = [re.compile(pattern, re.IGNORECASE) for pattern in repository.exclude]

    def image_url(self, identifier: str) -> str:
        """URL of a single image. Path separators inside the identifier are kept."""
        return f"{self.repository.path.rstrip('/')}/{quote(identifier, safe='/')}"

    async def list_images(self) -> ImageList:
        """Issue a PROPFIND and return the filtered identifiers in listing order.

        An empty list is a valid result; callers decide how to report it.

        Raises:
            NetworkError: Transport failure or non-2xx status.
            RequestTimeoutError: No response within 30 seconds.
            ParseError: The body is not a parsable multistatus document.
        """
        headers = {
            "Depth": "infinity" if self.repository.recursive else "1",
            "Content-Type": "application/xml",
        }
        logger.info(f"Fetching image list from {self.repository.path}")
        try:
            response = await self._client.request(
                "PROPFIND", self.repository.path, headers=headers, timeout=LIST_TIMEOUT
            )
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                "Request timeout - repository server not responding", str(e)
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError("Failed to connect to repository", details=str(e)) from e

        if not response.is_success:
            raise NetworkError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status=response.status_code,
            )

        images = self.parse_listing(response.text)
        logger.info(f"Found {len(images)} images")
        return images

    def parse_listing(self, body: str) -> ImageList:
        """Turn a multistatus body into filtered image identifiers."""
        hrefs = extract_hrefs(body)
        # Hrefs arrive percent-encoded; compare both sides decoded
        base_stripped = unquote(self.repository.base_path).rstrip("/")

        images = []
        for href in hrefs:
            # Some servers answer with absolute URLs
            if href.startswith(("http://", "https://")):
                href = urlparse(href).path
            href = unquote(href)

            if href.rstrip("/") == base_stripped:
                continue

            if href.startswith(base_stripped + "/"):
                href = href[len(base_stripped):]
            filename = href.lstrip("/")

            if not filename or filename.endswith("/"):
                continue

            if posixpath.splitext(filename)[1].lower() not in IMAGE_EXTENSIONS:
                continue

            if self.is_excluded(filename):
                logger.debug(f"Excluding file due to exclude pattern: {filename}")
                continue

            images.append(filename)
        return images

    def is_excluded(self, filename: str) -> bool:
        return any(pattern.search(filename) for pattern in self._exclude)


def extract_hrefs(body: str) -> List[str]:
    """Collect the text of every ``href`` element, whatever its namespace.

    Raises:
        ParseError: If the body is not well-formed XML.
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ParseError("Failed to parse repository response", str(e)) from e

    hrefs = []
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        if element.tag.rsplit("}", 1)[-1] == "href" and element.text:
            hrefs.append(element.text.strip())
    if not hrefs:
        logger.warning("No href entries found in response")
    return hrefs
