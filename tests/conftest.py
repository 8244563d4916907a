"""Shared fixtures and doubles for the slideshow tests."""

import asyncio
from io import BytesIO
from typing import List, Optional, Sequence
from urllib.parse import quote

import pytest
from PIL import Image

from nextcloud_slideshow.config import RepositoryConfig, SlideshowConfig
from nextcloud_slideshow.errors import SlideshowError
from nextcloud_slideshow.models import CacheEntry, ExifRecord
from nextcloud_slideshow.presenter import Presenter

BASE_URL = "https://cloud.example.com/remote.php/dav/files/alice/Photos"
BASE_PATH = "/remote.php/dav/files/alice/Photos"


def make_config(**overrides) -> SlideshowConfig:
    repo_kwargs = {
        "path": BASE_URL,
        "username": "alice",
        "password": "secret",
    }
    for key in ("recursive", "exclude"):
        if key in overrides:
            repo_kwargs[key] = overrides.pop(key)
    return SlideshowConfig(repository=RepositoryConfig(**repo_kwargs), **overrides)


def multistatus(hrefs: Sequence[str], include_base: bool = True) -> str:
    """A minimal PROPFIND response listing ``hrefs`` (relative to the base path)."""
    responses = []
    if include_base:
        responses.append(f"<d:response><d:href>{BASE_PATH}/</d:href></d:response>")
    for href in hrefs:
        responses.append(
            f"<d:response><d:href>{BASE_PATH}/{quote(href)}</d:href></d:response>"
        )
    return (
        '<?xml version="1.0"?>'
        '<d:multistatus xmlns:d="DAV:">' + "".join(responses) + "</d:multistatus>"
    )


def jpeg_bytes(exif: Optional[Image.Exif] = None) -> bytes:
    buffer = BytesIO()
    img = Image.new("RGB", (8, 8), color=(200, 100, 50))
    if exif is not None:
        img.save(buffer, "JPEG", exif=exif)
    else:
        img.save(buffer, "JPEG")
    return buffer.getvalue()


def exif_jpeg(with_gps: bool = True, make: str = "Canon", model: str = "EOS R5") -> bytes:
    exif = Image.Exif()
    if make:
        exif[0x010F] = make
    if model:
        exif[0x0110] = model
    exif[0x8769] = {0x9003: "2023:07:14 10:30:00"}
    if with_gps:
        exif[0x8825] = {
            1: "N",
            2: (48.0, 51.0, 36.0),
            3: "E",
            4: (2.0, 21.0, 0.0),
        }
    return jpeg_bytes(exif)


def make_entry(filename: str) -> CacheEntry:
    return CacheEntry(
        filename=filename,
        encoded_data="data:image/jpeg;base64,AAAA",
        mime_type="image/jpeg",
        size=3,
        exif=ExifRecord(),
    )


class FakeFetcher:
    """Stands in for FetchLayer in orchestrator tests."""

    def __init__(self, fail: Sequence[str] = ()):
        self.requests: List[str] = []
        self.fail = set(fail)
        self.gate: Optional[asyncio.Event] = None
        self.on_update = None

    async def get_image(self, identifier, width, height):
        self.requests.append(identifier)
        if self.gate is not None:
            await self.gate.wait()
        if identifier in self.fail:
            raise SlideshowError(f"Failed to fetch image: {identifier}", "HTTP 500")
        return make_entry(identifier)

    async def close(self):
        pass


class FakeRepository:
    """Stands in for RepositoryClient in orchestrator tests."""

    def __init__(self, images=None, error: Optional[Exception] = None):
        self.images = list(images or [])
        self.error = error
        self.calls = 0

    async def list_images(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.images)


class RecordingPresenter(Presenter):
    def __init__(self):
        self.shown: List[str] = []
        self.errors: List[str] = []
        self.counts: List[int] = []
        self.progress_messages: List[str] = []
        self.updated: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.entered = asyncio.Event()
        self.fail_render = False

    async def show_image(self, entry):
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_render:
            raise RuntimeError("decode failed")
        self.shown.append(entry.filename)

    def list_received(self, count):
        self.counts.append(count)

    def image_updated(self, entry):
        self.updated.append(entry.filename)

    def error(self, message, details=None):
        self.errors.append(message)

    def progress(self, message):
        self.progress_messages.append(message)


@pytest.fixture
def config():
    return make_config()
