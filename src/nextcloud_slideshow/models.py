"""Data models shared by the repository client, fetch layer and orchestrator."""

import base64
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Listing snapshot: identifiers in repository order
ImageList = List[str]

OSM_ATTRIBUTION = "Location data © OpenStreetMap contributors (https://www.openstreetmap.org/copyright)"


class Direction(str, Enum):
    """Navigation direction for an advance."""
    NEXT = "next"
    PREVIOUS = "previous"


class SlideshowState(str, Enum):
    """Externally visible orchestrator state."""
    STOPPED = "stopped"  # no list loaded yet
    IDLE = "idle"
    PLAYING = "playing"
    TRANSITIONING = "transitioning"


def cache_key(identifier: str, width: int, height: int) -> str:
    """Cache key for an identifier at a given display size."""
    return f"{identifier}_{width}_{height}"


@dataclass
class ExifRecord:
    """Best-effort metadata pulled from an image's embedded tags."""
    date: Optional[datetime] = None
    camera: Optional[str] = None
    coordinates: Optional[Tuple[float, float]] = None  # (latitude, longitude)
    location: Optional[str] = None  # filled in later by geocoding

    @property
    def is_empty(self) -> bool:
        return self.date is None and not self.camera and self.coordinates is None

    def to_dict(self) -> Dict[str, Any]:
        coordinates = None
        if self.coordinates is not None:
            coordinates = {"latitude": self.coordinates[0], "longitude": self.coordinates[1]}
        return {
            "date": self.date.isoformat() if self.date else None,
            "camera": self.camera or None,
            "coordinates": coordinates,
            "location": self.location,
        }


@dataclass
class CacheEntry:
    """A fetched image plus its metadata.

    Owned by the fetch layer. ``revision`` is bumped whenever the entry is
    enriched after it was first handed out (e.g. a late geocoding result),
    so a presenter can tell that a re-render is worthwhile.
    """
    filename: str
    encoded_data: str  # data URI
    mime_type: str
    size: int
    exif: ExifRecord = field(default_factory=ExifRecord)
    revision: int = 0

    @property
    def raw_bytes(self) -> bytes:
        """Decode the data URI back into the original payload."""
        _, _, payload = self.encoded_data.partition(";base64,")
        return base64.b64decode(payload)

    def to_dict(self, include_data: bool = False) -> Dict[str, Any]:
        result = {
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size": self.size,
            "exif": self.exif.to_dict(),
            "revision": self.revision,
        }
        if include_data:
            result["encoded_data"] = self.encoded_data
        return result


@dataclass
class PlaybackState:
    """Mutable playback bookkeeping. Never persisted."""
    current_index: Optional[int] = None
    running: bool = False
    transitioning: bool = False
    pending_direction: Optional[Direction] = None
    user_paused: bool = False
