"""EXIF metadata extraction from raw image bytes."""

import logging
import math
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Optional, Tuple

from PIL import ExifTags, Image, UnidentifiedImageError

from .models import ExifRecord

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"


class ExifExtractor:
    """Pull capture date, camera and GPS position out of image bytes.

    ``extract`` never raises: malformed or missing metadata yields an empty
    ExifRecord.
    """

    def extract(self, raw: bytes) -> ExifRecord:
        try:
            with Image.open(BytesIO(raw)) as img:
                exif = img.getexif()
                return self._build_record(exif)
        except UnidentifiedImageError:
            logger.debug("EXIF extraction skipped: not a recognised image")
        except Exception as e:
            logger.debug(f"EXIF extraction failed (this is normal for some images): {e}")
        return ExifRecord()

    def _build_record(self, exif: Image.Exif) -> ExifRecord:
        if not exif:
            return ExifRecord()

        exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        raw_date = (
            exif_ifd.get(ExifTags.Base.DateTimeOriginal)
            or exif_ifd.get(ExifTags.Base.DateTimeDigitized)
        )

        return ExifRecord(
            date=parse_exif_date(raw_date),
            camera=camera_label(exif.get(ExifTags.Base.Make), exif.get(ExifTags.Base.Model)),
            coordinates=self._gps_coordinates(exif.get_ifd(ExifTags.IFD.GPSInfo)),
        )

    def _gps_coordinates(self, gps: dict) -> Optional[Tuple[float, float]]:
        if not gps:
            return None
        lat = dms_to_degrees(gps.get(ExifTags.GPS.GPSLatitude))
        lon = dms_to_degrees(gps.get(ExifTags.GPS.GPSLongitude))
        if lat is None or lon is None:
            return None
        if _clean(gps.get(ExifTags.GPS.GPSLatitudeRef)).upper() == "S":
            lat = -lat
        if _clean(gps.get(ExifTags.GPS.GPSLongitudeRef)).upper() == "W":
            lon = -lon
        return (lat, lon)


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    return str(value).strip("\x00 \t\r\n")


def camera_label(make: Any, model: Any) -> Optional[str]:
    """Join make and model; None when both are absent."""
    label = f"{_clean(make)} {_clean(model)}".strip()
    return label or None


def parse_exif_date(value: Any) -> Optional[datetime]:
    """Parse an EXIF ``YYYY:MM:DD HH:MM:SS`` stamp.

    EXIF carries no zone, so the wall-clock value is pinned to UTC to give
    an unambiguous absolute time.
    """
    text = _clean(value)
    if not text:
        return None
    try:
        return datetime.strptime(text[:19], EXIF_DATE_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.debug(f"Unparsable EXIF date: {text!r}")
        return None


def dms_to_degrees(value: Any) -> Optional[float]:
    """Convert a (degrees, minutes, seconds) rational triple to decimal degrees."""
    if not value:
        return None
    try:
        d, m, s = value
        result = float(d) + float(m) / 60.0 + float(s) / 3600.0
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    # Pillow turns a zero denominator into nan instead of raising
    if math.isnan(result):
        return None
    return result
