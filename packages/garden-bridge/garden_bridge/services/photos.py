"""Service layer — photo library.

The default backend reads a directory of images with Pillow.  Each
first-level subfolder is an album; photo ids are posix paths relative to
the library root.  Capture time comes from EXIF (``DateTimeOriginal``,
then ``DateTime``) and falls back to the file mtime; EXIF times carry no
offset and are taken as UTC.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from garden_bridge.logging import get_logger
from garden_bridge.services.base import ItemNotFoundError, ServiceUnavailableError

log = get_logger(__name__)

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".tif", ".tiff", ".heic", ".webp", ".bmp", ".gif"})

_TAG_DATETIME = 0x0132
_TAG_DATETIME_ORIGINAL = 0x9003
_IFD_EXIF = 0x8769
_IFD_GPS = 0x8825
_EXIF_TIME_FORMAT = "%Y:%m:%d %H:%M:%S"


@dataclass
class Photo:
    id: str
    filename: str
    width: int
    height: int
    created_at: datetime
    album: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "filename": self.filename,
            "width": self.width,
            "height": self.height,
            "createdAt": self.created_at.isoformat(),
            "album": self.album,
        }
        if self.has_location:
            data["latitude"] = self.latitude
            data["longitude"] = self.longitude
        return data


@dataclass
class Album:
    id: str
    title: str
    count: int
    type: str = "user"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "count": self.count, "type": self.type}


class PhotoLibrary(ABC):
    @abstractmethod
    async def photos(self, album: str | None = None) -> list[Photo]:
        """Every photo, optionally restricted to one album, in no particular order."""

    @abstractmethod
    async def get(self, photo_id: str) -> Photo: ...

    @abstractmethod
    async def load_image(self, photo_id: str) -> Image.Image: ...

    @abstractmethod
    async def albums(self) -> list[Album]: ...


def gps_coordinate(values: Any, ref: Any) -> float | None:
    """Convert an EXIF degrees/minutes/seconds triple to signed decimal degrees."""
    try:
        degrees, minutes, seconds = (float(v) for v in values)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    value = degrees + minutes / 60 + seconds / 3600
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip().upper() in ("S", "W"):
        value = -value
    return value


def _exif_time(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip("\x00 "), _EXIF_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class DirectoryPhotoLibrary(PhotoLibrary):
    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _require_root(self) -> Path:
        if not self._root.is_dir():
            raise ServiceUnavailableError(f"Photo library not found: {self._root}")
        return self._root.resolve()

    def _resolve(self, photo_id: str) -> Path:
        root = self._require_root()
        path = (root / photo_id).resolve()
        if not path.is_relative_to(root) or not path.is_file() or path.suffix.lower() not in IMAGE_SUFFIXES:
            raise ItemNotFoundError("Photo", photo_id)
        return path

    def _read(self, root: Path, path: Path) -> Photo | None:
        try:
            # TIFF IFDs are read lazily from the open file.
            with Image.open(path) as img:
                width, height = img.size
                exif = img.getexif()
                taken = exif.get_ifd(_IFD_EXIF).get(_TAG_DATETIME_ORIGINAL) or exif.get(_TAG_DATETIME)
                gps = dict(exif.get_ifd(_IFD_GPS))
        except (UnidentifiedImageError, OSError) as exc:
            log.debug("photo_unreadable", path=str(path), error=str(exc))
            return None

        created_at = _exif_time(taken)
        if created_at is None:
            created_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

        latitude = longitude = None
        if 2 in gps and 4 in gps:
            latitude = gps_coordinate(gps[2], gps.get(1))
            longitude = gps_coordinate(gps[4], gps.get(3))

        relative = path.relative_to(root)
        return Photo(
            id=relative.as_posix(),
            filename=path.name,
            width=width,
            height=height,
            created_at=created_at,
            album=relative.parts[0] if len(relative.parts) > 1 else None,
            latitude=latitude,
            longitude=longitude,
        )

    def _image_paths(self, folder: Path) -> list[Path]:
        return sorted(
            p
            for p in folder.rglob("*")
            if p.is_file()
            and p.suffix.lower() in IMAGE_SUFFIXES
            and not any(part.startswith(".") for part in p.relative_to(folder).parts)
        )

    def _scan(self, album: str | None) -> list[Photo]:
        root = self._require_root()
        folder = root
        if album is not None:
            folder = (root / album).resolve()
            if folder.parent != root or not folder.is_dir():
                raise ItemNotFoundError("Album", album)
        return [photo for path in self._image_paths(folder) if (photo := self._read(root, path))]

    def _get(self, photo_id: str) -> Photo:
        root = self._require_root()
        photo = self._read(root, self._resolve(photo_id))
        if photo is None:
            raise ItemNotFoundError("Photo", photo_id)
        return photo

    def _load(self, photo_id: str) -> Image.Image:
        path = self._resolve(photo_id)
        try:
            with Image.open(path) as img:
                img.load()
                return img.copy()
        except (UnidentifiedImageError, OSError):
            raise ItemNotFoundError("Photo", photo_id) from None

    def _albums(self) -> list[Album]:
        root = self._require_root()
        return [
            Album(id=folder.name, title=folder.name, count=len(self._image_paths(folder)))
            for folder in sorted(root.iterdir())
            if folder.is_dir() and not folder.name.startswith(".")
        ]

    async def photos(self, album: str | None = None) -> list[Photo]:
        return await asyncio.to_thread(self._scan, album)

    async def get(self, photo_id: str) -> Photo:
        return await asyncio.to_thread(self._get, photo_id)

    async def load_image(self, photo_id: str) -> Image.Image:
        return await asyncio.to_thread(self._load, photo_id)

    async def albums(self) -> list[Album]:
        return await asyncio.to_thread(self._albums)
