"""Unit tests — PhotosHandler and the directory photo library."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
from PIL import Image

from garden_bridge.capabilities.photos import PhotosHandler, distance_meters
from garden_bridge.exceptions import CommandError
from garden_bridge.permissions import StaticPermissionGate
from garden_bridge.resources.store import ResourceStore
from garden_bridge.services.base import ItemNotFoundError, ServiceUnavailableError
from garden_bridge.services.photos import (
    Album,
    DirectoryPhotoLibrary,
    Photo,
    PhotoLibrary,
    gps_coordinate,
)

BASE_URL = "http://localhost:28790"
UTC = timezone.utc
LOOSE_MTIME = 1_700_000_000


def _jpeg_with_date(path: Path, when: str, size: tuple[int, int] = (40, 30)) -> None:
    exif = Image.Exif()
    exif[0x0132] = when
    Image.new("RGB", size, color=(90, 160, 60)).save(path, format="JPEG", exif=exif)


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    root = tmp_path / "Pictures"
    (root / "Trips").mkdir(parents=True)
    (root / "Garden").mkdir()
    _jpeg_with_date(root / "Trips" / "beach.jpg", "2024:07:14 10:00:00")
    _jpeg_with_date(root / "Trips" / ".hidden.jpg", "2024:07:15 10:00:00")
    _jpeg_with_date(root / "Garden" / "tomato.jpg", "2023:08:01 18:30:00", size=(20, 20))
    Image.new("RGB", (10, 10)).save(root / "loose.png")
    os.utime(root / "loose.png", (LOOSE_MTIME, LOOSE_MTIME))
    (root / "notes.txt").write_text("not a photo")
    (root / "broken.jpg").write_bytes(b"\xff\xd8 truncated")
    return root


class FakeLibrary(PhotoLibrary):
    def __init__(self, photos: list[Photo]) -> None:
        self._photos = {p.id: p for p in photos}

    async def photos(self, album: str | None = None) -> list[Photo]:
        return [p for p in self._photos.values() if album is None or p.album == album]

    async def get(self, photo_id: str) -> Photo:
        try:
            return self._photos[photo_id]
        except KeyError:
            raise ItemNotFoundError("Photo", photo_id) from None

    async def load_image(self, photo_id: str) -> Image.Image:
        photo = await self.get(photo_id)
        return Image.new("RGB", (photo.width, photo.height), color=(0, 0, 200))

    async def albums(self) -> list[Album]:
        return [Album("Trips", "Trips", 2), Album("Favorites", "Favorites", 1, type="smart")]


@pytest.fixture
def fake_library() -> FakeLibrary:
    return FakeLibrary(
        [
            Photo("eiffel", "eiffel.jpg", 400, 300, datetime(2024, 6, 1, tzinfo=UTC), "Trips", 48.8584, 2.2945),
            Photo("louvre", "louvre.jpg", 400, 300, datetime(2024, 6, 2, tzinfo=UTC), "Trips", 48.8606, 2.3376),
            Photo("kitchen", "kitchen.jpg", 400, 300, datetime(2024, 6, 3, tzinfo=UTC)),
            Photo("eiffel-old", "old.jpg", 400, 300, datetime(2020, 1, 1, tzinfo=UTC), None, 48.8584, 2.2945),
        ]
    )


# ---------------------------------------------------------------------------
# Directory library
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestDirectoryPhotoLibrary:
    async def test_scan_reads_dates_and_albums(self, library_dir: Path) -> None:
        photos = {p.id: p for p in await DirectoryPhotoLibrary(library_dir).photos()}

        assert sorted(photos) == ["Garden/tomato.jpg", "Trips/beach.jpg", "loose.png"]
        beach = photos["Trips/beach.jpg"]
        assert beach.album == "Trips"
        assert beach.created_at == datetime(2024, 7, 14, 10, 0, tzinfo=UTC)
        assert (beach.width, beach.height) == (40, 30)
        assert not beach.has_location

        loose = photos["loose.png"]
        assert loose.album is None
        assert loose.created_at == datetime.fromtimestamp(LOOSE_MTIME, tz=UTC)

    async def test_album_filter(self, library_dir: Path) -> None:
        library = DirectoryPhotoLibrary(library_dir)
        assert [p.id for p in await library.photos("Garden")] == ["Garden/tomato.jpg"]
        with pytest.raises(ItemNotFoundError):
            await library.photos("Holidays")
        with pytest.raises(ItemNotFoundError):
            await library.photos("../..")

    async def test_get_rejects_paths_outside_root(self, library_dir: Path) -> None:
        Image.new("RGB", (5, 5)).save(library_dir.parent / "outside.png")
        library = DirectoryPhotoLibrary(library_dir)
        with pytest.raises(ItemNotFoundError):
            await library.get("../outside.png")
        with pytest.raises(ItemNotFoundError):
            await library.get("notes.txt")

    async def test_albums_count_visible_images(self, library_dir: Path) -> None:
        albums = await DirectoryPhotoLibrary(library_dir).albums()
        assert [(a.title, a.count, a.type) for a in albums] == [("Garden", 1, "user"), ("Trips", 1, "user")]

    async def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(ServiceUnavailableError):
            await DirectoryPhotoLibrary(tmp_path / "nowhere").photos()

    def test_gps_coordinate(self) -> None:
        assert gps_coordinate((48, 51, 30), "N") == pytest.approx(48.858333, abs=1e-6)
        assert gps_coordinate((2, 17, 40.2), b"W") == pytest.approx(-2.2945, abs=1e-6)
        assert gps_coordinate(("x",), "N") is None


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestPhotosHandler:
    async def test_list_newest_first_with_limit(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        result = await handler.execute("photos.list", {"limit": 2})
        assert [p["id"] for p in result["photos"]] == ["kitchen", "louvre"]
        assert result["count"] == 2

    async def test_list_date_range_naive_is_utc(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        result = await handler.execute(
            "photos.list", {"startDate": "2024-01-01T00:00:00", "endDate": "2024-06-01T23:59:59"}
        )
        assert [p["id"] for p in result["photos"]] == ["eiffel"]

    async def test_list_album(self, resource_store: ResourceStore, fake_library: FakeLibrary) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        result = await handler.execute("photos.list", {"album": "Trips"})
        assert [p["id"] for p in result["photos"]] == ["louvre", "eiffel"]

    async def test_search_within_radius(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        near = await handler.execute(
            "photos.search", {"latitude": 48.8584, "longitude": 2.2945, "radius": 500}
        )
        assert [p["id"] for p in near["photos"]] == ["eiffel", "eiffel-old"]
        assert near["photos"][0]["distanceMeters"] == 0.0

        wider = await handler.execute("photos.search", {"latitude": 48.8584, "longitude": 2.2945, "radius": 5000})
        assert [p["id"] for p in wider["photos"]] == ["louvre", "eiffel", "eiffel-old"]
        assert 3000 < wider["photos"][0]["distanceMeters"] < 3400

    async def test_search_without_point_is_date_filter(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        result = await handler.execute("photos.search", {"startDate": "2024-06-02T00:00:00Z"})
        assert [p["id"] for p in result["photos"]] == ["kitchen", "louvre"]
        assert "distanceMeters" not in result["photos"][0]

    async def test_search_needs_both_coordinates(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("photos.search", {"latitude": 48.8})
        assert exc_info.value.code == "INVALID_PARAMS"

    async def test_get_stores_photo_resource(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        payload = await handler.execute("photos.get", {"id": "eiffel", "format": "PNG", "size": 100})

        assert payload["photoId"] == "eiffel"
        assert payload["photoUrl"] == f"{BASE_URL}/photo/{payload['resourceId']}"
        assert payload["mimeType"] == "image/png"
        assert (payload["width"], payload["height"]) == (100, 75)

        data, entry = await resource_store.read(payload["resourceId"])
        assert entry.kind == "photo"
        assert data.startswith(b"\x89PNG")

    async def test_get_unknown_photo(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("photos.get", {"id": "moon"})
        assert exc_info.value.code == "NOT_FOUND"
        assert len(resource_store) == 0

    async def test_get_from_directory_library(
        self, resource_store: ResourceStore, library_dir: Path
    ) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=DirectoryPhotoLibrary(library_dir))
        payload = await handler.execute("photos.get", {"id": "Trips/beach.jpg"})
        assert payload["createdAt"] == "2024-07-14T10:00:00+00:00"
        data, _ = await resource_store.read(payload["resourceId"])
        assert data.startswith(b"\xff\xd8")

    async def test_albums_by_type(self, resource_store: ResourceStore, fake_library: FakeLibrary) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=fake_library)
        assert (await handler.execute("photos.getAlbums", {}))["count"] == 2
        smart = await handler.execute("photos.getAlbums", {"type": "smart"})
        assert [a["title"] for a in smart["albums"]] == ["Favorites"]

    async def test_missing_library_is_unavailable(self, resource_store: ResourceStore, tmp_path: Path) -> None:
        handler = PhotosHandler(resource_store, BASE_URL, library=DirectoryPhotoLibrary(tmp_path / "none"))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("photos.list", {})
        assert exc_info.value.code == "PHOTOS_UNAVAILABLE"

    async def test_permission_denied(
        self, resource_store: ResourceStore, fake_library: FakeLibrary
    ) -> None:
        gate = StaticPermissionGate(["camera"], denied=["photos"])
        handler = PhotosHandler(resource_store, BASE_URL, permissions=gate, library=fake_library)
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("photos.list", {})
        assert exc_info.value.code == "PERMISSION_DENIED"


@pytest.mark.unit
def test_distance_paris_london() -> None:
    assert 340_000 < distance_meters(48.8566, 2.3522, 51.5074, -0.1278) < 348_000
