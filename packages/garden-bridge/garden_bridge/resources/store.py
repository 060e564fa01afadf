"""Resource layer — Ephemeral artifact store.

Large binary results (screenshots, camera photos, audio recordings) are
written here and handed back to the caller as an opaque id.  The caller
fetches the bytes through ``GET /resources/{id}`` outside the JSON envelope.

Policy:
  - Pure TTL.  Every ``store`` schedules its own removal; access never
    extends the window.
  - Expiry is also checked on access so a late eviction task can never
    expose an artifact past its window.
  - ``store`` / ``retrieve`` / ``read`` / ``remove`` serialize on one
    asyncio lock, so a fetch racing an eviction sees either the whole file
    or ``ResourceNotFoundError``.
"""

from __future__ import annotations

import asyncio
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from garden_bridge.exceptions import ResourceNotFoundError
from garden_bridge.logging import get_logger

log = get_logger(__name__)

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
}


def mime_type_for(extension: str) -> str:
    return _MIME_TYPES.get(extension.lower().lstrip("."), "application/octet-stream")


@dataclass(frozen=True)
class ResourceEntry:
    """Metadata for one stored artifact."""

    id: str
    kind: str
    path: Path
    mime_type: str
    size: int
    created_at: float  # wall clock, seconds since epoch
    retention: float

    @property
    def extension(self) -> str:
        return self.path.suffix.lstrip(".")


class ResourceStore:
    """Owns the ephemeral artifact directory and its id → entry map.

    Usage::

        store = ResourceStore(retention={"audio": 600})
        entry = await store.store(png_bytes, kind="screenshot", extension="png")
        data, entry = await store.read(entry.id)
    """

    def __init__(
        self,
        root_dir: Path | None = None,
        retention: dict[str, float] | None = None,
        default_retention: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._root = root_dir or Path(tempfile.gettempdir()) / "garden-bridge-resources"
        self._root.mkdir(parents=True, exist_ok=True)
        self._retention = dict(retention or {})
        self._default_retention = default_retention
        self._clock = clock
        self._lock = asyncio.Lock()
        self._entries: dict[str, ResourceEntry] = {}
        self._deadlines: dict[str, float] = {}
        self._evictions: dict[str, asyncio.Task[None]] = {}

    @property
    def root(self) -> Path:
        return self._root

    def retention_for(self, kind: str) -> float:
        return self._retention.get(kind, self._default_retention)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def store(
        self,
        data: bytes,
        kind: str,
        extension: str,
        mime_type: str | None = None,
    ) -> ResourceEntry:
        """Persist *data* and schedule its removal after the kind's retention window."""
        extension = extension.lower().lstrip(".")
        retention = self.retention_for(kind)

        async with self._lock:
            resource_id = uuid.uuid4().hex
            while resource_id in self._entries:
                resource_id = uuid.uuid4().hex
            path = self._root / f"{resource_id}.{extension}"
            await asyncio.to_thread(path.write_bytes, data)

            entry = ResourceEntry(
                id=resource_id,
                kind=kind,
                path=path,
                mime_type=mime_type or mime_type_for(extension),
                size=len(data),
                created_at=time.time(),
                retention=retention,
            )
            self._entries[resource_id] = entry
            self._deadlines[resource_id] = self._clock() + retention
            self._evictions[resource_id] = asyncio.create_task(
                self._evict_after(resource_id, retention),
                name=f"resource-evict-{resource_id}",
            )

        log.debug("resource_stored", resource_id=resource_id, kind=kind, size=entry.size)
        return entry

    async def retrieve(self, resource_id: str) -> ResourceEntry:
        """Return the entry for *resource_id*.

        Raises:
            ResourceNotFoundError: Unknown id, removed, or retention elapsed.
        """
        async with self._lock:
            return self._live_entry(resource_id)

    async def read(self, resource_id: str) -> tuple[bytes, ResourceEntry]:
        """Return the stored bytes and entry, read under the store lock."""
        async with self._lock:
            entry = self._live_entry(resource_id)
            try:
                data = await asyncio.to_thread(entry.path.read_bytes)
            except FileNotFoundError:
                self._drop_locked(resource_id)
                raise ResourceNotFoundError(resource_id) from None
            return data, entry

    async def remove(self, resource_id: str) -> None:
        """Delete *resource_id* now.  Removing an absent id is a no-op."""
        async with self._lock:
            self._drop_locked(resource_id)

    async def close(self) -> None:
        """Cancel pending evictions and delete every stored artifact."""
        async with self._lock:
            for resource_id in list(self._entries):
                self._drop_locked(resource_id)
        log.debug("resource_store_closed", root=str(self._root))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _live_entry(self, resource_id: str) -> ResourceEntry:
        entry = self._entries.get(resource_id)
        if entry is None:
            raise ResourceNotFoundError(resource_id)
        if self._clock() >= self._deadlines[resource_id]:
            self._drop_locked(resource_id)
            raise ResourceNotFoundError(resource_id)
        return entry

    def _drop_locked(self, resource_id: str) -> None:
        entry = self._entries.pop(resource_id, None)
        self._deadlines.pop(resource_id, None)
        task = self._evictions.pop(resource_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        if entry is not None:
            entry.path.unlink(missing_ok=True)
            log.debug("resource_removed", resource_id=resource_id, kind=entry.kind)

    async def _evict_after(self, resource_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        async with self._lock:
            self._drop_locked(resource_id)
