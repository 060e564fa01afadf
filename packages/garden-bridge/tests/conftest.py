"""Shared pytest fixtures for the garden-bridge test suite."""

from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from garden_bridge.config import ALL_PERMISSIONS, Settings, override_settings
from garden_bridge.permissions import StaticPermissionGate
from garden_bridge.resources.store import ResourceStore


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        gateway={"enabled": False, "connect_delay": 0.01, "heartbeat_interval": 0.05},
        identity={
            "key_path": str(tmp_path / "identity" / "device_key"),
            "state_path": str(tmp_path / "identity" / "state.json"),
        },
        resources={"storage_dir": str(tmp_path / "resources")},
        location={"provider": "static", "static_latitude": 48.85, "static_longitude": 2.35},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Shared components
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock the tests move forward by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def resource_store(tmp_path: Path, clock: FakeClock) -> AsyncGenerator[ResourceStore, None]:
    store = ResourceStore(root_dir=tmp_path / "store", default_retention=300.0, clock=clock)
    yield store
    await store.close()


@pytest.fixture
def all_granted() -> StaticPermissionGate:
    return StaticPermissionGate(ALL_PERMISSIONS)


@pytest.fixture
def none_granted() -> StaticPermissionGate:
    return StaticPermissionGate([])
