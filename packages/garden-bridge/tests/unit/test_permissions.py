"""Unit tests — StaticPermissionGate."""

from __future__ import annotations

import pytest

from garden_bridge.permissions import StaticPermissionGate


@pytest.mark.unit
class TestStaticPermissionGate:
    def test_denied_beats_granted(self) -> None:
        gate = StaticPermissionGate(["camera", "screen"], denied=["camera"])
        assert gate.is_granted("screen")
        assert not gate.is_granted("camera")

    def test_unknown_name_denied(self) -> None:
        assert not StaticPermissionGate(["file"]).is_granted("microphone")

    def test_snapshot_lists_known_names_in_order(self) -> None:
        gate = StaticPermissionGate(["file", "screen"], denied=["camera"])
        assert gate.snapshot() == {"file": True, "screen": True, "camera": False}

    def test_grant_and_revoke(self) -> None:
        gate = StaticPermissionGate([], denied=["location"])
        gate.grant("location")
        assert gate.is_granted("location")
        gate.revoke("location")
        assert not gate.is_granted("location")
        assert gate.snapshot() == {"location": False}
