"""Unit tests — DeviceIdentity and TokenStore persistence."""

from __future__ import annotations

import base64
import json
import stat
import sys
from pathlib import Path

import pytest

from garden_bridge.exceptions import IdentityError
from garden_bridge.gateway.identity import DeviceIdentity, TokenStore, fingerprint


@pytest.mark.unit
class TestDeviceIdentity:
    def test_generates_and_persists_key(self, tmp_path: Path) -> None:
        key_path = tmp_path / "id" / "device_key"
        identity = DeviceIdentity.load(key_path)

        assert key_path.exists()
        assert len(base64.b64decode(key_path.read_text())) == 32
        assert len(identity.device_id) == 32
        assert identity.device_id == fingerprint(base64.b64decode(identity.public_key))

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX file modes")
    def test_key_file_is_private(self, tmp_path: Path) -> None:
        key_path = tmp_path / "device_key"
        DeviceIdentity.load(key_path)
        assert stat.S_IMODE(key_path.stat().st_mode) == 0o600

    def test_reload_keeps_device_id(self, tmp_path: Path) -> None:
        key_path = tmp_path / "device_key"
        first = DeviceIdentity.load(key_path)
        second = DeviceIdentity.load(key_path)
        assert first.device_id == second.device_id
        assert first.public_key == second.public_key

    def test_corrupt_key_is_replaced(self, tmp_path: Path) -> None:
        key_path = tmp_path / "device_key"
        key_path.write_text("not base64 at all!")
        identity = DeviceIdentity.load(key_path)
        assert identity.has_key
        assert len(base64.b64decode(key_path.read_text())) == 32

    def test_binary_key_file_is_replaced(self, tmp_path: Path) -> None:
        key_path = tmp_path / "device_key"
        key_path.write_bytes(b"\xff\xfe\x00garbage\x80")
        identity = DeviceIdentity.load(key_path)
        assert identity.has_key
        assert len(base64.b64decode(key_path.read_text())) == 32

    def test_reset_rotates_device_id(self, tmp_path: Path) -> None:
        identity = DeviceIdentity.load(tmp_path / "device_key")
        before = identity.device_id
        identity.reset()
        assert identity.device_id != before
        assert DeviceIdentity.load(tmp_path / "device_key").device_id == identity.device_id

    def test_sign_and_verify(self, tmp_path: Path) -> None:
        identity = DeviceIdentity.load(tmp_path / "device_key")
        sig = identity.sign("abc", 1000)
        assert sig is not None
        assert sig.signed_at == 1000
        assert DeviceIdentity.verify("abc:1000", sig.signature, identity.public_key)
        assert not DeviceIdentity.verify("abc:1001", sig.signature, identity.public_key)

    def test_verify_rejects_garbage(self, tmp_path: Path) -> None:
        identity = DeviceIdentity.load(tmp_path / "device_key")
        assert not DeviceIdentity.verify("abc:1000", "%%%", identity.public_key)
        assert not DeviceIdentity.verify("abc:1000", base64.b64encode(b"x" * 64).decode(), "short")

    def test_keyless_identity(self, tmp_path: Path) -> None:
        identity = DeviceIdentity(tmp_path / "device_key")
        assert identity.sign("abc", 1000) is None
        with pytest.raises(IdentityError):
            _ = identity.device_id

    def test_unwritable_location(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(IdentityError):
            DeviceIdentity.load(blocker / "device_key")


@pytest.mark.unit
class TestTokenStore:
    def test_round_trip_and_clear(self, tmp_path: Path) -> None:
        store = TokenStore(tmp_path / "state.json")
        assert store.load() is None

        store.save("tok-1")
        assert store.load() == "tok-1"
        assert json.loads((tmp_path / "state.json").read_text()) == {"deviceToken": "tok-1"}

        store.clear()
        assert store.load() is None

    def test_unreadable_state_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        path.write_text("{broken")
        store = TokenStore(path)
        assert store.load() is None
        store.save("tok-2")
        assert store.load() == "tok-2"
