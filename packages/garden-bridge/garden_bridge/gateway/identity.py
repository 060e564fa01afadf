"""Gateway layer — Device identity and persisted pairing state.

The device keypair is Ed25519 (PyNaCl).  It is generated once, stored as a
base64 seed with mode 0600, and reloaded on every start so the device id
stays stable.  A missing or unreadable key file is replaced by a fresh key;
that rotates the device id, which the gateway then sees as a new device.

    device_id  = hex(sha256(raw_public_key)[:16])
    public_key = base64(raw_public_key)
    signature  = base64(ed25519_sign("<nonce>:<timestamp>"))
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from garden_bridge.exceptions import IdentityError
from garden_bridge.logging import get_logger

log = get_logger(__name__)

_SEED_BYTES = 32
_FINGERPRINT_BYTES = 16


def _write_private(path: Path, data: str) -> None:
    """Atomically write *data* readable only by the current user."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(data)
    os.replace(tmp, path)
    os.chmod(path, 0o600)


def signature_message(nonce: str, timestamp: int) -> bytes:
    return f"{nonce}:{timestamp}".encode("utf-8")


def fingerprint(raw_public_key: bytes) -> str:
    return hashlib.sha256(raw_public_key).digest()[:_FINGERPRINT_BYTES].hex()


@dataclass(frozen=True)
class Signature:
    signature: str  # base64
    signed_at: int


class DeviceIdentity:
    """Owns the device signing key.  The private key never leaves this object.

    Usage::

        identity = DeviceIdentity.load(Path("~/.garden-bridge/device_key").expanduser())
        sig = identity.sign("abc", 1000)
        DeviceIdentity.verify("abc:1000", sig.signature, identity.public_key)
    """

    def __init__(self, key_path: Path, signing_key: SigningKey | None = None) -> None:
        self._key_path = key_path
        self._signing_key = signing_key

    @classmethod
    def load(cls, key_path: Path) -> DeviceIdentity:
        """Load the persisted key, or generate and persist a new one."""
        identity = cls(key_path)
        identity._signing_key = identity._read_key() or identity._generate()
        return identity

    @property
    def key_path(self) -> Path:
        return self._key_path

    @property
    def has_key(self) -> bool:
        return self._signing_key is not None

    @property
    def device_id(self) -> str:
        return fingerprint(self._require_key().verify_key.encode())

    @property
    def public_key(self) -> str:
        return base64.b64encode(self._require_key().verify_key.encode()).decode("ascii")

    def sign(self, nonce: str, timestamp: int) -> Signature | None:
        """Sign ``"<nonce>:<timestamp>"``; ``None`` when no key is loaded."""
        if self._signing_key is None:
            return None
        signed = self._signing_key.sign(signature_message(nonce, timestamp))
        return Signature(
            signature=base64.b64encode(signed.signature).decode("ascii"),
            signed_at=timestamp,
        )

    @staticmethod
    def verify(message: str | bytes, signature: str, public_key: str) -> bool:
        """Check a base64 *signature* over *message* against a base64 public key."""
        if isinstance(message, str):
            message = message.encode("utf-8")
        try:
            verify_key = VerifyKey(base64.b64decode(public_key, validate=True))
            verify_key.verify(
                message, base64.b64decode(signature, validate=True)
            )
            return True
        except (BadSignatureError, binascii.Error, ValueError):
            return False

    def reset(self) -> None:
        """Discard the current key and persist a fresh one (rotates ``device_id``)."""
        self._key_path.unlink(missing_ok=True)
        self._signing_key = self._generate()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _require_key(self) -> SigningKey:
        if self._signing_key is None:
            raise IdentityError("Device identity has no key loaded")
        return self._signing_key

    def _read_key(self) -> SigningKey | None:
        try:
            raw = self._key_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            log.warning("device_key_unreadable", path=str(self._key_path), error=str(exc))
            return None
        try:
            seed = base64.b64decode(raw.decode("ascii").strip(), validate=True)
        except (binascii.Error, ValueError):
            seed = b""
        if len(seed) != _SEED_BYTES:
            log.warning("device_key_corrupt", path=str(self._key_path))
            return None
        return SigningKey(seed)

    def _generate(self) -> SigningKey:
        key = SigningKey.generate()
        try:
            _write_private(self._key_path, base64.b64encode(bytes(key)).decode("ascii"))
        except OSError as exc:
            raise IdentityError(
                f"Cannot persist device key at {self._key_path}: {exc}",
                context={"path": str(self._key_path)},
            ) from exc
        log.info("device_key_generated", path=str(self._key_path), device_id=fingerprint(key.verify_key.encode()))
        return key


class TokenStore:
    """Persists the device token issued by the gateway on a successful hello."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, object]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log.warning("device_state_unreadable", path=str(self._path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> str | None:
        token = self._read().get("deviceToken")
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        data = self._read()
        data["deviceToken"] = token
        _write_private(self._path, json.dumps(data, indent=2))

    def clear(self) -> None:
        data = self._read()
        if data.pop("deviceToken", None) is not None:
            _write_private(self._path, json.dumps(data, indent=2))
