"""Audio capability — microphone recording through sounddevice.

Recordings are written as 16-bit PCM WAV into the resource store (kind
``audio``, longer retention than screenshots).  The microphone is exclusive:
a second ``audio.record`` while one is running fails fast with
``RECORDING_IN_PROGRESS`` instead of queueing for minutes.
"""

from __future__ import annotations

import asyncio
import io
import wave
from typing import Any, Protocol

from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.audio import AudioRecordParams
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.resources.store import ResourceStore

log = get_logger(__name__)

SUPPORTED_FORMATS = {"wav": "audio/wav"}


class AudioBackend(Protocol):
    def devices(self) -> list[dict[str, Any]]: ...

    def record(
        self, duration: float, sample_rate: int, channels: int, device: int | str | None
    ) -> bytes:
        """Block for *duration* seconds and return raw little-endian int16 frames."""
        ...

    def stop(self) -> None: ...


class SoundDeviceBackend:
    @staticmethod
    def _sd() -> Any:
        try:
            import sounddevice
        except (ImportError, OSError):
            raise CommandError(
                "DEVICE_NOT_SUPPORTED",
                "Audio capture unavailable (pip install garden-bridge[audio] and PortAudio)",
            ) from None
        return sounddevice

    def devices(self) -> list[dict[str, Any]]:
        sd = self._sd()
        default_input = sd.default.device[0]
        result = []
        for index, dev in enumerate(sd.query_devices()):
            if dev["max_input_channels"] <= 0:
                continue
            result.append(
                {
                    "id": index,
                    "name": dev["name"],
                    "channels": dev["max_input_channels"],
                    "sampleRate": dev["default_samplerate"],
                    "isDefault": index == default_input,
                }
            )
        return result

    def record(
        self, duration: float, sample_rate: int, channels: int, device: int | str | None
    ) -> bytes:
        sd = self._sd()
        frames = sd.rec(
            int(duration * sample_rate),
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            device=device,
        )
        sd.wait()
        return frames.tobytes()

    def stop(self) -> None:
        self._sd().stop()


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


class AudioHandler(CapabilityHandler):
    NAMESPACE = "audio"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.ALL]
    PERMISSION = "microphone"
    COMMANDS = {
        "record": AudioRecordParams,
        "getDevices": NoParams,
    }

    def __init__(
        self,
        resources: ResourceStore,
        base_url: str,
        permissions: PermissionGate | None = None,
        backend: AudioBackend | None = None,
    ) -> None:
        super().__init__(permissions)
        self._resources = resources
        self._base_url = base_url.rstrip("/")
        self._backend = backend or SoundDeviceBackend()
        self._recording = asyncio.Lock()

    @property
    def is_recording(self) -> bool:
        return self._recording.locked()

    async def _action_record(self, p: AudioRecordParams) -> dict[str, Any]:
        mime_type = SUPPORTED_FORMATS.get(p.format)
        if mime_type is None:
            raise CommandError(
                "FORMAT_NOT_SUPPORTED",
                f"Unsupported audio format: {p.format} (supported: {', '.join(SUPPORTED_FORMATS)})",
            )
        if self._recording.locked():
            raise CommandError("RECORDING_IN_PROGRESS", "A recording is already in progress")

        async with self._recording:
            log.info("audio_recording_started", duration=p.duration, device=p.device)
            try:
                pcm = await asyncio.to_thread(
                    self._backend.record, p.duration, p.sample_rate, p.channels, p.device
                )
            except CommandError:
                raise
            except asyncio.CancelledError:
                await asyncio.to_thread(self._backend.stop)
                raise
            except Exception as exc:
                raise CommandError("RECORD_FAILED", f"Recording failed: {exc}") from exc

        data = pcm_to_wav(pcm, p.sample_rate, p.channels)
        entry = await self._resources.store(data, kind="audio", extension=p.format, mime_type=mime_type)
        return {
            "resourceId": entry.id,
            "audioId": entry.id,
            "audioUrl": f"{self._base_url}/audio/{entry.id}",
            "format": p.format,
            "duration": p.duration,
            "mimeType": mime_type,
            "size": entry.size,
        }

    async def _action_get_devices(self, p: NoParams) -> dict[str, Any]:
        devices = await asyncio.to_thread(self._backend.devices)
        return {"devices": devices, "count": len(devices)}
