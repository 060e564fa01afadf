"""Music capability — drive the Music app through AppleScript.

Scripts return plain text with fields joined by ``||`` and one record per
line; the handler parses that into wire dicts.  Automation consent for the
Music app is separate from the bridge's own ``automation`` permission:
AppleScript error -1743 means the user declined it.
"""

from __future__ import annotations

import shutil
from typing import Any, Protocol

from garden_bridge.capabilities.applescript import quote_applescript, run_osascript
from garden_bridge.capabilities.base import CapabilityHandler, Platform
from garden_bridge.exceptions import CommandError
from garden_bridge.logging import get_logger
from garden_bridge.permissions import PermissionGate
from garden_bridge.protocol.params.base import NoParams
from garden_bridge.protocol.params.music import (
    MusicPlaylistParams,
    MusicPlayParams,
    MusicSearchParams,
    MusicVolumeParams,
)

log = get_logger(__name__)

FIELD_SEP = "||"
_NOT_FOUND = "NOT_FOUND"
_STOPPED = "STOPPED"
_AUTOMATION_DECLINED = "APPLESCRIPT_ERROR_-1743"


class ScriptRunner(Protocol):
    async def run(self, script: str) -> str: ...


class OsascriptRunner:
    def __init__(self, osascript: str | None = None, timeout: float = 15.0) -> None:
        self._osascript = osascript or shutil.which("osascript")
        self._timeout = timeout

    async def run(self, script: str) -> str:
        if self._osascript is None:
            raise CommandError.not_implemented("Music control (osascript)")
        return await run_osascript(self._osascript, script, self._timeout)


def _tell(*lines: str) -> str:
    body = "\n".join(f"    {line}" for line in lines)
    return f'tell application "Music"\n{body}\nend tell'


def _number(text: str) -> float | None:
    # AppleScript formats reals with the user's decimal separator.
    try:
        return float(text.strip().replace(",", "."))
    except ValueError:
        return None


def _track(fields: list[str]) -> dict[str, Any]:
    fields = fields + [""] * (4 - len(fields))
    return {
        "name": fields[0],
        "artist": fields[1],
        "album": fields[2],
        "duration": _number(fields[3]),
    }


class MusicHandler(CapabilityHandler):
    NAMESPACE = "music"
    VERSION = "1.0.0"
    SUPPORTED_PLATFORMS = [Platform.MACOS]
    PERMISSION = "automation"
    COMMANDS = {
        "play": MusicPlayParams,
        "pause": NoParams,
        "stop": NoParams,
        "next": NoParams,
        "previous": NoParams,
        "togglePlayPause": NoParams,
        "setVolume": MusicVolumeParams,
        "nowPlaying": NoParams,
        "search": MusicSearchParams,
        "getPlaylists": NoParams,
        "playPlaylist": MusicPlaylistParams,
    }

    def __init__(
        self,
        permissions: PermissionGate | None = None,
        runner: ScriptRunner | None = None,
    ) -> None:
        super().__init__(permissions)
        self._runner = runner or OsascriptRunner()

    async def _run(self, script: str) -> str:
        try:
            return await self._runner.run(script)
        except CommandError as exc:
            if exc.code == _AUTOMATION_DECLINED:
                raise CommandError.permission_denied("automation", self.NAMESPACE) from exc
            raise

    async def _simple(self, verb: str) -> dict[str, Any]:
        await self._run(_tell(verb))
        return {"success": True}

    async def _action_play(self, p: MusicPlayParams) -> dict[str, Any]:
        if p.track is None:
            return await self._simple("play")
        output = await self._run(
            _tell(
                f"set found to (search library playlist 1 for {quote_applescript(p.track)})",
                f'if (count of found) is 0 then return "{_NOT_FOUND}"',
                "set t to item 1 of found",
                "play t",
                f'return (name of t) & "{FIELD_SEP}" & (artist of t)',
            )
        )
        if output == _NOT_FOUND:
            raise CommandError.not_found(f"No track matching: {p.track}")
        name, _, artist = output.partition(FIELD_SEP)
        log.info("music_play", track=name)
        return {"success": True, "track": name, "artist": artist}

    async def _action_pause(self, p: NoParams) -> dict[str, Any]:
        return await self._simple("pause")

    async def _action_stop(self, p: NoParams) -> dict[str, Any]:
        return await self._simple("stop")

    async def _action_next(self, p: NoParams) -> dict[str, Any]:
        return await self._simple("next track")

    async def _action_previous(self, p: NoParams) -> dict[str, Any]:
        return await self._simple("previous track")

    async def _action_toggle_play_pause(self, p: NoParams) -> dict[str, Any]:
        return await self._simple("playpause")

    async def _action_set_volume(self, p: MusicVolumeParams) -> dict[str, Any]:
        await self._run(_tell(f"set sound volume to {p.volume}"))
        return {"success": True, "volume": p.volume}

    async def _action_now_playing(self, p: NoParams) -> dict[str, Any]:
        output = await self._run(
            _tell(
                f'if player state is stopped then return "{_STOPPED}"',
                "set t to current track",
                f'set sep to "{FIELD_SEP}"',
                "return (name of t) & sep & (artist of t) & sep & (album of t) & sep & "
                "(duration of t) & sep & (player position) & sep & (player state as text)",
            )
        )
        if output == _STOPPED or not output:
            return {"playing": False, "state": "stopped", "track": None}
        fields = output.split(FIELD_SEP)
        state = fields[5] if len(fields) > 5 else "unknown"
        return {
            "playing": state == "playing",
            "state": state,
            "track": _track(fields[:4]),
            "position": _number(fields[4]) if len(fields) > 4 else None,
        }

    async def _action_search(self, p: MusicSearchParams) -> dict[str, Any]:
        output = await self._run(
            _tell(
                f"set found to (search library playlist 1 for {quote_applescript(p.query)})",
                f"set maxCount to {p.limit}",
                "if (count of found) < maxCount then set maxCount to (count of found)",
                f'set sep to "{FIELD_SEP}"',
                'set output to ""',
                "repeat with i from 1 to maxCount",
                "    set t to item i of found",
                "    set output to output & (name of t) & sep & (artist of t) & sep & "
                "(album of t) & sep & (duration of t) & linefeed",
                "end repeat",
                "return output",
            )
        )
        tracks = [_track(line.split(FIELD_SEP)) for line in output.splitlines() if line.strip()]
        tracks = tracks[: p.limit]
        return {"tracks": tracks, "count": len(tracks)}

    async def _action_get_playlists(self, p: NoParams) -> dict[str, Any]:
        output = await self._run(
            _tell(
                'set output to ""',
                "repeat with pl in user playlists",
                "    set output to output & (name of pl) & linefeed",
                "end repeat",
                "return output",
            )
        )
        playlists = [{"name": line} for line in output.splitlines() if line.strip()]
        return {"playlists": playlists, "count": len(playlists)}

    async def _action_play_playlist(self, p: MusicPlaylistParams) -> dict[str, Any]:
        name = quote_applescript(p.name)
        output = await self._run(
            _tell(
                f'if not (exists playlist {name}) then return "{_NOT_FOUND}"',
                f"play playlist {name}",
                'return "OK"',
            )
        )
        if output == _NOT_FOUND:
            raise CommandError.not_found(f"Playlist not found: {p.name}")
        return {"success": True, "playlist": p.name}
