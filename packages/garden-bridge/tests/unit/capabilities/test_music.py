"""Unit tests — MusicHandler against a scripted AppleScript runner."""

from __future__ import annotations

import pytest

from garden_bridge.capabilities.base import Platform
from garden_bridge.capabilities.music import MusicHandler
from garden_bridge.exceptions import CommandError


class FakeRunner:
    def __init__(self, replies: list[str] | None = None, error: Exception | None = None) -> None:
        self.scripts: list[str] = []
        self._replies = list(replies or [])
        self._error = error

    async def run(self, script: str) -> str:
        self.scripts.append(script)
        if self._error is not None:
            raise self._error
        return self._replies.pop(0) if self._replies else ""


@pytest.mark.unit
class TestPlayback:
    async def test_play_resumes_without_track(self) -> None:
        runner = FakeRunner()
        result = await MusicHandler(runner=runner).execute("music.play", {})
        assert result == {"success": True}
        assert runner.scripts == ['tell application "Music"\n    play\nend tell']

    async def test_play_track_search(self) -> None:
        runner = FakeRunner(["Blue in Green||Miles Davis"])
        result = await MusicHandler(runner=runner).execute("music.play", {"track": 'Blue "in" Green'})
        assert result == {"success": True, "track": "Blue in Green", "artist": "Miles Davis"}
        assert 'search library playlist 1 for "Blue \\"in\\" Green"' in runner.scripts[0]

    async def test_play_track_not_found(self) -> None:
        handler = MusicHandler(runner=FakeRunner(["NOT_FOUND"]))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("music.play", {"track": "Nothing like it"})
        assert exc_info.value.code == "NOT_FOUND"

    @pytest.mark.parametrize(
        ("command", "verb"),
        [
            ("music.pause", "pause"),
            ("music.stop", "stop"),
            ("music.next", "next track"),
            ("music.previous", "previous track"),
            ("music.togglePlayPause", "playpause"),
        ],
    )
    async def test_transport_verbs(self, command: str, verb: str) -> None:
        runner = FakeRunner()
        assert await MusicHandler(runner=runner).execute(command, {}) == {"success": True}
        assert runner.scripts == [f'tell application "Music"\n    {verb}\nend tell']

    @pytest.mark.parametrize(("requested", "applied"), [(150, 100), (-5, 0), (40, 40)])
    async def test_volume_clamped(self, requested: int, applied: int) -> None:
        runner = FakeRunner()
        result = await MusicHandler(runner=runner).execute("music.setVolume", {"volume": requested})
        assert result["volume"] == applied
        assert f"set sound volume to {applied}" in runner.scripts[0]


@pytest.mark.unit
class TestLibrary:
    async def test_now_playing_stopped(self) -> None:
        result = await MusicHandler(runner=FakeRunner(["STOPPED"])).execute("music.nowPlaying", {})
        assert result == {"playing": False, "state": "stopped", "track": None}

    async def test_now_playing_parses_fields(self) -> None:
        runner = FakeRunner(["So What||Miles Davis||Kind of Blue||562,5||12.0||playing"])
        result = await MusicHandler(runner=runner).execute("music.nowPlaying", {})
        assert result["playing"] is True
        assert result["track"] == {
            "name": "So What",
            "artist": "Miles Davis",
            "album": "Kind of Blue",
            "duration": 562.5,
        }
        assert result["position"] == 12.0

    async def test_search(self) -> None:
        runner = FakeRunner(["So What||Miles Davis||Kind of Blue||562.5\nFreddie Freeloader||Miles Davis||Kind of Blue||589.0\n"])
        result = await MusicHandler(runner=runner).execute("music.search", {"query": "miles", "limit": 5})
        assert result["count"] == 2
        assert result["tracks"][1]["name"] == "Freddie Freeloader"
        assert "set maxCount to 5" in runner.scripts[0]

    async def test_playlists(self) -> None:
        runner = FakeRunner(["Morning\nGardening\n"])
        result = await MusicHandler(runner=runner).execute("music.getPlaylists", {})
        assert result == {"playlists": [{"name": "Morning"}, {"name": "Gardening"}], "count": 2}

    async def test_play_unknown_playlist(self) -> None:
        handler = MusicHandler(runner=FakeRunner(["NOT_FOUND"]))
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("music.playPlaylist", {"name": "Nope"})
        assert exc_info.value.code == "NOT_FOUND"
        assert exc_info.value.message == "Playlist not found: Nope"


@pytest.mark.unit
class TestMusicErrors:
    async def test_declined_automation_is_permission_denied(self) -> None:
        runner = FakeRunner(error=CommandError("APPLESCRIPT_ERROR_-1743", "Not authorized to send Apple events"))
        with pytest.raises(CommandError) as exc_info:
            await MusicHandler(runner=runner).execute("music.pause", {})
        assert exc_info.value.code == "PERMISSION_DENIED"
        assert exc_info.value.context["permission"] == "automation"

    async def test_other_script_errors_pass_through(self) -> None:
        runner = FakeRunner(error=CommandError("APPLESCRIPT_ERROR_-600", "Application isn't running"))
        with pytest.raises(CommandError) as exc_info:
            await MusicHandler(runner=runner).execute("music.stop", {})
        assert exc_info.value.code == "APPLESCRIPT_ERROR_-600"

    async def test_missing_osascript(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shutil.which", lambda name: None)
        with pytest.raises(CommandError) as exc_info:
            await MusicHandler().execute("music.pause", {})
        assert exc_info.value.code == "NOT_IMPLEMENTED"

    def test_macos_only(self) -> None:
        assert MusicHandler.SUPPORTED_PLATFORMS == [Platform.MACOS]
