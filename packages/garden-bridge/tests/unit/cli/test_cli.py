"""Unit tests — garden-bridge CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from garden_bridge.cli.main import app
from garden_bridge.config import Settings
from garden_bridge.gateway.identity import DeviceIdentity, TokenStore

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "identity:\n"
        f"  key_path: {tmp_path / 'device_key'}\n"
        f"  state_path: {tmp_path / 'state.json'}\n"
    )
    return path


@pytest.mark.unit
class TestDaemonStart:
    def test_start_applies_overrides(self) -> None:
        settings = Settings()
        with patch("garden_bridge.config.Settings.load", return_value=settings), \
             patch("garden_bridge.api.server.create_app", return_value=MagicMock()) as mock_create, \
             patch("garden_bridge.cli.commands.daemon.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(
                app, ["daemon", "start", "--host", "0.0.0.0", "--port", "29999", "--no-gateway"]
            )

        assert result.exit_code == 0, result.output
        assert settings.server.host == "0.0.0.0"
        assert settings.server.port == 29999
        assert settings.gateway.enabled is False
        mock_create.assert_called_once_with(settings=settings)
        kwargs = mock_uvicorn.call_args[1]
        assert kwargs["port"] == 29999
        assert kwargs["log_level"] == "info"


@pytest.mark.unit
class TestDaemonStatus:
    def test_status_prints_health(self) -> None:
        health = {"status": "ok", "version": "0.4.0", "gateway": {"state": "paired"}}
        with patch("garden_bridge.client.BridgeClient.health", return_value=health):
            result = runner.invoke(app, ["daemon", "status"])
        assert result.exit_code == 0
        assert "gateway.state" in result.output
        assert "paired" in result.output

    def test_status_unreachable_exits_1(self) -> None:
        with patch(
            "garden_bridge.client.BridgeClient.health", side_effect=httpx.ConnectError("refused")
        ):
            result = runner.invoke(app, ["daemon", "status"])
        assert result.exit_code == 1
        assert "unreachable" in result.output


@pytest.mark.unit
class TestInvoke:
    def test_prints_envelope(self) -> None:
        envelope = {"ok": True, "payload": {"exists": True, "isDirectory": True, "path": "/"}}
        with patch("garden_bridge.client.BridgeClient.invoke", return_value=envelope) as mock_invoke:
            result = runner.invoke(app, ["invoke", "file.exists", "--params", '{"path": "/"}'])
        assert result.exit_code == 0
        mock_invoke.assert_called_once_with("file.exists", {"path": "/"})
        assert json.loads(result.output) == envelope

    def test_failure_envelope_exits_1(self) -> None:
        envelope = {"ok": False, "error": {"code": "UNKNOWN_COMMAND", "message": "Unknown command: x.y"}}
        with patch("garden_bridge.client.BridgeClient.invoke", return_value=envelope):
            result = runner.invoke(app, ["invoke", "x.y"])
        assert result.exit_code == 1

    @pytest.mark.parametrize("raw", ["{bad", "[1, 2]"])
    def test_bad_params_exit_2(self, raw: str) -> None:
        result = runner.invoke(app, ["invoke", "file.exists", "--params", raw])
        assert result.exit_code == 2


@pytest.mark.unit
class TestIdentity:
    def test_show_generates_key(self, config_file: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["identity", "show", "--config", str(config_file)])
        assert result.exit_code == 0, result.output
        identity = DeviceIdentity.load(tmp_path / "device_key")
        assert identity.device_id in result.output

    def test_reset_with_yes(self, config_file: Path, tmp_path: Path) -> None:
        before = DeviceIdentity.load(tmp_path / "device_key").device_id
        TokenStore(tmp_path / "state.json").save("tok")

        result = runner.invoke(app, ["identity", "reset", "--yes", "--config", str(config_file)])
        assert result.exit_code == 0
        assert not (tmp_path / "device_key").exists()
        assert TokenStore(tmp_path / "state.json").load() is None
        assert DeviceIdentity.load(tmp_path / "device_key").device_id != before

    def test_reset_aborted(self, config_file: Path, tmp_path: Path) -> None:
        DeviceIdentity.load(tmp_path / "device_key")
        result = runner.invoke(app, ["identity", "reset", "--config", str(config_file)], input="n\n")
        assert result.exit_code == 1
        assert (tmp_path / "device_key").exists()
