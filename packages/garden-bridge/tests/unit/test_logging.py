"""Unit tests — logging processors and invocation context."""

from __future__ import annotations

import logging

import pytest

from garden_bridge.logging import (
    _add_invocation_context,
    _mask_secrets,
    bind_invocation_context,
    clear_invocation_context,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_invocation_context()
    yield
    clear_invocation_context()


@pytest.mark.unit
class TestInvocationContext:
    def test_bound_fields_are_added(self) -> None:
        bind_invocation_context(request_id="r1", command="file.read")
        event = _add_invocation_context(None, "info", {"event": "x"})
        assert event["request_id"] == "r1"
        assert event["command"] == "file.read"
        assert "connection_id" not in event

    def test_explicit_fields_win(self) -> None:
        bind_invocation_context(request_id="r1")
        event = _add_invocation_context(None, "info", {"event": "x", "request_id": "mine"})
        assert event["request_id"] == "mine"

    def test_none_keeps_previous_value(self) -> None:
        bind_invocation_context(connection_id="c1")
        bind_invocation_context(request_id="r2")
        event = _add_invocation_context(None, "info", {"event": "x"})
        assert event["connection_id"] == "c1"

    def test_clear(self) -> None:
        bind_invocation_context(request_id="r1")
        clear_invocation_context()
        assert _add_invocation_context(None, "info", {"event": "x"}) == {"event": "x"}


@pytest.mark.unit
class TestMaskSecrets:
    def test_secret_values_masked(self) -> None:
        event = _mask_secrets(None, "info", {"event": "x", "token": "abc", "signature": "sig"})
        assert event == {"event": "x", "token": "***", "signature": "***"}

    def test_empty_secrets_left_alone(self) -> None:
        assert _mask_secrets(None, "info", {"token": None})["token"] is None

    def test_other_keys_untouched(self) -> None:
        assert _mask_secrets(None, "info", {"has_token": True})["has_token"] is True


@pytest.mark.unit
class TestConfigure:
    def test_log_file_receives_records(self, tmp_path) -> None:
        path = tmp_path / "logs" / "bridge.log"
        configure_logging(level="info", format="json", log_file=str(path))
        get_logger("test").info("hello_file", token="s3cret")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = path.read_text()
        assert "hello_file" in text
        assert "s3cret" not in text

    def test_level_applied(self) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING
