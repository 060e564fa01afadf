"""Unit tests — typed accessors over JSON values."""

from __future__ import annotations

import pytest

from garden_bridge.protocol.values import as_bool, as_dict, as_float, as_int, as_list, as_str, dig


@pytest.mark.unit
class TestAccessors:
    def test_as_str(self) -> None:
        assert as_str("abc") == "abc"
        assert as_str(1) is None

    def test_as_int_rejects_bool_and_fractional(self) -> None:
        assert as_int(1000) == 1000
        assert as_int(1000.0) == 1000
        assert as_int(True) is None
        assert as_int(1.5) is None
        assert as_int("1000") is None

    def test_as_float(self) -> None:
        assert as_float(2) == 2.0
        assert as_float(False) is None

    def test_containers(self) -> None:
        assert as_list([1]) == [1]
        assert as_list({}) is None
        assert as_dict({"a": 1}) == {"a": 1}
        assert as_dict([]) is None
        assert as_bool(True) is True
        assert as_bool(1) is None


@pytest.mark.unit
class TestDig:
    def test_nested_lookup(self) -> None:
        frame = {"payload": {"auth": {"deviceToken": "tok"}}}
        assert dig(frame, "payload", "auth", "deviceToken") == "tok"

    def test_missing_level_returns_none(self) -> None:
        assert dig({"payload": None}, "payload", "auth") is None
        assert dig({"payload": ["x"]}, "payload", "auth") is None
        assert dig("not-a-dict", "payload") is None
