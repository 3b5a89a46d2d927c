"""Tests for relctl.core.result module."""

import pytest

from relctl.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(0) == 42

    def test_map(self) -> None:
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_map_err_is_noop(self) -> None:
        assert Ok(1).map_err(lambda e: f"wrapped: {e}") == Ok(1)


class TestErr:
    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        result: Result[int, str] = Err("boom")
        assert result.unwrap_or(7) == 7

    def test_map_err(self) -> None:
        assert Err("boom").map_err(lambda e: f"wrapped: {e}") == Err("wrapped: boom")

    def test_map_is_noop(self) -> None:
        assert Err("boom").map(lambda x: x * 2) == Err("boom")


def test_type_guards() -> None:
    ok: Result[int, str] = Ok(1)
    err: Result[int, str] = Err("x")
    assert is_ok(ok) and not is_err(ok)
    assert is_err(err) and not is_ok(err)


def test_pattern_matching() -> None:
    match Ok("v1.2.3"):
        case Ok(value):
            assert value == "v1.2.3"
        case Err(_):
            pytest.fail("expected Ok")
