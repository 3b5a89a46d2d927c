from __future__ import annotations

from relctl.core.errors import ErrorCode


def test_exit_code_values_are_stable() -> None:
    assert [int(c) for c in ErrorCode] == [0, 1, 2, 3, 4, 5]


def test_str_is_human_readable() -> None:
    assert str(ErrorCode.CONFLICT_ERROR) == "conflict error"


def test_is_success() -> None:
    assert ErrorCode.OK.is_success
    assert not ErrorCode.IO_ERROR.is_success
