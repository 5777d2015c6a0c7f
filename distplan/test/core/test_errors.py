"""Tests for CLI exit codes."""

from distplan.core.errors import ErrorCode


def test_codes_are_stable() -> None:
    assert int(ErrorCode.OK) == 0
    assert int(ErrorCode.USER_ERROR) == 1
    assert int(ErrorCode.ENV_ERROR) == 2
    assert int(ErrorCode.PLAN_ERROR) == 3
    assert int(ErrorCode.IO_ERROR) == 5


def test_str() -> None:
    assert str(ErrorCode.USER_ERROR) == "user error"
    assert str(ErrorCode.IO_ERROR) == "io error"

