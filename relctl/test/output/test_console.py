"""Tests for relctl.output.console module."""

from __future__ import annotations

import pytest

from relctl.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


def test_style_str() -> None:
    assert str(Style.DIM) == "dim"
    assert str(Style.HEADER) == "header"


class TestMockConsole:
    def test_captures_styles(self) -> None:
        console = MockConsole()
        console.print("git update-ref refs/tags/v1.0.0 abc", Style.DIM)
        console.success("released v1.0.0")
        console.warning("dry run")
        console.error("boom")

        assert console.messages == [
            "git update-ref refs/tags/v1.0.0 abc",
            "OK released v1.0.0",
            "warning: dry run",
            "error: boom",
        ]
        assert console.has_error()
        assert console.count(Style.DIM) == 1
        assert len(console.find("v1.0.0")) == 2

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.newline()
        assert isinstance(console, MockConsole)
        assert console.text == ""


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("branch [v1.2] ok", Style.DIM)
        console.info("[bold]literal[/bold]")

        out = capsys.readouterr().out
        assert "branch [v1.2] ok" in out
        assert "[bold]literal[/bold]" in out

    def test_stderr_mode(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(stderr=True)
        console.error("not on stdout")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "not on stdout" in captured.err
