"""Tests for relpub.output.console module."""

from __future__ import annotations

import pytest

from relpub.output.console import ConsoleProtocol, MockConsole, RichConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"


class TestMockConsole:
    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello", Style.DIM)
        assert console.outputs[0].message == "hello"
        assert console.outputs[0].style == Style.DIM

    def test_labelled_helpers(self) -> None:
        console = MockConsole()
        console.success("linux published")
        console.error("build failed")
        console.warning("retrying")
        console.info("skipping")

        assert console.messages == [
            "OK linux published",
            "error: build failed",
            "warning: retrying",
            "info: skipping",
        ]
        assert console.has_error()
        assert console.has_warning()

    def test_find_and_count(self) -> None:
        console = MockConsole()
        console.header("linux/amd64")
        console.print("git clone ...", Style.DIM)
        console.print("cargo build ...", Style.DIM)

        assert len(console.find("cargo")) == 1
        assert console.count(Style.DIM) == 2
        assert console.count(Style.HEADER) == 1

    def test_clear(self) -> None:
        console = MockConsole()
        console.print("git clone ...")
        console.clear()
        assert console.text == ""

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.print("ok")


class TestRichConsole:
    def test_does_not_interpret_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[bold]not markup[/bold]")
        console.error("path [x]")

        out = capsys.readouterr().out
        assert "[bold]not markup[/bold]" in out
        assert "error: path [x]" in out
