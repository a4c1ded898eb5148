from __future__ import annotations

import io
import sys
from typing import Generator
from unittest.mock import patch

import pytest
from rich.console import Console

import unipkg.utils.console as console_module
from unipkg.utils.console import (
    UNIPKG_THEME,
    _should_use_color,
    confirm,
    get_raw_console,
    print_error,
    print_restored,
    print_success,
    print_warning,
    reconfigure_console,
)


@pytest.fixture(autouse=True)
def reset_console() -> Generator[None, None, None]:
    """Reset the console singleton before and after each test."""
    reconfigure_console()
    yield
    reconfigure_console()


@pytest.fixture
def output() -> Generator[io.StringIO, None, None]:
    """Route console output into a buffer."""
    buffer = io.StringIO()
    console = Console(file=buffer, theme=UNIPKG_THEME, no_color=True, width=200)
    with patch.object(console_module, "_console", console):
        yield buffer


@pytest.mark.unit
class TestColorDetection:
    """Tests for _should_use_color."""

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert _should_use_color() is False

    def test_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("CI", raising=False)

        with patch.object(sys.stdout, "isatty", return_value=True):
            assert _should_use_color() is True

    def test_not_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)

        with patch.object(sys.stdout, "isatty", return_value=False):
            assert _should_use_color() is False


@pytest.mark.unit
class TestConsoleSingleton:
    """Tests for get_raw_console and reconfigure_console."""

    def test_same_instance(self) -> None:
        assert get_raw_console() is get_raw_console()

    def test_reconfigure_creates_new_instance(self) -> None:
        first = get_raw_console()

        reconfigure_console()

        assert get_raw_console() is not first

    def test_no_color_applied(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        reconfigure_console()

        assert get_raw_console().no_color is True


@pytest.mark.unit
class TestPrinters:
    """Tests for the status line printers."""

    def test_print_restored(self, output: io.StringIO) -> None:
        print_restored("DepA", "1.0.0")

        assert output.getvalue() == "Restored: DepA: 1.0.0\n"

    def test_markup_is_not_interpreted(self, output: io.StringIO) -> None:
        print_restored("[bold]Dep[/bold]", "1.0.0-beta+[x]")

        assert output.getvalue() == "Restored: [bold]Dep[/bold]: 1.0.0-beta+[x]\n"

    def test_prefixes(self, output: io.StringIO) -> None:
        print_success("done")
        print_warning("careful")
        print_error("broken", prefix="!!")

        assert output.getvalue().splitlines() == [
            "[OK] done",
            "[WARNING] careful",
            "!! broken",
        ]


@pytest.mark.unit
class TestConfirm:
    """Tests for confirm."""

    @pytest.mark.parametrize(
        "answer, default, expected",
        [
            ("y", False, True),
            ("YES", False, True),
            ("n", True, False),
            ("no", True, False),
            ("", True, True),
            ("", False, False),
            ("maybe", False, False),
        ],
    )
    def test_answers(self, output: io.StringIO, answer: str, default: bool, expected: bool) -> None:
        with patch("builtins.input", return_value=answer):
            assert confirm("Remove?", default=default) is expected

    def test_prompt_suffix(self, output: io.StringIO) -> None:
        with patch("builtins.input", return_value="y"):
            confirm("Remove?", default=True)

        assert output.getvalue() == "Remove? [Y/n]: "

    @pytest.mark.parametrize("error", [KeyboardInterrupt, EOFError])
    def test_interrupt_returns_false(self, output: io.StringIO, error: type) -> None:
        with patch("builtins.input", side_effect=error):
            assert confirm("Remove?", default=True) is False
