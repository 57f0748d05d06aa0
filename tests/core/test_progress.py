"""Tests for core/progress.py module.

Covers:
- status() styles and indentation
- spinner() in TTY and non-TTY mode
- pluralize()
- suppress_console_logs() and the console log filter
"""

from __future__ import annotations

import logging
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest

from idriscov.core.logging import ConsoleSuppressingFilter
from idriscov.core.progress import (
    get_console,
    is_console_suppressed,
    pluralize,
    spinner,
    status,
    suppress_console_logs,
)


class TestStatus:
    """Tests for status function."""

    def test_prints_message(self) -> None:
        """Prints a message to console."""
        with patch("idriscov.core.progress._console") as mock_console:
            status("Parsed 3 functions")
            mock_console.print.assert_called_once()

    @pytest.mark.parametrize(("style", "mark"), [("success", "✓"), ("error", "✗")])
    def test_styles(self, style: str, mark: str) -> None:
        """Applies the style prefix."""
        with patch("idriscov.core.progress._console") as mock_console:
            status("Done", style=style)
            assert mark in mock_console.print.call_args[0][0]

    def test_with_indent(self) -> None:
        """Applies indentation."""
        with patch("idriscov.core.progress._console") as mock_console:
            status("Indented", indent=4)
            assert "    Indented" in mock_console.print.call_args[0][0]


class TestPluralize:
    """Tests for pluralize function."""

    def test_singular_count_one(self) -> None:
        assert pluralize(1, "run") == "1 run"

    def test_plural_count_zero(self) -> None:
        assert pluralize(0, "run") == "0 runs"

    def test_custom_plural(self) -> None:
        assert pluralize(3, "branch", "branches") == "3 branches"


class TestSpinner:
    """Tests for spinner context manager."""

    def test_non_tty_prints_message(self) -> None:
        """Non-TTY mode prints message."""
        with (
            patch("idriscov.core.progress._is_tty", return_value=False),
            patch("idriscov.core.progress._console") as mock_console,
        ):
            with spinner("Building"):
                pass
            mock_console.print.assert_called_once()
            assert "Building" in mock_console.print.call_args[0][0]

    def test_tty_mode_uses_console_status(self) -> None:
        """TTY mode uses console.status and suppresses console logs meanwhile."""
        mock_status = MagicMock()
        mock_status.__enter__ = MagicMock(return_value=None)
        mock_status.__exit__ = MagicMock(return_value=None)

        with (
            patch("idriscov.core.progress._is_tty", return_value=True),
            patch("idriscov.core.progress._console") as mock_console,
        ):
            mock_console.status.return_value = mock_status
            with spinner("Processing"):
                assert is_console_suppressed()
            mock_console.status.assert_called_once()
        assert not is_console_suppressed()


class TestSuppressConsoleLogs:
    """Tests for suppress_console_logs context manager."""

    def test_sets_suppression_flag(self) -> None:
        """Flag is set during context."""
        assert not is_console_suppressed()
        with suppress_console_logs():
            assert is_console_suppressed()
        assert not is_console_suppressed()

    def test_clears_flag_on_exception(self) -> None:
        """Flag is cleared even on exception."""
        with pytest.raises(ValueError), suppress_console_logs():
            raise ValueError("test")
        assert not is_console_suppressed()


class TestConsoleSuppressingFilter:
    """Tests for ConsoleSuppressingFilter class."""

    def test_filter_with_handler(self) -> None:
        """Records are dropped only while suppressed."""
        handler = logging.StreamHandler(StringIO())
        handler.addFilter(ConsoleSuppressingFilter())

        logger = logging.getLogger("test_filter")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            logger.info("visible")
            with suppress_console_logs():
                logger.info("hidden")
        finally:
            logger.removeHandler(handler)

        output = handler.stream.getvalue()
        assert "visible" in output
        assert "hidden" not in output


class TestGetConsole:
    def test_returns_same_instance(self) -> None:
        assert get_console() is get_console()
