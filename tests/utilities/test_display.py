# tests/utilities/test_display.py
import pytest

from forkjob.utilities.display import (
    button,
    format_duration,
    separator,
    status_badge,
    strip_ansi,
    style,
    truncate,
    value_badge,
)


def test_style_and_strip_ansi():
    styled = style("hi", "bold", "red")
    assert styled == "\033[1;31mhi\033[0m"
    assert strip_ansi(styled) == "hi"


def test_button_uppercases_strings_only():
    assert strip_ansi(button("green", "ok")) == " OK "
    assert strip_ansi(button("green", "ok", uppercase=False)) == " ok "
    assert strip_ansi(button("green", 12)) == " 12 "


def test_separator():
    assert separator(10) == "-" * 10
    titled = strip_ansi(separator(30, title="Report"))
    assert " REPORT " in titled
    assert titled.startswith("-") and titled.endswith("-")


@pytest.mark.parametrize("seconds, expected", [
    (0, "0.00s"),
    (12.345, "12.35s"),
    (61, "1m 1s"),
    (3725, "1h 2m 5s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("abcdefghij", 5) == "abcd…"


def test_badges():
    assert strip_ansi(status_badge("success")) == " success "
    assert "32" in status_badge("success")
    assert "90" in status_badge("pending")

    long_text = "x" * 30
    assert strip_ansi(value_badge(long_text)) == long_text
    assert strip_ansi(value_badge(3)) == " 3 "
