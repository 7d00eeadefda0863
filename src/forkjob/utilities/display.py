# utilities/display.py
"""Console display helpers: ANSI styling and text layout for job reports."""

from __future__ import annotations

import re
from typing import Any

__all__ = [
    "style",
    "button",
    "strip_ansi",
    "separator",
    "truncate",
    "format_duration",
    "duration_badge",
    "status_badge",
    "value_badge",
]

_CODES = {
    "bold": "1",
    "underline": "4",
    "inverse": "7",
    "red": "31",
    "green": "32",
    "yellow": "33",
    "blue": "34",
    "magenta": "35",
    "cyan": "36",
    "gray": "90",
}

_ANSI_RX = re.compile(r"\033\[[0-9;]*m")

_GRADIENT = ("green", "yellow", "red")


def style(text: Any, *styles: str) -> str:
    """Wrap ``text`` in ANSI escapes, e.g. ``style("x", "bold", "red")``."""
    codes = ";".join(_CODES[s] for s in styles)
    return f"\033[{codes}m{text}\033[0m"


def button(color: str, value: Any, uppercase: bool = True) -> str:
    """Inverse bold label, as used for titles and badges."""
    text = str(value).upper() if uppercase and isinstance(value, str) else str(value)
    return style(f" {text} ", "inverse", "bold", color)


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences."""
    return _ANSI_RX.sub("", text)


def separator(length: int = 60, title: str | None = None) -> str:
    """Dashed separator line, optionally with a centered title badge.

    Examples:
        >>> separator(10)
        '----------'
    """
    line = "-" * length
    if not title:
        return line
    label_len = len(title) + 4
    left = length // 2 - label_len // 2
    return f"{line[:left]} {button('magenta', title)} {line[left + label_len:]}"


def truncate(text: str, width: int = 96) -> str:
    """Return ``text`` truncated with an ellipsis if it exceeds ``width``."""
    return text if len(text) <= width else (text[: max(0, width - 1)] + "…")


def format_duration(seconds: float) -> str:
    """Human-readable duration.

    Examples:
        >>> format_duration(0.25)
        '0.25s'
        >>> format_duration(3725)
        '1h 2m 5s'
    """
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def duration_badge(seconds: float) -> str:
    if seconds < 1:
        color = _GRADIENT[0]
    elif seconds < 5:
        color = _GRADIENT[1]
    else:
        color = _GRADIENT[2]
    return button(color, format_duration(seconds), uppercase=False)


def status_badge(status: str) -> str:
    colors = {"success": "green", "warning": "yellow", "crash": "red", "exit": "red"}
    return button(colors.get(status, "gray"), status, uppercase=False)


def value_badge(value: Any, color: str = "yellow") -> str:
    """Badge for short values, bold text for long strings."""
    if isinstance(value, str) and len(value) > 20:
        return style(value, "bold", color)
    return button(color, value)
