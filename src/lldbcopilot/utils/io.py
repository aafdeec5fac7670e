"""Terminal output helpers.

ANSI styling for the console sinks and truncation for text handed to the model.
"""
from __future__ import annotations

import re


ANSI_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")


def strip_ansi(s: str) -> str:
    return ANSI_RE.sub("", s)


def head_tail_truncate(s: str, max_chars: int = 20000) -> str:
    """Keep the start and the end of ``s`` when it exceeds ``max_chars``."""
    if len(s) <= max_chars:
        return s
    head = s[: max_chars // 2]
    tail = s[-max_chars // 2 :]
    return head + "\n... [truncated] ...\n" + tail


_CODES = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
}

# Output channel -> color
STYLES = {
    "command": "cyan",
    "result": "dim",
    "thinking": "blue",
    "response": "green",
    "error": "red",
    "warning": "yellow",
}


def styled(text: str, channel: str, enable: bool = True) -> str:
    """Wrap ``text`` in the color assigned to an output channel.

    Unknown channels and ``enable=False`` return the text unchanged.
    """
    color = STYLES.get(channel)
    if not enable or color is None:
        return text
    return f"{_CODES[color]}{text}{_CODES['reset']}"
