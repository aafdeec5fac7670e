"""Debugger host interface and shared console output."""
from __future__ import annotations

import sys
from typing import Any, Optional, Protocol

from lldbcopilot.utils.io import styled


class DebuggerHost(Protocol):
    def execute_command(self, command: str) -> str:  # pragma: no cover
        ...

    def get_target_name(self) -> str:  # pragma: no cover
        ...

    def is_interrupted(self) -> bool:  # pragma: no cover
        ...

    def output(self, text: str) -> None:  # pragma: no cover
        ...

    def output_error(self, text: str) -> None:  # pragma: no cover
        ...

    def output_warning(self, text: str) -> None:  # pragma: no cover
        ...

    def output_thinking(self, text: str) -> None:  # pragma: no cover
        ...

    def output_response(self, text: str) -> None:  # pragma: no cover
        ...


class ConsoleOutput:
    """Colored output sinks writing to a text stream (stdout by default)."""

    def __init__(self, stream: Optional[Any] = None, use_color: bool = True) -> None:
        self.stream = stream
        self.use_color = use_color

    def _write(self, text: str) -> None:
        stream = self.stream or sys.stdout
        stream.write(text)
        stream.flush()

    def _line(self, text: str, channel: str) -> None:
        self._write(styled(text, channel, self.use_color) + "\n")

    def output(self, text: str) -> None:
        self._write(text)

    def output_error(self, text: str) -> None:
        self._line(f"[ERROR] {text}", "error")

    def output_warning(self, text: str) -> None:
        self._line(f"[WARN] {text}", "warning")

    def output_thinking(self, text: str) -> None:
        self._line(text, "thinking")

    def output_response(self, text: str) -> None:
        self._line(text, "response")

    def output_command(self, command: str) -> None:
        self._line(f"$ {command}", "command")

    def output_result(self, text: str) -> None:
        self._line(text, "result")
