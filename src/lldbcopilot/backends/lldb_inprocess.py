"""LLDB in-process host.

Runs commands through the SB API of the debugger the plugin was loaded into.
"""
from __future__ import annotations

from typing import Any, Optional

from .base import ConsoleOutput

try:  # pragma: no cover - only importable inside LLDB
    import lldb  # type: ignore
except Exception:  # pragma: no cover
    lldb = None  # type: ignore

EMPTY_OUTPUT = "(No output)"


class LldbInProcessHost(ConsoleOutput):
    name = "lldb"

    def __init__(
        self,
        debugger: Any,
        stream: Optional[Any] = None,
        use_color: bool = True,
        return_object_factory: Optional[Any] = None,
    ) -> None:
        super().__init__(stream=stream, use_color=use_color)
        self.debugger = debugger
        if return_object_factory is None and lldb is not None:
            return_object_factory = lldb.SBCommandReturnObject
        self._new_result = return_object_factory

    def execute_command(self, command: str) -> str:
        """Run one LLDB command, echo it and its output, and return the text."""
        if self._new_result is None:
            raise RuntimeError("LLDB Python module is not available")
        self.output_command(command)

        res = self._new_result()
        self.debugger.GetCommandInterpreter().HandleCommand(command, res)
        output = res.GetOutput() or ""
        err = res.GetError() or ""
        if err:
            output = f"{output}\n{err}" if output else err

        if not output:
            return EMPTY_OUTPUT
        self.output_result(output.rstrip("\n"))
        return output

    def get_target_name(self) -> str:
        target = self.debugger.GetSelectedTarget()
        if not target or not target.IsValid():
            return ""
        exe = target.GetExecutable()
        if not exe or not exe.IsValid():
            return ""
        return exe.GetFilename() or ""

    def is_interrupted(self) -> bool:
        # InterruptRequested is only present in newer LLDB builds
        check = getattr(self.debugger, "InterruptRequested", None)
        if check is None:
            return False
        return bool(check())
