"""Glue between the agent runtime and the debugger host.

``DebuggerTool`` is the only way the agent touches the debug target.
``HostBridge`` gives the runtime its abort predicate and event sink. Both keep
just the host handle and the abort flag, and both can be rebound to a new
host object between commands.
"""
from __future__ import annotations

from typing import Any, Optional

from lldbcopilot.llm.base import ABORTED, Event, EventType, Tool

from .state import AbortFlag

TOOL_NAME = "dbg_exec"
TOOL_DESCRIPTION = (
    "Execute an LLDB debugger command and return its output. "
    "Use this to inspect the target process, memory, threads, stack, registers, etc."
)
NO_HOST_OUTPUT = "Error: No debugger client available"
EMPTY_RESPONSE = "(No output)"


class DebuggerTool:
    def __init__(self, abort: AbortFlag, host: Optional[Any] = None) -> None:
        self.abort = abort
        self.host = host

    def __call__(self, command: str) -> str:
        if self.abort.is_set():
            return ABORTED
        if self.host is None:
            return NO_HOST_OUTPUT
        return self.host.execute_command(command)

    def as_tool(self) -> Tool:
        return Tool(name=TOOL_NAME, description=TOOL_DESCRIPTION, handler=self, params=["command"])


class HostBridge:
    def __init__(self, abort: AbortFlag, host: Optional[Any] = None) -> None:
        self.abort = abort
        self.host = host

    def should_abort(self) -> bool:
        host = self.host
        if host is not None and host.is_interrupted():
            self.abort.set()
        return self.abort.is_set()

    def on_event(self, event: Event) -> None:
        host = self.host
        if host is None:
            return
        if event.type == EventType.CONTENT_DELTA:
            host.output_thinking(event.content)
        elif event.type == EventType.CONTENT_COMPLETE:
            host.output("\n")
            host.output_response(event.content or EMPTY_RESPONSE)
        elif event.type == EventType.ERROR:
            host.output_error(event.error_message or event.content or "Error")
