"""LLDB 'copilot' and 'agent' commands.

Usage inside lldb:
  (lldb) command script import lldbcopilot.plugins.lldb.copilot_cmd
  (lldb) copilot what is the call stack?
  (lldb) agent help
"""
from __future__ import annotations

from typing import Any, Optional

from lldbcopilot.backends.lldb_inprocess import LldbInProcessHost
from lldbcopilot.core.commands import CommandResult, CopilotCommands
from lldbcopilot.core.lifecycle import SessionManager
from lldbcopilot.utils.logs import configure_logging

# One session per LLDB process, shared by both commands
COMMANDS: Optional[CopilotCommands] = None


def _commands() -> CopilotCommands:
    global COMMANDS
    if COMMANDS is None:
        COMMANDS = CopilotCommands(SessionManager())
    return COMMANDS


def _render(outcome: CommandResult, result: Any) -> None:
    if outcome.ok:
        if outcome.message:
            result.AppendMessage(outcome.message)
    else:
        result.SetError(outcome.message)


def _copilot_cmd(debugger, command, exe_ctx, result, internal_dict):
    host = LldbInProcessHost(debugger)
    _render(_commands().copilot(command or "", host), result)


def _agent_cmd(debugger, command, exe_ctx, result, internal_dict):
    host = LldbInProcessHost(debugger)
    _render(_commands().agent(command or "", host), result)


def __lldb_init_module(debugger, internal_dict):  # pragma: no cover
    configure_logging()
    debugger.HandleCommand(
        "command script add -f lldbcopilot.plugins.lldb.copilot_cmd._copilot_cmd copilot"
    )
    debugger.HandleCommand(
        "command script add -f lldbcopilot.plugins.lldb.copilot_cmd._agent_cmd agent"
    )
    print("[copilot] 'copilot' and 'agent' commands are ready. Type 'agent help' to start.")
