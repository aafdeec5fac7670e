"""Standalone lldb-copilot> REPL driving an `lldb` subprocess.

Lines starting with `copilot` or `agent` go to the copilot commands; anything
else is passed to LLDB unchanged. Ctrl+C during a copilot query aborts it.
"""
from __future__ import annotations

import argparse
import contextlib
import signal
import sys
from typing import Any, Iterator, List, Optional

from lldbcopilot.backends.lldb_subprocess import LldbSubprocessHost
from lldbcopilot.core.commands import CommandResult, CopilotCommands
from lldbcopilot.core.lifecycle import SessionManager
from lldbcopilot.utils.logs import configure_logging

PROMPT = "lldb-copilot> "
BANNER = "LLDB Copilot standalone REPL. Type 'agent help' for commands, 'exit' to quit."


def _echo(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _report(outcome: CommandResult, host: Any) -> None:
    if not outcome.ok:
        host.output_error(outcome.message)
    elif outcome.message:
        _echo(outcome.message)


@contextlib.contextmanager
def interrupts_to(host: Any, manager: SessionManager) -> Iterator[None]:
    """Route SIGINT to the host and the session abort flag while active.

    A Ctrl+C left over from an earlier query is discarded on entry.
    """

    def _on_sigint(signum, frame):
        host.request_interrupt()
        manager.request_abort()

    host.clear_interrupt()
    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def handle_line(line: str, commands: CopilotCommands, host: Any) -> bool:
    """Dispatch one input line. Returns False when the REPL should exit."""
    cmd = (line or "").strip()
    if not cmd:
        return True
    if cmd in {"exit", "quit"}:
        return False

    verb, _, rest = cmd.partition(" ")
    if verb == "copilot":
        with interrupts_to(host, commands.manager):
            _report(commands.copilot(rest, host), host)
    elif verb == "agent":
        _report(commands.agent(rest, host), host)
    else:
        output = host.run_raw(cmd)
        if output:
            _echo(output)
    return True


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lldb-copilot-repl", description=BANNER)
    parser.add_argument("program", nargs="?", help="Executable to load as the target")
    parser.add_argument("--core", "-c", help="Core file to load with the target")
    parser.add_argument("--lldb", default="lldb", help="Path to the lldb executable")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    ns = _build_parser().parse_args(argv)
    configure_logging()

    lldb_args: List[str] = []
    if ns.program:
        lldb_args.append(ns.program)
    if ns.core:
        lldb_args += ["--core", ns.core]

    host = LldbSubprocessHost(lldb_path=ns.lldb, use_color=not ns.no_color)
    try:
        host.start(lldb_args)
    except Exception as e:
        _echo(f"Failed to start lldb: {e}")
        return 1
    commands = CopilotCommands(SessionManager())

    _echo(BANNER)
    try:
        while True:
            try:
                line = input(PROMPT)
            except EOFError:
                break
            except KeyboardInterrupt:
                _echo("^C")
                continue
            if not handle_line(line, commands, host):
                break
    finally:
        commands.manager.reset_session()
        host.close()
    _echo("Exiting lldb-copilot>")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
