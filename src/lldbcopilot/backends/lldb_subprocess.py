"""LLDB subprocess host using pexpect.

Spawns an interactive `lldb` process and drives it via a pseudo-tty.
Used by the standalone REPL outside of LLDB.
"""
from __future__ import annotations

import logging
import re
import threading
from typing import Any, List, Optional

import pexpect

from lldbcopilot.utils.io import strip_ansi

from .base import ConsoleOutput

logger = logging.getLogger(__name__)

EMPTY_OUTPUT = "(No output)"

_DWARF_INDEXING_RE = re.compile(r"^\s*\[\d+/\d+\]\s+Manually indexing DWARF:.*$")
# "* target #0: /path/to/prog (arch=x86_64-...)"
_SELECTED_TARGET_RE = re.compile(r"^\*\s*target\s+#\d+:\s*(\S+)", re.MULTILINE)
_NOISY_PREFIXES = (
    "Locating external symbol file:",
    "Parsing symbol table:",
    "Reading binary from memory:",
)


def filter_noise(text: str) -> str:
    """Drop blank lines and symbol-loading progress lines."""
    kept: List[str] = []
    for ln in (text or "").splitlines():
        stripped = strip_ansi(ln).strip()
        if not stripped:
            continue
        if _DWARF_INDEXING_RE.match(stripped):
            continue
        if any(stripped.startswith(pref) for pref in _NOISY_PREFIXES):
            continue
        kept.append(ln)
    return "\n".join(kept)


def parse_target_name(target_list: str) -> str:
    """File name of the selected target in `target list` output, or ''."""
    m = _SELECTED_TARGET_RE.search(strip_ansi(target_list or ""))
    if not m:
        return ""
    return re.split(r"[\\/]", m.group(1))[-1]


class LldbSubprocessHost(ConsoleOutput):
    name = "lldb"

    def __init__(
        self,
        lldb_path: str = "lldb",
        timeout: float = 30.0,
        prompt: str = "(lldb-copilot)",
        stream: Optional[Any] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(stream=stream, use_color=use_color)
        self.lldb_path = lldb_path
        self.timeout = timeout
        self.prompt = prompt
        self.child: Optional[Any] = None
        self._default_prompt_re = re.compile(r"\(lldb\)\s", re.MULTILINE)
        self._prompt_re: Optional[re.Pattern[str]] = None
        self._interrupt = threading.Event()

    def start(self, args: Optional[List[str]] = None) -> None:
        """Launch lldb and switch it to a prompt that is easy to match."""
        self.child = pexpect.spawn(self.lldb_path, list(args or []), encoding="utf-8", timeout=self.timeout)
        try:
            self.child.expect(self._default_prompt_re)
        except pexpect.TIMEOUT:
            logger.warning("No initial lldb prompt within %ss", self.timeout)
        ansi = r"(?:\x1b\[[0-9;]*m)*"
        self.child.sendline(f"settings set prompt {self.prompt} ")
        self._prompt_re = re.compile(ansi + re.escape(self.prompt) + ansi + r"\s*")
        self._expect_prompt()
        self._send_and_capture("settings set auto-confirm true")

    def _expect_prompt(self) -> str:
        if not self.child:
            raise RuntimeError("LLDB subprocess is not running")
        self.child.expect(self._prompt_re or self._default_prompt_re)
        return self.child.before or ""

    def _send_and_capture(self, cmd: str) -> str:
        if not self.child:
            raise RuntimeError("LLDB subprocess is not running")
        self.child.sendline(cmd)
        text = filter_noise(self._expect_prompt().replace("\r\n", "\n"))
        lines = text.splitlines()
        # The pty echoes the command line back
        if lines and strip_ansi(lines[0]).strip() == cmd.strip():
            lines = lines[1:]
        return "\n".join(lines)

    def _run(self, command: str) -> str:
        try:
            return self._send_and_capture(command)
        except pexpect.TIMEOUT:
            return f"[lldb timeout] {command}: Timeout exceeded."
        except pexpect.EOF:
            logger.warning("lldb exited while running %r", command)
            self.child = None
            return f"[lldb eof] {command}: LLDB exited"

    def execute_command(self, command: str) -> str:
        self.output_command(command)
        output = self._run(command)
        if not output:
            return EMPTY_OUTPUT
        self.output_result(output)
        return output

    def run_raw(self, command: str) -> str:
        """Run a user-typed command without the copilot echo."""
        if not self.child:
            return "LLDB is not running"
        return self._run(command)

    def get_target_name(self) -> str:
        if not self.child:
            return ""
        try:
            return parse_target_name(self._send_and_capture("target list"))
        except (pexpect.TIMEOUT, pexpect.EOF):
            return ""

    def request_interrupt(self) -> None:
        """Called from the SIGINT handler."""
        self._interrupt.set()
        if self.child is not None and self.child.isalive():
            self.child.sendintr()

    def clear_interrupt(self) -> None:
        self._interrupt.clear()

    def is_interrupted(self) -> bool:
        if self._interrupt.is_set():
            self._interrupt.clear()
            return True
        return False

    def close(self) -> None:
        child, self.child = self.child, None
        if child is None or not child.isalive():
            return
        try:
            child.sendline("quit")
            child.expect(pexpect.EOF, timeout=1)
        except (pexpect.TIMEOUT, pexpect.EOF):
            pass
        if child.isalive():
            child.close(force=True)
