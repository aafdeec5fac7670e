"""Agent session state."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from lldbcopilot.llm.providers import ProviderType


class AbortFlag:
    """Cancellation flag shared between an interrupt source and the query path.

    Setting and reading are safe from any thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def set(self) -> None:
        self._event.set()

    def clear(self) -> None:
        self._event.clear()

    def is_set(self) -> bool:
        return self._event.is_set()

    def __bool__(self) -> bool:
        return self._event.is_set()


@dataclass
class AgentSession:
    """The one agent conversation owned by a SessionManager.

    ``agent`` is set iff ``initialized``. ``primed`` goes False whenever
    ``system_prompt`` changes and True once a query has carried it.
    ``aborted`` is the only field touched outside the command path.
    """

    agent: Optional[Any] = None
    provider: Optional[ProviderType] = None
    provider_name: str = ""
    target: str = ""
    session_id: str = ""
    system_prompt: str = ""
    primed: bool = False
    initialized: bool = False
    host_ready: bool = False
    aborted: AbortFlag = field(default_factory=AbortFlag)
    host: Optional[Any] = None
    bridge: Optional[Any] = None
    tool: Optional[Any] = None
