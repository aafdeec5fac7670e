from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from lldbcopilot.core.host import EMPTY_RESPONSE
from lldbcopilot.llm.base import ABORTED, Event, EventType


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path_factory, monkeypatch):
    """Keep settings, transcripts and logs out of the real home directory."""
    base = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(base))
    monkeypatch.setenv("LLDB_COPILOT_HOME", str(base / ".lldb_copilot"))
    monkeypatch.delenv("LLDB_COPILOT_LOG", raising=False)
    for name in (
        "ANTHROPIC_API_KEY",
        "COPILOT_API_KEY",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "CLAUDE_BASE_URL",
        "CLAUDE_MODEL",
        "COPILOT_BASE_URL",
        "COPILOT_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(Path, "home", lambda: base)
    return base


class FakeAgent:
    """Agent runtime double that records every call made by the session manager."""

    def __init__(self, kind, factory: "FakeAgentFactory") -> None:
        self.kind = kind
        self.factory = factory
        self.provider_name = kind.value
        self.tools: List[Any] = []
        self.byok = None
        self.timeout_ms: Optional[int] = None
        self.bound_session_ids: List[str] = []
        self.clear_calls = 0
        self.shutdown_calls = 0
        self.queries: List[str] = []
        self.session_id = ""

    def register_tool(self, tool) -> None:
        self.tools.append(tool)

    def set_byok(self, config) -> None:
        self.byok = config

    def set_response_timeout(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms

    def set_session_id(self, session_id: str) -> None:
        self.bound_session_ids.append(session_id)
        self.session_id = session_id

    def clear_session(self) -> None:
        self.clear_calls += 1
        self.session_id = ""

    def initialize(self) -> bool:
        return self.factory.init_ok

    def get_last_error(self) -> str:
        return self.factory.last_error

    def query_hosted(self, prompt: str, host) -> str:
        self.queries.append(prompt)
        if self.factory.query_error is not None:
            raise self.factory.query_error
        if host.should_abort() or self.factory.abort_during_query:
            return ABORTED
        if self.factory.run_tool is not None:
            self.tools[0].invoke({"command": self.factory.run_tool})
        if not self.session_id and self.factory.new_session_id and self.byok is None:
            self.session_id = self.factory.new_session_id
        host.on_event(Event(EventType.CONTENT_COMPLETE, content=self.factory.response))
        return self.factory.response

    def get_session_id(self) -> str:
        return "" if self.byok is not None else self.session_id

    def shutdown(self) -> None:
        self.shutdown_calls += 1


class FakeAgentFactory:
    def __init__(self) -> None:
        self.created: List[FakeAgent] = []
        self.fail_create = False
        self.init_ok = True
        self.last_error = ""
        self.response = "answer"
        self.new_session_id = ""
        self.query_error: Optional[BaseException] = None
        self.abort_during_query = False
        self.run_tool: Optional[str] = None

    def __call__(self, kind):
        if self.fail_create:
            return None
        agent = FakeAgent(kind, self)
        self.created.append(agent)
        return agent

    @property
    def last(self) -> FakeAgent:
        return self.created[-1]


class FakeHost:
    """Debugger host double with a settable target and recorded output."""

    def __init__(self, target: str = "app") -> None:
        self.target = target
        self.commands: List[str] = []
        self.outputs: List[tuple] = []
        self.interrupted = False
        self.replies: Dict[str, str] = {}

    def execute_command(self, command: str) -> str:
        self.commands.append(command)
        return self.replies.get(command, EMPTY_RESPONSE)

    def get_target_name(self) -> str:
        return self.target

    def is_interrupted(self) -> bool:
        return self.interrupted

    def output(self, text: str) -> None:
        self.outputs.append(("output", text))

    def output_error(self, text: str) -> None:
        self.outputs.append(("error", text))

    def output_warning(self, text: str) -> None:
        self.outputs.append(("warning", text))

    def output_thinking(self, text: str) -> None:
        self.outputs.append(("thinking", text))

    def output_response(self, text: str) -> None:
        self.outputs.append(("response", text))

    def channel(self, name: str) -> List[str]:
        return [text for kind, text in self.outputs if kind == name]


@pytest.fixture
def agent_factory() -> FakeAgentFactory:
    return FakeAgentFactory()


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def manager(agent_factory):
    from lldbcopilot.core.lifecycle import SessionManager
    from lldbcopilot.core.session_store import SessionStore

    return SessionManager(store=SessionStore.loaded(), agent_factory=agent_factory)
