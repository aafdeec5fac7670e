from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest

from lldbcopilot.core.host import DebuggerTool, HostBridge
from lldbcopilot.core.state import AbortFlag
from lldbcopilot.llm.agent import MAX_TOOL_ROUNDS, ToolAgent, build_client
from lldbcopilot.llm.anthropic import MessagesClient, to_anthropic_messages
from lldbcopilot.llm.base import ABORTED, EMPTY_REPLY, BYOKConfig, Event, EventType, Reply, Tool, ToolCall
from lldbcopilot.llm.conversations import ConversationStore
from lldbcopilot.llm.openai_compat import ChatCompletionsClient, to_openai_messages
from lldbcopilot.llm.providers import ProviderType

from conftest import FakeHost


class ScriptedClient:
    """Chat client that returns queued replies and records each request."""

    def __init__(self, replies: List[Reply]) -> None:
        self.replies = list(replies)
        self.requests: List[List[Dict[str, Any]]] = []
        self.timeouts: List[Any] = []
        self.closed = False

    def complete(self, messages, tools, timeout=None) -> Reply:
        self.requests.append(json.loads(json.dumps(messages)))
        self.timeouts.append(timeout)
        if not self.replies:
            raise RuntimeError("no scripted reply")
        return self.replies.pop(0)

    def close(self) -> None:
        self.closed = True


class RecordingHost:
    def __init__(self) -> None:
        self.events: List[Event] = []
        self.abort = False

    def should_abort(self) -> bool:
        return self.abort

    def on_event(self, event: Event) -> None:
        self.events.append(event)


def _agent(client: ScriptedClient, tmp_path, kind=ProviderType.COPILOT) -> ToolAgent:
    agent = ToolAgent(
        kind,
        client_factory=lambda k, byok: client,
        conversations=ConversationStore(tmp_path / "conversations"),
    )
    assert agent.initialize()
    return agent


def test_plain_answer(tmp_path):
    client = ScriptedClient([Reply(text="It segfaulted in main.")])
    agent = _agent(client, tmp_path)
    agent.set_response_timeout(45000)
    host = RecordingHost()
    assert agent.query_hosted("why?", host) == "It segfaulted in main."
    assert client.timeouts == [45.0]
    assert [e.type for e in host.events] == [EventType.CONTENT_COMPLETE]
    assert agent.messages == [
        {"role": "user", "content": "why?"},
        {"role": "assistant", "content": "It segfaulted in main."},
    ]


def test_tool_loop_runs_debugger_commands(tmp_path):
    client = ScriptedClient(
        [
            Reply(text="Checking the stack.", tool_calls=[ToolCall("c1", "dbg_exec", '{"command": "bt"}')]),
            Reply(text="Null pointer in foo().", tool_calls=[]),
        ]
    )
    agent = _agent(client, tmp_path)
    debugger = FakeHost()
    debugger.replies["bt"] = "* frame #0: foo"
    flag = AbortFlag()
    agent.register_tool(DebuggerTool(flag, debugger).as_tool())
    bridge = HostBridge(flag, debugger)

    assert agent.query_hosted("what crashed?", bridge) == "Null pointer in foo()."
    assert debugger.commands == ["bt"]
    assert debugger.channel("thinking") == ["Checking the stack."]
    assert debugger.channel("response") == ["Null pointer in foo()."]
    second = client.requests[1]
    assert second[-2]["tool_calls"] == [{"id": "c1", "name": "dbg_exec", "arguments": '{"command": "bt"}'}]
    assert second[-1] == {"role": "tool", "tool_call_id": "c1", "content": "* frame #0: foo"}


def test_tool_output_is_truncated(tmp_path):
    client = ScriptedClient(
        [
            Reply(tool_calls=[ToolCall("c1", "dump", {})]),
            Reply(text="done"),
        ]
    )
    agent = _agent(client, tmp_path)
    agent.register_tool(Tool("dump", "big output", lambda: "x" * 50000))
    agent.query_hosted("dump it", RecordingHost())
    sent = client.requests[1][-1]["content"]
    assert len(sent) < 50000
    assert "[truncated]" in sent


def test_tool_failure_is_reported_and_fed_back(tmp_path):
    def broken(command: str) -> str:
        raise ValueError("bad frame")

    client = ScriptedClient(
        [
            Reply(tool_calls=[ToolCall("c1", "dbg_exec", {"command": "frame select 99"})]),
            Reply(text="That frame does not exist."),
        ]
    )
    agent = _agent(client, tmp_path)
    agent.register_tool(Tool("dbg_exec", "run", broken, ["command"]))
    host = RecordingHost()
    agent.query_hosted("go", host)
    errors = [e for e in host.events if e.type == EventType.ERROR]
    assert errors and "bad frame" in errors[0].error_message
    assert client.requests[1][-1]["content"].startswith("Error: Tool dbg_exec failed")


def test_unknown_tool_is_answered(tmp_path):
    client = ScriptedClient([Reply(tool_calls=[ToolCall("c1", "shell", {})]), Reply(text="ok")])
    agent = _agent(client, tmp_path)
    agent.query_hosted("go", RecordingHost())
    assert client.requests[1][-1]["content"] == "Error: unknown tool 'shell'"


def test_abort_before_first_round(tmp_path):
    client = ScriptedClient([Reply(text="never")])
    agent = _agent(client, tmp_path)
    host = RecordingHost()
    host.abort = True
    assert agent.query_hosted("q", host) == ABORTED
    assert client.requests == []


def test_abort_between_tool_calls_answers_pending_calls(tmp_path):
    client = ScriptedClient(
        [
            Reply(
                tool_calls=[
                    ToolCall("c1", "dbg_exec", {"command": "bt"}),
                    ToolCall("c2", "dbg_exec", {"command": "register read"}),
                ]
            )
        ]
    )
    agent = _agent(client, tmp_path)

    class InterruptingHost(FakeHost):
        def execute_command(self, command):
            out = super().execute_command(command)
            self.interrupted = True
            return out

    debugger = InterruptingHost()
    flag = AbortFlag()
    agent.register_tool(DebuggerTool(flag, debugger).as_tool())

    assert agent.query_hosted("q", HostBridge(flag, debugger)) == ABORTED
    assert debugger.commands == ["bt"]
    tool_results = [m for m in agent.messages if m["role"] == "tool"]
    assert [(m["tool_call_id"], m["content"]) for m in tool_results] == [("c1", "(No output)"), ("c2", ABORTED)]


def test_runaway_tool_loop_is_bounded(tmp_path):
    replies = [Reply(tool_calls=[ToolCall(f"c{i}", "noop", {})]) for i in range(MAX_TOOL_ROUNDS)]
    client = ScriptedClient(replies)
    agent = _agent(client, tmp_path)
    agent.register_tool(Tool("noop", "nothing", lambda: "ok"))
    with pytest.raises(RuntimeError, match="tool rounds"):
        agent.query_hosted("loop", RecordingHost())
    assert agent.messages == []


def test_transport_error_restores_transcript(tmp_path):
    client = ScriptedClient([Reply(text="first")])
    agent = _agent(client, tmp_path)
    agent.query_hosted("one", RecordingHost())
    with pytest.raises(RuntimeError, match="no scripted reply"):
        agent.query_hosted("two", RecordingHost())
    assert [m["content"] for m in agent.messages] == ["one", "first"]


def test_session_is_saved_and_resumed(tmp_path):
    client = ScriptedClient([Reply(text="answer")])
    agent = _agent(client, tmp_path)
    assert agent.get_session_id() == ""
    agent.query_hosted("q", RecordingHost())
    session_id = agent.get_session_id()
    assert session_id.startswith("session_")

    resumed = _agent(ScriptedClient([]), tmp_path)
    resumed.set_session_id(session_id)
    assert [m["content"] for m in resumed.messages] == ["q", "answer"]

    resumed.clear_session()
    assert resumed.messages == []
    assert resumed.get_session_id() == ""


def test_byok_sessions_are_not_persisted(tmp_path):
    client = ScriptedClient([Reply(text="answer")])
    agent = _agent(client, tmp_path)
    agent.set_byok(BYOKConfig(api_key="sk-test"))
    agent.query_hosted("q", RecordingHost())
    assert agent.get_session_id() == ""
    assert not (tmp_path / "conversations").exists()


def test_initialize_reports_factory_error(tmp_path):
    def factory(kind, byok):
        raise ValueError("API key not configured")

    agent = ToolAgent(ProviderType.CLAUDE, client_factory=factory)
    assert agent.initialize() is False
    assert agent.get_last_error() == "API key not configured"
    assert agent.provider_name == "claude"
    with pytest.raises(RuntimeError):
        agent.query_hosted("q", RecordingHost())


def test_shutdown_closes_client(tmp_path):
    client = ScriptedClient([])
    agent = _agent(client, tmp_path)
    agent.shutdown()
    assert client.closed
    agent.shutdown()


def test_build_client_requires_key():
    with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
        build_client(ProviderType.CLAUDE)


def test_build_client_from_environment(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
    monkeypatch.setenv("COPILOT_MODEL", "openai/gpt-4o")
    client = build_client(ProviderType.COPILOT)
    assert isinstance(client, ChatCompletionsClient)
    assert client.url == "https://models.github.ai/inference/chat/completions"
    assert client.model == "openai/gpt-4o"
    assert client.api_key == "ghp_x"

    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
    claude = build_client(ProviderType.CLAUDE)
    assert isinstance(claude, MessagesClient)
    assert claude.url == "https://api.anthropic.com/v1/messages"


def test_build_client_byok_defaults_follow_provider():
    client = build_client(ProviderType.CLAUDE, BYOKConfig(api_key="sk-ant"))
    assert isinstance(client, MessagesClient)
    assert client.api_key == "sk-ant"

    client = build_client(ProviderType.COPILOT, BYOKConfig(api_key="sk", model="gpt-4o-mini"))
    assert isinstance(client, ChatCompletionsClient)
    assert client.url == "https://api.openai.com/v1/chat/completions"
    assert client.model == "gpt-4o-mini"


def test_build_client_byok_azure():
    with pytest.raises(ValueError, match="endpoint is required"):
        build_client(ProviderType.COPILOT, BYOKConfig(api_key="k", provider_type="azure"))
    client = build_client(
        ProviderType.COPILOT,
        BYOKConfig(api_key="k", provider_type="Azure", base_url="https://r.openai.azure.com/openai/deployments/d"),
    )
    assert client.azure
    assert client.url == "https://r.openai.azure.com/openai/deployments/d/chat/completions"


def test_build_client_byok_unknown_type():
    with pytest.raises(ValueError, match="Unsupported BYOK type"):
        build_client(ProviderType.COPILOT, BYOKConfig(api_key="k", provider_type="gemini"))


def test_empty_answer_keeps_next_request_valid(tmp_path):
    client = ScriptedClient([Reply(text=""), Reply(text="Second answer.")])
    agent = _agent(client, tmp_path)
    assert agent.query_hosted("first", RecordingHost()) == ""
    assert agent.messages[-1] == {"role": "assistant", "content": EMPTY_REPLY}

    resumed = _agent(client, tmp_path)
    resumed.set_session_id(agent.get_session_id())
    assert resumed.query_hosted("second", RecordingHost()) == "Second answer."

    sent = client.requests[1]
    _, anthropic_msgs = to_anthropic_messages(sent)
    assert anthropic_msgs[1] == {"role": "assistant", "content": [{"type": "text", "text": EMPTY_REPLY}]}
    assert to_openai_messages(sent)[1] == {"role": "assistant", "content": EMPTY_REPLY}


def test_saved_empty_turn_is_never_sent_empty():
    transcript = [
        {"role": "user", "content": "q"},
        {"role": "assistant", "content": ""},
        {"role": "user", "content": "q2"},
    ]
    _, anthropic_msgs = to_anthropic_messages(transcript)
    blocks = anthropic_msgs[1]["content"]
    assert blocks and all(b.get("text") for b in blocks)
    assert to_openai_messages(transcript)[1]["content"] == EMPTY_REPLY
