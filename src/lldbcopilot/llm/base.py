"""Agent runtime contracts shared by the session manager and the runtimes."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol


ABORTED = "(Aborted)"
# Transcript text for a final answer that came back empty
EMPTY_REPLY = "(No response)"


class EventType(str, Enum):
    CONTENT_DELTA = "content_delta"
    CONTENT_COMPLETE = "content_complete"
    TOOL_CALL = "tool_call"
    ERROR = "error"


@dataclass
class Event:
    type: EventType
    content: str = ""
    error_message: str = ""


@dataclass
class BYOKConfig:
    """Credentials and endpoint supplied by the user for one provider."""

    api_key: str = ""
    base_url: str = ""
    model: str = ""
    provider_type: str = ""
    timeout_ms: int = 0


def _new_param_list() -> List[str]:
    return []


@dataclass
class Tool:
    """A named capability the model may call with string arguments."""

    name: str
    description: str
    handler: Callable[..., str]
    params: List[str] = field(default_factory=_new_param_list)

    def schema(self) -> Dict[str, Any]:
        """JSON schema of the arguments object."""
        return {
            "type": "object",
            "properties": {p: {"type": "string"} for p in self.params},
            "required": list(self.params),
        }

    def invoke(self, arguments: Any) -> str:
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments or "{}")
            except ValueError:
                # A single-parameter tool may receive its bare argument
                arguments = {self.params[0]: arguments} if len(self.params) == 1 else {}
        if not isinstance(arguments, dict):
            arguments = {}
        kwargs = {p: str(arguments.get(p, "")) for p in self.params}
        return self.handler(**kwargs)


class HostContext(Protocol):
    """Callbacks the runtime uses while a query is in flight."""

    def should_abort(self) -> bool:  # pragma: no cover
        ...

    def on_event(self, event: Event) -> None:  # pragma: no cover
        ...


class AgentRuntime(Protocol):
    @property
    def provider_name(self) -> str:  # pragma: no cover
        ...

    def register_tool(self, tool: Tool) -> None:  # pragma: no cover
        ...

    def set_byok(self, config: BYOKConfig) -> None:  # pragma: no cover
        ...

    def set_response_timeout(self, timeout_ms: int) -> None:  # pragma: no cover
        ...

    def set_session_id(self, session_id: str) -> None:  # pragma: no cover
        ...

    def clear_session(self) -> None:  # pragma: no cover
        ...

    def initialize(self) -> bool:  # pragma: no cover
        ...

    def get_last_error(self) -> str:  # pragma: no cover
        ...

    def query_hosted(self, prompt: str, host: HostContext) -> str:  # pragma: no cover
        ...

    def get_session_id(self) -> str:  # pragma: no cover
        ...

    def shutdown(self) -> None:  # pragma: no cover
        ...


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Any = None


def _new_tool_call_list() -> List[ToolCall]:
    return []


@dataclass
class Reply:
    """One model turn, normalized across wire formats."""

    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=_new_tool_call_list)
    usage: Optional[Dict[str, Any]] = None


class ChatClient(Protocol):
    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Tool],
        timeout: Optional[float] = None,
    ) -> Reply:  # pragma: no cover
        ...

    def close(self) -> None:  # pragma: no cover
        ...
