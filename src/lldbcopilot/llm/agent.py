"""Tool-calling conversation runtime used for every provider.

A ToolAgent keeps the running transcript in a neutral, OpenAI-like shape
(``role`` user/assistant/tool, assistant ``tool_calls`` as ``{id, name,
arguments}``) and hands it to a wire client on every round. The client turns
it into the provider's request format.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional

from lldbcopilot.utils.io import head_tail_truncate

from .anthropic import MessagesClient
from .base import ABORTED, EMPTY_REPLY, BYOKConfig, ChatClient, Event, EventType, HostContext, Tool, ToolCall
from .conversations import ConversationStore, new_session_id
from .openai_compat import ChatCompletionsClient
from .providers import BYOK_DEFAULTS, ProviderType, provider_config, provider_type_name, resolve_api_key

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 32
MAX_TOOL_OUTPUT_CHARS = 20000

ClientFactory = Callable[[ProviderType, Optional[BYOKConfig]], ChatClient]


def build_client(kind: ProviderType, byok: Optional[BYOKConfig] = None) -> ChatClient:
    """Create the wire client for ``kind``.

    Raises ValueError with a user-facing message when credentials or the BYOK
    endpoint are missing or invalid.
    """
    cfg = provider_config(kind)
    label = cfg["name"]

    if byok is not None and byok.api_key:
        byok_type = (byok.provider_type or cfg["wire"]).strip().lower()
        defaults = BYOK_DEFAULTS.get(byok_type)
        if defaults is None:
            raise ValueError(f"Unsupported BYOK type: {byok.provider_type} (use openai, anthropic or azure)")
        base_url = byok.base_url or defaults["base_url"]
        if not base_url:
            raise ValueError(f"BYOK endpoint is required for type '{byok_type}' (use 'agent byok endpoint <url>')")
        model = byok.model or defaults["model"]
        label = f"{label} (BYOK)"
        if defaults["wire"] == "anthropic":
            return MessagesClient(base_url, byok.api_key, model, path=defaults["path"], label=label)
        return ChatCompletionsClient(
            base_url,
            byok.api_key,
            model,
            path=defaults["path"],
            azure=defaults["wire"] == "azure",
            label=label,
        )

    api_key = resolve_api_key(cfg)
    if not api_key:
        env_names = " or ".join(cfg.get("api_key_env", []))
        raise ValueError(f"API key not configured (set {env_names} or use 'agent byok key')")
    if cfg["wire"] == "anthropic":
        return MessagesClient(cfg["base_url"], api_key, cfg["default_model"], path=cfg["path"], label=label)
    return ChatCompletionsClient(cfg["base_url"], api_key, cfg["default_model"], path=cfg["path"], label=label)


def _describe_call(call: ToolCall) -> str:
    args = call.arguments
    if not isinstance(args, str):
        args = json.dumps(args or {})
    return f"{call.name} {args}"


class ToolAgent:
    """Conversation runtime: transcript, tool table, credentials and session id."""

    def __init__(
        self,
        kind: ProviderType,
        client_factory: ClientFactory = build_client,
        conversations: Optional[ConversationStore] = None,
    ) -> None:
        self.kind = ProviderType(kind)
        self._client_factory = client_factory
        self._conversations = conversations
        self._client: Optional[ChatClient] = None
        self._tools: Dict[str, Tool] = {}
        self._messages: List[Dict[str, Any]] = []
        self._byok: Optional[BYOKConfig] = None
        self._timeout_ms = 0
        self._session_id = ""
        self._last_error = ""

    @property
    def provider_name(self) -> str:
        return provider_type_name(self.kind)

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return self._messages

    def _byok_active(self) -> bool:
        return self._byok is not None and bool(self._byok.api_key)

    def _store(self) -> ConversationStore:
        if self._conversations is None:
            self._conversations = ConversationStore()
        return self._conversations

    # ------------------------------------------------------------------
    def register_tool(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def set_byok(self, config: BYOKConfig) -> None:
        self._byok = config

    def set_response_timeout(self, timeout_ms: int) -> None:
        self._timeout_ms = timeout_ms

    def _timeout_seconds(self) -> Optional[float]:
        ms = self._timeout_ms
        if ms <= 0 and self._byok is not None:
            ms = self._byok.timeout_ms
        return ms / 1000.0 if ms > 0 else None

    def set_session_id(self, session_id: str) -> None:
        """Resume ``session_id``: its saved transcript replaces the current one."""
        self._session_id = session_id
        self._messages = self._store().load(session_id)
        if self._messages:
            logger.info("Loaded %d messages for session %s", len(self._messages), session_id)

    def get_session_id(self) -> str:
        if self._byok_active():
            return ""
        return self._session_id

    def clear_session(self) -> None:
        self._messages = []
        self._session_id = ""

    def initialize(self) -> bool:
        self._last_error = ""
        try:
            self._client = self._client_factory(self.kind, self._byok)
        except ValueError as e:
            self._last_error = str(e)
            self._client = None
            return False
        return True

    def get_last_error(self) -> str:
        return self._last_error

    def shutdown(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            client.close()

    # ------------------------------------------------------------------
    def query_hosted(self, prompt: str, host: HostContext) -> str:
        """Run one user turn to completion.

        Returns the final answer, or ABORTED when ``host.should_abort()``
        fires. Transport errors propagate and leave the transcript as it was
        before the call.
        """
        if self._client is None:
            raise RuntimeError("Agent is not initialized")
        start = len(self._messages)
        self._messages.append({"role": "user", "content": prompt})
        try:
            return self._run(self._client, host)
        except Exception:
            del self._messages[start:]
            raise

    def _run(self, client: ChatClient, host: HostContext) -> str:
        tools = list(self._tools.values())
        timeout = self._timeout_seconds()

        for _ in range(MAX_TOOL_ROUNDS):
            if host.should_abort():
                return ABORTED
            reply = client.complete(self._messages, tools, timeout=timeout)
            if host.should_abort():
                return ABORTED

            if not reply.tool_calls:
                self._messages.append({"role": "assistant", "content": reply.text or EMPTY_REPLY})
                host.on_event(Event(EventType.CONTENT_COMPLETE, content=reply.text))
                self._persist()
                return reply.text

            if reply.text:
                host.on_event(Event(EventType.CONTENT_DELTA, content=reply.text))
            self._messages.append(
                {
                    "role": "assistant",
                    "content": reply.text,
                    "tool_calls": [
                        {"id": c.id, "name": c.name, "arguments": c.arguments} for c in reply.tool_calls
                    ],
                }
            )
            for idx, call in enumerate(reply.tool_calls):
                if host.should_abort():
                    # Every tool call needs a result or the next request is rejected
                    for pending in reply.tool_calls[idx:]:
                        self._messages.append({"role": "tool", "tool_call_id": pending.id, "content": ABORTED})
                    return ABORTED
                host.on_event(Event(EventType.TOOL_CALL, content=_describe_call(call)))
                output = self._run_tool(call, host)
                self._messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": head_tail_truncate(output, MAX_TOOL_OUTPUT_CHARS),
                    }
                )

        raise RuntimeError(f"No final answer after {MAX_TOOL_ROUNDS} tool rounds")

    def _run_tool(self, call: ToolCall, host: HostContext) -> str:
        tool = self._tools.get(call.name)
        if tool is None:
            return f"Error: unknown tool '{call.name}'"
        try:
            return tool.invoke(call.arguments)
        except Exception as e:
            message = f"Tool {call.name} failed: {e}"
            logger.warning(message)
            host.on_event(Event(EventType.ERROR, error_message=message))
            return f"Error: {message}"

    def _persist(self) -> None:
        if self._byok_active():
            return
        if not self._session_id:
            self._session_id = new_session_id()
            logger.info("Started session %s", self._session_id)
        try:
            self._store().save(self._session_id, self.provider_name, self._messages)
        except OSError as e:
            logger.warning("Could not save conversation %s: %s", self._session_id, e)


__all__ = ["MAX_TOOL_ROUNDS", "ToolAgent", "build_client"]
