# pyright: reportUnknownMemberType=false, reportUnknownArgumentType=false, reportUnknownVariableType=false

"""OpenAI-compatible chat completions client with function tools.

Used by the copilot provider (GitHub Models) and by BYOK endpoints of type
``openai`` or ``azure``. Azure deployments authenticate with an ``api-key``
header and require an ``api-version`` query parameter; everything else uses a
bearer token.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import requests

from .base import EMPTY_REPLY, Reply, Tool, ToolCall

AZURE_API_VERSION = "2024-10-21"


def to_openai_messages(messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert the runtime's neutral transcript to the OpenAI message shape."""
    out: List[Dict[str, Any]] = []
    for msg in messages:
        role = msg.get("role")
        if role == "assistant":
            calls = msg.get("tool_calls") or []
            content = msg.get("content") or (None if calls else EMPTY_REPLY)
            entry: Dict[str, Any] = {"role": "assistant", "content": content}
            if calls:
                entry["tool_calls"] = [
                    {
                        "id": c["id"],
                        "type": "function",
                        "function": {
                            "name": c["name"],
                            "arguments": c["arguments"]
                            if isinstance(c.get("arguments"), str)
                            else json.dumps(c.get("arguments") or {}),
                        },
                    }
                    for c in calls
                ]
            out.append(entry)
        elif role == "tool":
            out.append(
                {
                    "role": "tool",
                    "tool_call_id": msg.get("tool_call_id", ""),
                    "content": msg.get("content", ""),
                }
            )
        else:
            out.append({"role": role or "user", "content": msg.get("content", "")})
    return out


def tool_specs(tools: List[Tool]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {"name": t.name, "description": t.description, "parameters": t.schema()},
        }
        for t in tools
    ]


def parse_reply(data: Dict[str, Any]) -> Reply:
    try:
        message = data["choices"][0]["message"] or {}
    except (KeyError, IndexError, TypeError):
        raise RuntimeError(f"Unexpected response shape: {json.dumps(data)[:200]}")
    calls: List[ToolCall] = []
    for idx, raw in enumerate(message.get("tool_calls") or []):
        fn = raw.get("function") or {}
        calls.append(
            ToolCall(
                id=raw.get("id") or f"call_{idx}",
                name=fn.get("name", ""),
                arguments=fn.get("arguments") or "{}",
            )
        )
    usage = data.get("usage") if isinstance(data.get("usage"), dict) else None
    return Reply(text=message.get("content") or "", tool_calls=calls, usage=usage)


class ChatCompletionsClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        path: str = "/v1/chat/completions",
        azure: bool = False,
        label: str = "OpenAI",
        session: Optional[Any] = None,
    ) -> None:
        self.url = base_url.rstrip("/") + ("/" + path.lstrip("/") if path else "")
        self.api_key = api_key
        self.model = model
        self.azure = azure
        self.label = label
        self._session = session if session is not None else requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.azure:
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Tool],
        timeout: Optional[float] = None,
    ) -> Reply:
        body: Dict[str, Any] = {"messages": to_openai_messages(messages)}
        if not self.azure or self.model:
            body["model"] = self.model
        if tools:
            body["tools"] = tool_specs(tools)
        params = {"api-version": AZURE_API_VERSION} if self.azure else None

        try:
            resp = self._session.post(
                self.url, headers=self._headers(), params=params, json=body, timeout=timeout
            )
        except requests.RequestException as e:
            raise RuntimeError(f"{self.label} request failed: {e}") from e

        if not (200 <= resp.status_code < 300):
            snippet = (resp.text or "").strip()[:200].replace("\n", " ")
            raise RuntimeError(f"{self.label} HTTP {resp.status_code}: {snippet}")
        try:
            data = resp.json()
        except ValueError as e:
            raise RuntimeError(f"{self.label} returned non-JSON response:\n{resp.text or ''}") from e
        return parse_reply(data)

    def close(self) -> None:
        self._session.close()
