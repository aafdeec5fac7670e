"""Anthropic Messages API client with tool use.

Used by the claude provider and by BYOK endpoints of type ``anthropic``.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import requests

from .base import EMPTY_REPLY, Reply, Tool, ToolCall

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096


def _as_input(arguments: Any) -> Dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    try:
        parsed = json.loads(arguments or "{}")
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def to_anthropic_messages(messages: List[Dict[str, Any]]) -> tuple[str, List[Dict[str, Any]]]:
    """Split the neutral transcript into (system, messages) in Anthropic shape.

    Consecutive tool results are folded into a single user turn.
    """
    system_parts: List[str] = []
    out: List[Dict[str, Any]] = []
    for msg in messages:
        role = msg.get("role")
        if role == "system":
            system_parts.append(msg.get("content", ""))
        elif role == "assistant":
            blocks: List[Dict[str, Any]] = []
            if msg.get("content"):
                blocks.append({"type": "text", "text": msg["content"]})
            for call in msg.get("tool_calls") or []:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call["id"],
                        "name": call["name"],
                        "input": _as_input(call.get("arguments")),
                    }
                )
            out.append({"role": "assistant", "content": blocks or [{"type": "text", "text": EMPTY_REPLY}]})
        elif role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": msg.get("tool_call_id", ""),
                "content": msg.get("content", ""),
            }
            prev = out[-1] if out else None
            if prev and prev["role"] == "user" and isinstance(prev["content"], list) and all(
                b.get("type") == "tool_result" for b in prev["content"]
            ):
                prev["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})
        else:
            out.append({"role": "user", "content": msg.get("content", "")})
    return "\n\n".join(p for p in system_parts if p), out


def tool_specs(tools: List[Tool]) -> List[Dict[str, Any]]:
    return [{"name": t.name, "description": t.description, "input_schema": t.schema()} for t in tools]


def parse_reply(data: Dict[str, Any]) -> Reply:
    content = data.get("content")
    if not isinstance(content, list):
        raise RuntimeError(f"Unexpected response shape: {json.dumps(data)[:200]}")
    texts: List[str] = []
    calls: List[ToolCall] = []
    for block in content:
        kind = block.get("type")
        if kind == "text":
            texts.append(block.get("text", ""))
        elif kind == "tool_use":
            calls.append(ToolCall(id=block.get("id", ""), name=block.get("name", ""), arguments=block.get("input") or {}))
    usage = data.get("usage") if isinstance(data.get("usage"), dict) else None
    return Reply(text="".join(texts), tool_calls=calls, usage=usage)


class MessagesClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        path: str = "/v1/messages",
        max_tokens: int = DEFAULT_MAX_TOKENS,
        label: str = "Anthropic",
        session: Optional[Any] = None,
    ) -> None:
        self.url = base_url.rstrip("/") + "/" + path.lstrip("/")
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.label = label
        self._session = session if session is not None else requests.Session()

    def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: List[Tool],
        timeout: Optional[float] = None,
    ) -> Reply:
        system, converted = to_anthropic_messages(messages)
        body: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": converted,
        }
        if system:
            body["system"] = system
        if tools:
            body["tools"] = tool_specs(tools)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

        try:
            resp = self._session.post(self.url, headers=headers, json=body, timeout=timeout)
        except requests.RequestException as e:
            raise RuntimeError(f"{self.label} request failed: {e}") from e

        if not (200 <= resp.status_code < 300):
            text = (resp.text or "").strip()
            try:
                detail = resp.json().get("error", {}).get("message") or text
            except (ValueError, AttributeError):
                detail = text
            snippet = detail[:200].replace("\n", " ")
            raise RuntimeError(f"{self.label} HTTP {resp.status_code}: {snippet}")
        try:
            data = resp.json()
        except ValueError as e:
            raise RuntimeError(f"{self.label} returned non-JSON response:\n{resp.text or ''}") from e
        return parse_reply(data)

    def close(self) -> None:
        self._session.close()
