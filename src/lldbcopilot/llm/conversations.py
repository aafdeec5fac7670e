"""Saved conversation transcripts, one JSON file per session id."""
from __future__ import annotations

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_SAVED_MESSAGES = 200
_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000):x}"


class ConversationStore:
    def __init__(self, root: Optional[Path] = None) -> None:
        if root is None:
            from lldbcopilot.core.settings import settings_dir

            root = settings_dir() / "conversations"
        self.root = Path(root)

    def _path(self, session_id: str) -> Path:
        return self.root / (_UNSAFE_RE.sub("_", session_id) + ".json")

    def load(self, session_id: str) -> List[Dict[str, Any]]:
        """Messages saved under ``session_id``; empty when unknown or unreadable."""
        if not session_id:
            return []
        path = self._path(session_id)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning("Could not read conversation %s: %s", session_id, e)
            return []
        messages = data.get("messages") if isinstance(data, dict) else None
        if not isinstance(messages, list):
            return []
        return [m for m in messages if isinstance(m, dict)]

    def save(self, session_id: str, provider: str, messages: List[Dict[str, Any]]) -> None:
        if not session_id:
            return
        self.root.mkdir(parents=True, exist_ok=True)
        payload = {
            "session_id": session_id,
            "provider": provider,
            "messages": _trim(messages, MAX_SAVED_MESSAGES),
        }
        self._path(session_id).write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _trim(messages: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    """Drop the oldest messages beyond ``limit``, starting at a user turn.

    A transcript must not begin with a tool result or an assistant tool call
    whose counterpart was cut off.
    """
    if len(messages) <= limit:
        return list(messages)
    tail = messages[-limit:]
    for idx, msg in enumerate(tail):
        if msg.get("role") == "user":
            return tail[idx:]
    return []
