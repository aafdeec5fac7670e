"""Persisted conversation ids, keyed by debug target and provider.

Entries live in the ``sessions`` map of the settings file under
``"<target>|<provider>"``. The store caches that map but refreshes it on every
lookup; every write reloads the full settings, replaces the map and saves them
back so other settings are never clobbered.
"""
from __future__ import annotations

import logging
from typing import Dict

from .settings import load_settings, save_settings

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self) -> None:
        self._sessions: Dict[str, str] = {}

    @staticmethod
    def make_key(target_name: str, provider: str) -> str:
        # "|" does not appear in executable names in practice
        return f"{target_name}|{provider}"

    def get_session_id(self, target_name: str, provider: str) -> str:
        if not target_name or not provider:
            return ""
        self.load()
        return self._sessions.get(self.make_key(target_name, provider), "")

    def set_session_id(self, target_name: str, provider: str, session_id: str) -> None:
        if not target_name or not provider:
            return
        self.load()
        self._sessions[self.make_key(target_name, provider)] = session_id
        logger.info("Stored session %s for %s/%s", session_id, target_name, provider)
        self.save()

    def clear_session(self, target_name: str, provider: str) -> None:
        if not target_name or not provider:
            return
        self.load()
        self._sessions.pop(self.make_key(target_name, provider), None)
        logger.info("Cleared session for %s/%s", target_name, provider)
        self.save()

    def load(self) -> None:
        self._sessions = dict(load_settings().sessions)

    def save(self) -> None:
        settings = load_settings()
        settings.sessions = dict(self._sessions)
        save_settings(settings)

    @classmethod
    def loaded(cls) -> "SessionStore":
        store = cls()
        store.load()
        return store
