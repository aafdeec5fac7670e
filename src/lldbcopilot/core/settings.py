"""User settings stored in ~/.lldb_copilot/settings.json.

The directory can be moved with LLDB_COPILOT_HOME. Settings are a plain value:
commands load them at the start of every invocation and save them back after
an explicit change.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from lldbcopilot.llm.base import BYOKConfig
from lldbcopilot.llm.providers import ProviderType, parse_provider_type, provider_type_name

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "LLDB_COPILOT_HOME"
SETTINGS_FILENAME = "settings.json"
DEFAULT_RESPONSE_TIMEOUT_MS = 120000
MIN_RESPONSE_TIMEOUT_MS = 1000


@dataclass
class BYOKSettings:
    enabled: bool = False
    api_key: str = ""
    base_url: str = ""
    model: str = ""
    provider_type: str = ""  # openai, anthropic, azure
    timeout_ms: int = 0

    def is_usable(self) -> bool:
        return self.enabled and bool(self.api_key)

    def to_config(self) -> BYOKConfig:
        return BYOKConfig(
            api_key=self.api_key,
            base_url=self.base_url,
            model=self.model,
            provider_type=self.provider_type,
            timeout_ms=self.timeout_ms,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BYOKSettings":
        return cls(
            enabled=bool(data.get("enabled", False)),
            api_key=str(data.get("api_key", "") or ""),
            base_url=str(data.get("base_url", "") or ""),
            model=str(data.get("model", "") or ""),
            provider_type=str(data.get("provider_type", "") or ""),
            timeout_ms=int(data.get("timeout_ms", 0) or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"enabled": self.enabled}
        for key in ("api_key", "base_url", "model", "provider_type"):
            value = getattr(self, key)
            if value:
                out[key] = value
        if self.timeout_ms > 0:
            out["timeout_ms"] = self.timeout_ms
        return out


def _new_sessions() -> Dict[str, str]:
    return {}


def _new_byok() -> Dict[str, BYOKSettings]:
    return {}


@dataclass
class Settings:
    default_provider: ProviderType = ProviderType.COPILOT
    custom_prompt: str = ""
    response_timeout_ms: int = DEFAULT_RESPONSE_TIMEOUT_MS
    sessions: Dict[str, str] = field(default_factory=_new_sessions)  # "target|provider" -> session id
    byok: Dict[str, BYOKSettings] = field(default_factory=_new_byok)  # provider name -> BYOK

    @property
    def provider_name(self) -> str:
        return provider_type_name(self.default_provider)

    def get_byok(self) -> Optional[BYOKSettings]:
        """BYOK settings for the active provider, if any were recorded."""
        return self.byok.get(self.provider_name)

    def get_or_create_byok(self) -> BYOKSettings:
        return self.byok.setdefault(self.provider_name, BYOKSettings())

    def byok_usable(self) -> bool:
        byok = self.get_byok()
        return byok is not None and byok.is_usable()


def settings_dir() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    home = os.environ.get("HOME") or os.environ.get("USERPROFILE")
    if not home:
        return Path(".lldb_copilot")
    return Path(home) / ".lldb_copilot"


def settings_path() -> Path:
    return settings_dir() / SETTINGS_FILENAME


def _from_dict(data: Dict[str, Any]) -> Settings:
    settings = Settings()
    provider = data.get("default_provider")
    if provider:
        try:
            settings.default_provider = parse_provider_type(str(provider))
        except ValueError:
            logger.warning("Ignoring unknown provider in settings: %s", provider)
    if "custom_prompt" in data:
        settings.custom_prompt = str(data.get("custom_prompt") or "")
    if "response_timeout_ms" in data:
        settings.response_timeout_ms = int(data["response_timeout_ms"])
    sessions = data.get("sessions")
    if isinstance(sessions, dict):
        settings.sessions = {str(k): str(v) for k, v in sessions.items()}
    byok = data.get("byok")
    if isinstance(byok, dict):
        for name, entry in byok.items():
            if isinstance(entry, dict):
                settings.byok[str(name)] = BYOKSettings.from_dict(entry)
    return settings


def _to_dict(settings: Settings) -> Dict[str, Any]:
    data: Dict[str, Any] = {"default_provider": settings.provider_name}
    if settings.custom_prompt:
        data["custom_prompt"] = settings.custom_prompt
    if settings.response_timeout_ms > 0:
        data["response_timeout_ms"] = settings.response_timeout_ms
    if settings.sessions:
        data["sessions"] = dict(settings.sessions)
    if settings.byok:
        data["byok"] = {name: entry.to_dict() for name, entry in settings.byok.items()}
    return data


def load_settings() -> Settings:
    """Load settings from disk, creating the default file when missing.

    A file that cannot be read or parsed yields default settings.
    """
    path = settings_path()
    if not path.exists():
        settings = Settings()
        save_settings(settings)
        return settings
    try:
        raw = path.read_text(encoding="utf-8")
        loaded: Any = json.loads(raw or "{}")
        if not isinstance(loaded, dict):
            raise ValueError("settings root is not an object")
        return _from_dict(loaded)
    except (OSError, ValueError, TypeError) as e:
        logger.warning("Could not read %s, using defaults: %s", path, e)
        return Settings()


def save_settings(settings: Settings) -> bool:
    """Write settings to disk. Returns False, after logging, when the file cannot be written."""
    path = settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(_to_dict(settings), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning("Could not write %s: %s", path, e)
        return False
    return True


__all__ = [
    "BYOKSettings",
    "DEFAULT_RESPONSE_TIMEOUT_MS",
    "MIN_RESPONSE_TIMEOUT_MS",
    "Settings",
    "load_settings",
    "save_settings",
    "settings_dir",
    "settings_path",
]
