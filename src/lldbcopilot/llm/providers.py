"""Agent provider registry.

Each provider names a wire format, a default endpoint and model, and the
environment variables that hold its API key. Endpoint and model can be
overridden per provider through ``<NAME>_BASE_URL`` and ``<NAME>_MODEL``
(e.g. CLAUDE_MODEL, COPILOT_BASE_URL).
"""
from __future__ import annotations

import os
import re
from enum import Enum
from typing import Any, Dict, Optional


class ProviderType(str, Enum):
    CLAUDE = "claude"
    COPILOT = "copilot"


_ALIASES = {
    "claude": ProviderType.CLAUDE,
    "claude-code": ProviderType.CLAUDE,
    "copilot": ProviderType.COPILOT,
    "github-copilot": ProviderType.COPILOT,
}

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    "copilot": {
        "description": "GitHub Copilot via GitHub Models (requires GITHUB_TOKEN)",
        "wire": "openai",
        "base_url": "https://models.github.ai",
        "path": "/inference/chat/completions",
        "default_model": "openai/gpt-4.1",
        "api_key_env": ["COPILOT_API_KEY", "GITHUB_TOKEN", "GH_TOKEN"],
    },
    "claude": {
        "description": "Anthropic Claude (requires ANTHROPIC_API_KEY)",
        "wire": "anthropic",
        "base_url": "https://api.anthropic.com",
        "path": "/v1/messages",
        "default_model": "claude-sonnet-4-5",
        "api_key_env": ["ANTHROPIC_API_KEY"],
    },
}

# Defaults for BYOK endpoints, keyed by BYOK provider type
BYOK_DEFAULTS: Dict[str, Dict[str, str]] = {
    "openai": {
        "wire": "openai",
        "base_url": "https://api.openai.com",
        "path": "/v1/chat/completions",
        "model": "gpt-4.1",
    },
    "anthropic": {
        "wire": "anthropic",
        "base_url": "https://api.anthropic.com",
        "path": "/v1/messages",
        "model": "claude-sonnet-4-5",
    },
    # Azure deployments name the model in the endpoint URL
    "azure": {"wire": "azure", "base_url": "", "path": "/chat/completions", "model": ""},
}


def provider_type_name(kind: ProviderType) -> str:
    return ProviderType(kind).value


def parse_provider_type(name: str) -> ProviderType:
    """Map a user-supplied provider name (case-insensitive, aliases allowed)."""
    kind = _ALIASES.get((name or "").strip().lower())
    if kind is None:
        raise ValueError(f"Unknown provider: {name}")
    return kind


def list_providers() -> list[str]:
    return sorted(DEFAULT_CONFIG.keys())


def _slug_to_env_prefix(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9]+", "_", name).upper()


def provider_config(kind: ProviderType) -> Dict[str, Any]:
    """Return the provider defaults with environment overrides applied."""
    name = provider_type_name(kind)
    cfg = dict(DEFAULT_CONFIG[name])
    prefix = _slug_to_env_prefix(name)
    for key, env_key in (("base_url", f"{prefix}_BASE_URL"), ("default_model", f"{prefix}_MODEL")):
        value = os.environ.get(env_key)
        if value:
            cfg[key] = value
    cfg["name"] = name
    return cfg


def resolve_api_key(cfg: Dict[str, Any]) -> str:
    for env_key in cfg.get("api_key_env", []):
        value = os.environ.get(env_key)
        if value:
            return value
    return ""


def create_agent(kind: ProviderType) -> Optional[Any]:
    """Build an uninitialized agent runtime for ``kind``; None if unsupported."""
    try:
        kind = ProviderType(kind)
    except ValueError:
        return None
    from .agent import ToolAgent

    return ToolAgent(kind)


__all__ = [
    "BYOK_DEFAULTS",
    "DEFAULT_CONFIG",
    "ProviderType",
    "create_agent",
    "list_providers",
    "parse_provider_type",
    "provider_config",
    "provider_type_name",
    "resolve_api_key",
]
