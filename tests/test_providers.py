from __future__ import annotations

import pytest

from lldbcopilot.llm.agent import ToolAgent
from lldbcopilot.llm.providers import (
    ProviderType,
    create_agent,
    list_providers,
    parse_provider_type,
    provider_config,
    provider_type_name,
    resolve_api_key,
)


@pytest.mark.parametrize(
    "name, kind",
    [
        ("claude", ProviderType.CLAUDE),
        ("Claude-Code", ProviderType.CLAUDE),
        ("copilot", ProviderType.COPILOT),
        (" GitHub-Copilot ", ProviderType.COPILOT),
    ],
)
def test_parse_provider_type(name, kind):
    assert parse_provider_type(name) == kind


def test_parse_provider_type_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown provider: openrouter"):
        parse_provider_type("openrouter")


def test_names_and_listing():
    assert provider_type_name(ProviderType.CLAUDE) == "claude"
    assert list_providers() == ["claude", "copilot"]


def test_provider_config_env_overrides(monkeypatch):
    monkeypatch.setenv("CLAUDE_BASE_URL", "https://proxy.local")
    monkeypatch.setenv("CLAUDE_MODEL", "claude-opus-4-1")
    cfg = provider_config(ProviderType.CLAUDE)
    assert cfg["name"] == "claude"
    assert cfg["base_url"] == "https://proxy.local"
    assert cfg["default_model"] == "claude-opus-4-1"


def test_resolve_api_key_order(monkeypatch):
    cfg = provider_config(ProviderType.COPILOT)
    assert resolve_api_key(cfg) == ""
    monkeypatch.setenv("GH_TOKEN", "gh")
    assert resolve_api_key(cfg) == "gh"
    monkeypatch.setenv("COPILOT_API_KEY", "explicit")
    assert resolve_api_key(cfg) == "explicit"


def test_create_agent():
    agent = create_agent(ProviderType.COPILOT)
    assert isinstance(agent, ToolAgent)
    assert agent.provider_name == "copilot"
    assert create_agent("gemini") is None
