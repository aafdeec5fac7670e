"""The ``copilot`` and ``agent`` commands.

Handlers are host-agnostic: they take the raw argument string and a debugger
host, and return a CommandResult that the LLDB plugin or the standalone REPL
renders. Settings are reloaded at the start of every invocation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from lldbcopilot import __version__
from lldbcopilot.llm.providers import list_providers, parse_provider_type, provider_type_name

from .lifecycle import CopilotError, SessionManager
from .settings import MIN_RESPONSE_TIMEOUT_MS, Settings, load_settings, save_settings

logger = logging.getLogger(__name__)

COPILOT_USAGE = (
    "Usage: copilot <question>\n\n"
    "Examples:\n"
    "  copilot what is the call stack?\n"
    "  copilot explain this crash\n\n"
    "For Copilot settings, use: agent help"
)

AGENT_HELP = """\
LLDB Copilot - AI-powered debugger assistant

Commands:
  copilot <question>         Ask the AI a question
  agent help                 Show this help
  agent version              Show version information
  agent provider             Show current provider
  agent provider <name>      Switch provider (claude, copilot)
  agent clear                Clear conversation history
  agent prompt               Show custom prompt
  agent prompt <text>        Set custom prompt
  agent prompt clear         Clear custom prompt
  agent timeout              Show response timeout
  agent timeout <ms>         Set response timeout in milliseconds
  agent byok                 Show BYOK status
  agent byok enable          Enable BYOK for current provider
  agent byok disable         Disable BYOK
  agent byok key <val>       Set BYOK API key
  agent byok endpoint <url>  Set BYOK endpoint
  agent byok model <name>    Set BYOK model
  agent byok type <type>     Set BYOK type (openai, anthropic, azure)

Examples:
  copilot what is the call stack?
  copilot help me understand this crash
  agent provider claude
  agent byok key sk-xxx
  agent byok enable
"""


@dataclass
class CommandResult:
    ok: bool
    message: str = ""

    @classmethod
    def success(cls, message: str = "") -> "CommandResult":
        return cls(True, message)

    @classmethod
    def error(cls, message: str) -> "CommandResult":
        return cls(False, message)


def _split_first(text: str) -> tuple[str, str]:
    parts = (text or "").strip().split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1].strip() if len(parts) > 1 else ""


class CopilotCommands:
    """Command handlers bound to one SessionManager."""

    def __init__(
        self,
        manager: SessionManager,
        settings_loader: Callable[[], Settings] = load_settings,
        settings_saver: Callable[[Settings], bool] = save_settings,
    ) -> None:
        self.manager = manager
        self._load = settings_loader
        self._save = settings_saver

    # ------------------------------------------------------------------
    def copilot(self, question: str, host: Any) -> CommandResult:
        question = (question or "").strip()
        if not question:
            return CommandResult.error(COPILOT_USAGE)

        settings = self._load()
        target = host.get_target_name()
        try:
            created = self.manager.ensure_agent(settings, target, host)
        except CopilotError as e:
            return CommandResult.error(str(e) or "Failed to initialize")

        provider_name = settings.provider_name
        host.output_thinking(f"[{provider_name}] Asking: {question}")
        if created:
            host.output_thinking(f"Initializing {provider_name} provider...")

        try:
            response = self.manager.query(settings, target, question)
        except Exception as e:
            logger.warning("Query failed: %s", e)
            return CommandResult.error(str(e) or e.__class__.__name__)
        if self.manager.is_aborted(response):
            host.output_warning("Aborted.")
        return CommandResult.success()

    # ------------------------------------------------------------------
    def agent(self, args: str, host: Any) -> CommandResult:
        subcmd, rest = _split_first(args)
        settings = self._load()
        handler = {
            "": self._help,
            "help": self._help,
            "version": self._version,
            "provider": self._provider,
            "clear": self._clear,
            "prompt": self._prompt,
            "timeout": self._timeout,
            "byok": self._byok,
        }.get(subcmd)
        if handler is None:
            return CommandResult.error(f"Unknown subcommand: {subcmd}\nUse 'agent help' for usage.")
        return handler(settings, rest, host)

    def _help(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        suffix = " (BYOK enabled)" if settings.byok_usable() else ""
        return CommandResult.success(f"{AGENT_HELP}\nCurrent provider: {settings.provider_name}{suffix}")

    def _version(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        return CommandResult.success(
            f"LLDB Copilot v{__version__}\nCurrent provider: {settings.provider_name}"
        )

    def _provider(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        if not rest:
            available = ", ".join(list_providers())
            return CommandResult.success(
                f"Current provider: {settings.provider_name}\n\nAvailable: {available}"
            )
        try:
            kind = parse_provider_type(rest)
        except ValueError as e:
            return CommandResult.error(str(e))
        if kind != settings.default_provider:
            settings.default_provider = kind
            self._save(settings)
            self.manager.reset_session()
        return CommandResult.success(f"Provider set to: {provider_type_name(kind)}")

    def _clear(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        self.manager.clear_history(settings, host.get_target_name())
        return CommandResult.success("Conversation history cleared.")

    def _prompt(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        if not rest:
            if not settings.custom_prompt:
                return CommandResult.success("No custom prompt set.")
            return CommandResult.success(f"Custom prompt:\n{settings.custom_prompt}")
        if rest == "clear":
            settings.custom_prompt = ""
            message = "Custom prompt cleared."
        else:
            settings.custom_prompt = rest
            message = "Custom prompt set."
        self._save(settings)
        self.manager.update_system_prompt(settings)
        return CommandResult.success(message)

    def _timeout(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        if not rest:
            ms = settings.response_timeout_ms
            return CommandResult.success(f"Response timeout: {ms} ms ({ms // 1000} seconds)")
        try:
            ms = int(rest)
        except ValueError:
            return CommandResult.error("Invalid timeout value. Use milliseconds.")
        if ms < MIN_RESPONSE_TIMEOUT_MS:
            return CommandResult.error("Timeout must be at least 1000 ms (1 second).")
        settings.response_timeout_ms = ms
        self._save(settings)
        self.manager.apply_timeout(ms)
        return CommandResult.success(f"Timeout set to {ms} ms ({ms // 1000} seconds).")

    # ------------------------------------------------------------------
    def _byok(self, settings: Settings, rest: str, host: Any) -> CommandResult:
        provider_name = settings.provider_name
        subcmd, value = _split_first(rest)

        if not subcmd:
            return CommandResult.success(self._byok_status(settings))

        if subcmd not in {"enable", "disable", "key", "endpoint", "model", "type"}:
            return CommandResult.error(
                f"Unknown byok subcommand: {subcmd}\nUse 'agent byok' to see available commands."
            )
        if subcmd == "key" and not value:
            return CommandResult.error("Error: API key value required.\nUsage: agent byok key <value>")

        byok = settings.get_or_create_byok()
        if subcmd == "enable":
            byok.enabled = True
            message = f"BYOK enabled for provider '{provider_name}'."
            if not byok.api_key:
                message += "\nWarning: API key not set. Use 'agent byok key <value>' to set it."
        elif subcmd == "disable":
            byok.enabled = False
            message = f"BYOK disabled for provider '{provider_name}'."
        elif subcmd == "key":
            byok.api_key = value
            message = f"BYOK API key set for provider '{provider_name}'."
        elif subcmd == "endpoint":
            byok.base_url = value
            message = f"BYOK endpoint set to: {value}" if value else "BYOK endpoint cleared (using default)."
        elif subcmd == "model":
            byok.model = value
            message = f"BYOK model set to: {value}" if value else "BYOK model cleared (using default)."
        else:
            byok.provider_type = value
            message = f"BYOK type set to: {value}" if value else "BYOK type cleared (using default)."

        self._save(settings)
        # Credentials are applied only when the agent is built
        self.manager.reset_session()
        return CommandResult.success(message)

    @staticmethod
    def _byok_status(settings: Settings) -> str:
        lines = [f"BYOK status for provider '{settings.provider_name}':"]
        byok = settings.get_byok()
        if byok is None:
            lines.append("  (not configured)")
            return "\n".join(lines)
        lines += [
            f"  Enabled:  {'yes' if byok.enabled else 'no'}",
            f"  API Key:  {'********' if byok.api_key else '(not set)'}",
            f"  Endpoint: {byok.base_url or '(default)'}",
            f"  Model:    {byok.model or '(default)'}",
            f"  Type:     {byok.provider_type or '(default)'}",
            f"  Usable:   {'yes' if byok.is_usable() else 'no'}",
        ]
        return "\n".join(lines)
