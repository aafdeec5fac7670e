"""Agent session lifecycle.

``SessionManager`` owns the single ``AgentSession`` of a copilot instance and
reconciles it with the current settings and debug target before every use:
it creates the agent on demand, rebuilds it when the provider changes,
re-primes it when the system prompt changes and switches conversations when
the target changes.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from lldbcopilot.llm.base import ABORTED
from lldbcopilot.llm.providers import ProviderType, create_agent, provider_type_name
from lldbcopilot.prompts.defaults import full_system_prompt

from .host import DebuggerTool, HostBridge
from .session_store import SessionStore
from .settings import Settings
from .state import AgentSession

logger = logging.getLogger(__name__)

PROMPT_SEPARATOR = "\n\n---\n\n"

AgentFactory = Callable[[ProviderType], Optional[Any]]


class CopilotError(RuntimeError):
    """Base class for errors reported to the user as a single message."""


class AgentSetupError(CopilotError):
    """The agent could not be created or initialized."""


class SessionManager:
    def __init__(
        self,
        store: Optional[SessionStore] = None,
        agent_factory: AgentFactory = create_agent,
    ) -> None:
        self.store = store if store is not None else SessionStore.loaded()
        self._agent_factory = agent_factory
        self._session = AgentSession()

    @property
    def session(self) -> AgentSession:
        return self._session

    # ------------------------------------------------------------------
    def ensure_agent(self, settings: Settings, target: str, host: Optional[Any] = None) -> bool:
        """Make the session usable for ``settings`` and ``target``.

        Returns True when a new agent instance was built by this call. Raises
        AgentSetupError when the agent cannot be created or initialized; the
        session is then left uninitialized.
        """
        session = self._session
        if host is not None:
            self._bind_host(host)

        if session.agent is not None and session.provider != settings.default_provider:
            logger.info(
                "Provider changed from %s to %s; rebuilding agent",
                session.provider_name,
                settings.provider_name,
            )
            self.reset_session()

        created = False
        if session.agent is None:
            self._create_agent(settings, target)
            created = True

        updated_prompt = full_system_prompt(settings.custom_prompt)
        if updated_prompt != session.system_prompt:
            session.system_prompt = updated_prompt
            session.primed = False

        if session.target != target:
            self._switch_target(settings, target)

        session.aborted.clear()
        return created

    def _create_agent(self, settings: Settings, target: str) -> None:
        session = self._session
        session.provider = settings.default_provider
        session.provider_name = provider_type_name(settings.default_provider)
        logger.info("Creating %s agent", session.provider_name)

        agent = self._agent_factory(settings.default_provider)
        if agent is None:
            self.reset_session()
            raise AgentSetupError("Failed to create agent")
        session.agent = agent

        tool = DebuggerTool(session.aborted, session.host)
        agent.register_tool(tool.as_tool())
        session.tool = tool

        session.system_prompt = full_system_prompt(settings.custom_prompt)
        session.primed = False

        byok_usable = settings.byok_usable()
        if byok_usable:
            agent.set_byok(settings.get_byok().to_config())

        if settings.response_timeout_ms > 0:
            agent.set_response_timeout(settings.response_timeout_ms)

        if not byok_usable:
            session.session_id = self.store.get_session_id(target, session.provider_name)
            if session.session_id:
                logger.info("Resuming session %s for %s", session.session_id, target)
                agent.set_session_id(session.session_id)

        if not agent.initialize():
            detail = agent.get_last_error()
            name = getattr(agent, "provider_name", "") or session.provider_name
            message = f"Failed to initialize {name} provider"
            if detail:
                message += f": {detail}"
            logger.warning(message)
            self.reset_session()
            raise AgentSetupError(message)

        self._configure_host()
        session.initialized = True

    def _configure_host(self) -> None:
        session = self._session
        if session.host_ready:
            return
        session.bridge = HostBridge(session.aborted, session.host)
        session.host_ready = True

    def _bind_host(self, host: Any) -> None:
        session = self._session
        session.host = host
        if session.bridge is not None:
            session.bridge.host = host
        if session.tool is not None:
            session.tool.host = host

    def _switch_target(self, settings: Settings, target: str) -> None:
        session = self._session
        logger.info("Target changed from %r to %r", session.target, target)
        session.target = target
        if not settings.byok_usable():
            new_session_id = self.store.get_session_id(target, session.provider_name)
            if new_session_id != session.session_id and session.agent is not None:
                session.agent.clear_session()
                session.session_id = new_session_id
                if new_session_id:
                    session.agent.set_session_id(new_session_id)
        # Conversation context is per target, so prime again even when resuming
        session.primed = False

    # ------------------------------------------------------------------
    def reset_session(self) -> None:
        """Tear the agent down and forget everything bound to it."""
        session = self._session
        if session.agent is not None:
            try:
                session.agent.shutdown()
            except Exception as e:
                logger.warning("Agent shutdown failed: %s", e)
            session.agent = None
            logger.info("Agent session reset")
        session.initialized = False
        session.host_ready = False
        session.bridge = None
        session.tool = None
        session.provider = None
        session.provider_name = ""
        session.session_id = ""
        session.system_prompt = ""
        session.primed = False
        session.target = ""

    # ------------------------------------------------------------------
    def compose_query(self, question: str) -> str:
        """The text to send for ``question``: primed sessions send it as-is."""
        session = self._session
        if session.primed or not session.system_prompt:
            return question
        return session.system_prompt + PROMPT_SEPARATOR + question

    def query(self, settings: Settings, target: str, question: str) -> str:
        """Send one question through an ensured session.

        Call ensure_agent first. Runtime errors propagate unchanged and leave
        the session as it was.
        """
        session = self._session
        if session.agent is None or session.bridge is None:
            raise CopilotError("Agent is not initialized")
        response = session.agent.query_hosted(self.compose_query(question), session.bridge)
        session.primed = True

        if not settings.byok_usable():
            new_session_id = session.agent.get_session_id()
            if new_session_id and new_session_id != session.session_id:
                self.store.set_session_id(target, session.provider_name, new_session_id)
                session.session_id = new_session_id
        return response

    @staticmethod
    def is_aborted(response: str) -> bool:
        return response == ABORTED

    def request_abort(self) -> None:
        """Ask the in-flight query to stop; callable from any thread."""
        self._session.aborted.set()

    # ------------------------------------------------------------------
    def clear_history(self, settings: Settings, target: str) -> None:
        session = self._session
        if session.agent is not None:
            session.agent.clear_session()
            session.session_id = ""
        self.store.clear_session(target, settings.provider_name)

    def update_system_prompt(self, settings: Settings) -> None:
        """Re-prime a live agent after the custom prompt changed."""
        session = self._session
        if session.agent is None:
            return
        session.system_prompt = full_system_prompt(settings.custom_prompt)
        session.primed = False

    def apply_timeout(self, timeout_ms: int) -> None:
        if self._session.agent is not None:
            self._session.agent.set_response_timeout(timeout_ms)
