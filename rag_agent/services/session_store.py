# =============================================================================
# Session Store — Per-Session Agent Registry
# =============================================================================
#
# Maps a session id (one per user) to that session's RAGAgent. The HTTP
# layer creates one SessionStore and passes it to its handlers; there is no
# module-level registry.
#
# Each agent owns its own retriever, so sessions never share an index.
# Index mutation (get_or_create / reindex / drop) must not overlap with a
# query on the same session. Callers serialise per session.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rag_agent.agents.orchestrator import RAGAgent

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Registry of initialised agents keyed by session id.

    Args:
        agent_factory: Builds a fresh, un-indexed RAGAgent.
    """

    def __init__(self, agent_factory: Callable[[], RAGAgent]) -> None:
        self._factory = agent_factory
        self._agents: dict[str, RAGAgent] = {}

    async def get_or_create(
        self,
        session_id: str,
        documents: Mapping[str, str] | None = None,
    ) -> RAGAgent:
        """
        Return the session's agent, creating and indexing it on first use.

        The agent is only registered once indexing succeeds, so a failed
        initialisation can simply be retried.
        """
        agent = self._agents.get(session_id)
        if agent is not None:
            return agent

        logger.info("Initializing agent for session '%s'", session_id)
        agent = self._factory()
        await agent.initialize(documents or {})
        self._agents[session_id] = agent
        return agent

    async def reindex(self, session_id: str, documents: Mapping[str, str]) -> RAGAgent:
        """Rebuild a session's index, e.g. after a document upload."""
        agent = self._agents.get(session_id)
        if agent is None:
            return await self.get_or_create(session_id, documents)

        agent.clear()
        await agent.initialize(documents)
        return agent

    def get(self, session_id: str) -> RAGAgent | None:
        return self._agents.get(session_id)

    def drop(self, session_id: str) -> bool:
        """Forget a session and free its index. Returns False if unknown."""
        agent = self._agents.pop(session_id, None)
        if agent is None:
            return False
        agent.clear()
        logger.info("Dropped session '%s'", session_id)
        return True

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._agents

    def __len__(self) -> int:
        return len(self._agents)
