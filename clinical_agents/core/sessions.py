"""Session registry - one orchestrator per conversation."""

from __future__ import annotations

import asyncio
import uuid
from typing import Callable

from clinical_agents.utils.exceptions import NotFoundError
from clinical_agents.utils.logging import get_logger

from .orchestrator import CoordinatedOrchestrator

logger = get_logger(__name__)

OrchestratorFactory = Callable[[str], CoordinatedOrchestrator]
HistoryDiscarder = Callable[[str], object]


def new_session_id() -> str:
    """Short opaque id: the first 8 hex characters of a random UUID."""
    return uuid.uuid4().hex[:8]


class SessionManager:
    """Maps session ids to orchestrators.

    The registry itself is guarded by one lock. Each session also owns a
    lock so that callers can serialize runs on the same orchestrator while
    different sessions proceed in parallel.
    """

    def __init__(
        self,
        factory: OrchestratorFactory,
        discard_history: HistoryDiscarder | None = None,
    ):
        """Initialize the manager.

        Args:
            factory: Builds a fresh orchestrator for a session id
            discard_history: Deletes any saved history for a session id
        """
        self._factory = factory
        self._discard_history = discard_history
        self._sessions: dict[str, CoordinatedOrchestrator] = {}
        self._session_locks: dict[str, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    async def get_or_create(
        self, session_id: str | None = None
    ) -> tuple[str, CoordinatedOrchestrator]:
        """Return the session's orchestrator, creating it when unknown.

        A missing or blank id always creates a new session with a fresh id.

        Args:
            session_id: Existing id, or None

        Returns:
            Tuple of (session id, orchestrator)
        """
        async with self._lock:
            if session_id and session_id.strip():
                orchestrator = self._sessions.get(session_id)
                if orchestrator is not None:
                    return session_id, orchestrator
            else:
                session_id = new_session_id()
                while session_id in self._sessions:
                    session_id = new_session_id()

            orchestrator = self._factory(session_id)
            self._sessions[session_id] = orchestrator
            self._session_locks[session_id] = asyncio.Lock()
            logger.info("Session created", session_id=session_id)
            return session_id, orchestrator

    async def get(self, session_id: str) -> CoordinatedOrchestrator:
        """Look up an existing session.

        Raises:
            NotFoundError: If the session does not exist
        """
        async with self._lock:
            orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            raise NotFoundError("Session", session_id)
        return orchestrator

    def lock_for(self, session_id: str) -> asyncio.Lock:
        """Per-session run lock.

        Raises:
            NotFoundError: If the session does not exist
        """
        lock = self._session_locks.get(session_id)
        if lock is None:
            raise NotFoundError("Session", session_id)
        return lock

    async def reset(self, session_id: str) -> None:
        """Clear a session's conversation history, keeping the session.

        Raises:
            NotFoundError: If the session does not exist
        """
        orchestrator = await self.get(session_id)
        async with self.lock_for(session_id):
            orchestrator.reset()
            if self._discard_history is not None:
                self._discard_history(session_id)
        logger.info("Session reset", session_id=session_id)

    async def remove(self, session_id: str) -> bool:
        """Forget a session and delete its saved history.

        Returns:
            True if the session was open in memory
        """
        async with self._lock:
            removed = self._sessions.pop(session_id, None)
            self._session_locks.pop(session_id, None)

        if self._discard_history is not None:
            self._discard_history(session_id)

        if removed is not None:
            logger.info("Session removed", session_id=session_id)
        return removed is not None

    def active_session_ids(self) -> list[str]:
        return list(self._sessions)

    @property
    def count(self) -> int:
        return len(self._sessions)
