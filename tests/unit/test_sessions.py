"""Unit tests for the session registry."""

import asyncio
import re

import pytest

from clinical_agents.core import CoordinatedOrchestrator, SessionManager, new_session_id
from clinical_agents.utils.exceptions import NotFoundError
from tests.conftest import ScriptedAgent


def make_orchestrator(session_id: str) -> CoordinatedOrchestrator:
    return CoordinatedOrchestrator(
        coordinator=ScriptedAgent("Coordinator", "MedicalSecretary"),
        specialists={"MedicalSecretary": ScriptedAgent("MedicalSecretary", "Task complete.")},
    )


class TestNewSessionId:
    """Tests for session id generation."""

    def test_format(self):
        assert re.fullmatch(r"[0-9a-f]{8}", new_session_id())

    def test_unique(self):
        assert len({new_session_id() for _ in range(100)}) == 100


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.fixture
    def created(self):
        return []

    @pytest.fixture
    def manager(self, created):
        def factory(session_id: str) -> CoordinatedOrchestrator:
            created.append(session_id)
            return make_orchestrator(session_id)

        return SessionManager(factory)

    async def test_create_without_id(self, manager, created):
        session_id, orchestrator = await manager.get_or_create()

        assert len(session_id) == 8
        assert created == [session_id]
        assert manager.count == 1
        assert isinstance(orchestrator, CoordinatedOrchestrator)

    async def test_blank_id_creates_new_session(self, manager):
        first, _ = await manager.get_or_create("  ")
        second, _ = await manager.get_or_create("")

        assert first != second
        assert first.strip() and second.strip()
        assert manager.count == 2

    async def test_existing_id_returns_same_orchestrator(self, manager, created):
        session_id, orchestrator = await manager.get_or_create()
        again_id, again = await manager.get_or_create(session_id)

        assert again_id == session_id
        assert again is orchestrator
        assert created == [session_id]

    async def test_unknown_id_is_adopted(self, manager):
        session_id, _ = await manager.get_or_create("ward-7")

        assert session_id == "ward-7"
        assert manager.active_session_ids() == ["ward-7"]

    async def test_get_unknown_raises(self, manager):
        with pytest.raises(NotFoundError):
            await manager.get("missing")

        with pytest.raises(NotFoundError):
            manager.lock_for("missing")

    async def test_sessions_are_independent(self, manager):
        first_id, first = await manager.get_or_create()
        second_id, second = await manager.get_or_create()

        assert first is not second
        assert manager.lock_for(first_id) is not manager.lock_for(second_id)

    async def test_reset_clears_thread_but_keeps_session(self, manager):
        session_id, orchestrator = await manager.get_or_create()
        async for _ in orchestrator.run("hello"):
            pass
        assert orchestrator.thread is not None

        await manager.reset(session_id)

        assert orchestrator.thread is None
        assert await manager.get(session_id) is orchestrator

    async def test_reset_unknown_raises(self, manager):
        with pytest.raises(NotFoundError):
            await manager.reset("missing")

    async def test_remove(self, manager):
        session_id, _ = await manager.get_or_create()

        assert await manager.remove(session_id) is True
        assert await manager.remove(session_id) is False
        assert manager.count == 0
        with pytest.raises(NotFoundError):
            manager.lock_for(session_id)

    async def test_remove_discards_saved_history(self):
        discarded = []
        manager = SessionManager(make_orchestrator, discarded.append)
        session_id, _ = await manager.get_or_create()

        assert await manager.remove(session_id) is True
        # A session restored only from disk is still cleaned up
        assert await manager.remove("not-loaded") is False

        assert discarded == [session_id, "not-loaded"]

    async def test_reset_discards_saved_history(self):
        discarded = []
        manager = SessionManager(make_orchestrator, discarded.append)
        session_id, _ = await manager.get_or_create()

        await manager.reset(session_id)

        assert discarded == [session_id]
        assert manager.count == 1

    async def test_concurrent_creation_with_same_id(self, manager, created):
        results = await asyncio.gather(
            *(manager.get_or_create("shared") for _ in range(5))
        )

        assert {session_id for session_id, _ in results} == {"shared"}
        assert len({id(orchestrator) for _, orchestrator in results}) == 1
        assert created == ["shared"]
