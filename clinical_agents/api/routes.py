"""API routes.

Chat endpoints stream Server-Sent Events: one ``session`` event, one
``message`` event per AgentMessage, then ``done``. Patient and session
endpoints return the standard JSON envelope.
"""

from contextlib import aclosing
from typing import AsyncGenerator, AsyncIterator, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from clinical_agents.agents.factory import AgentFactory
from clinical_agents.core.orchestrator import CoordinatedOrchestrator
from clinical_agents.core.sessions import SessionManager
from clinical_agents.models import AgentMessage
from clinical_agents.records import PatientRecordTools, PatientStore
from clinical_agents.retrieval import GuidelinesIndex, MedicalTermIndex
from clinical_agents.utils.exceptions import BadRequestError, NotFoundError, ServiceNotReadyError
from clinical_agents.utils.logging import get_api_logger

from .schemas import (
    APIResponse,
    ChatRequest,
    DocumentRequest,
    DoneEvent,
    HealthResponse,
    MessageEvent,
    PatientResponse,
    QueryRequest,
    SessionEvent,
    SessionListResponse,
)

logger = get_api_logger()

# Global dependencies, set by the application lifespan
_session_manager: SessionManager | None = None
_agent_factory: AgentFactory | None = None
_term_index: MedicalTermIndex | None = None
_guidelines_index: GuidelinesIndex | None = None


def init_dependencies(
    session_manager: SessionManager,
    agent_factory: AgentFactory,
    term_index: MedicalTermIndex | None = None,
    guidelines_index: GuidelinesIndex | None = None,
) -> None:
    """Wire the shared services used by the routes."""
    global _session_manager, _agent_factory, _term_index, _guidelines_index
    _session_manager = session_manager
    _agent_factory = agent_factory
    _term_index = term_index
    _guidelines_index = guidelines_index


def clear_dependencies() -> None:
    global _session_manager, _agent_factory, _term_index, _guidelines_index
    _session_manager = None
    _agent_factory = None
    _term_index = None
    _guidelines_index = None


def get_session_manager() -> SessionManager:
    if _session_manager is None:
        raise ServiceNotReadyError("sessions")
    return _session_manager


def get_agent_factory() -> AgentFactory:
    if _agent_factory is None:
        raise ServiceNotReadyError("agents")
    return _agent_factory


def get_patient_store(factory: AgentFactory = Depends(get_agent_factory)) -> PatientStore:
    return factory.store


# =============================================================================
# SSE helpers
# =============================================================================


def _sse(event: BaseModel) -> str:
    return f"data: {event.model_dump_json()}\n\n"


def _stream_run(
    session_id: str,
    orchestrator: CoordinatedOrchestrator,
    run: Callable[[], AsyncGenerator[AgentMessage, None]],
) -> StreamingResponse:
    """Stream one orchestrator run under the session's lock."""
    manager = get_session_manager()
    factory = get_agent_factory()
    lock = manager.lock_for(session_id)

    async def event_generator() -> AsyncIterator[str]:
        yield _sse(SessionEvent(session_id=session_id))
        async with lock:
            async with aclosing(run()) as messages:
                async for message in messages:
                    yield _sse(MessageEvent.from_message(message))
            factory.save_history(session_id, orchestrator)
        yield _sse(DoneEvent())
        logger.info("Stream complete", session_id=session_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


# =============================================================================
# Chat Router
# =============================================================================

chat_router = APIRouter(tags=["Chat"])


@chat_router.post("/chat")
async def chat(
    request: ChatRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> StreamingResponse:
    """Free-form message; the coordinator routes it to the specialists."""
    if not request.message or not request.message.strip():
        raise BadRequestError("Message is required")

    session_id, orchestrator = await manager.get_or_create(request.session_id)
    logger.info("Chat request", session_id=session_id)
    return _stream_run(session_id, orchestrator, lambda: orchestrator.run(request.message))


# =============================================================================
# Patient Router
# =============================================================================

patient_router = APIRouter(prefix="/patients", tags=["Patients"])


@patient_router.post("/document")
async def document_patient(
    request: DocumentRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> StreamingResponse:
    """Run clinical notes through extraction, standardization and persistence."""
    if not request.notes or not request.notes.strip():
        raise BadRequestError("Notes are required")

    session_id, orchestrator = await manager.get_or_create(request.session_id)
    logger.info("Document request", session_id=session_id)
    prompt = request.to_prompt()
    return _stream_run(session_id, orchestrator, lambda: orchestrator.run(prompt))


@patient_router.post("/query")
async def query_patient(
    request: QueryRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> StreamingResponse:
    """Read-only record lookup that skips the coordinator."""
    if not request.patient_name or not request.patient_name.strip():
        raise BadRequestError("Patient name is required")

    session_id, orchestrator = await manager.get_or_create(request.session_id)
    logger.info("Query request", session_id=session_id)
    return _stream_run(
        session_id,
        orchestrator,
        lambda: orchestrator.run_direct_query(request.patient_name),
    )


@patient_router.get("", response_model=APIResponse)
async def list_patients(store: PatientStore = Depends(get_patient_store)) -> APIResponse:
    """All stored patients, plus the text registry the secretary sees."""
    records = store.list_all()
    return APIResponse(
        success=True,
        data=[PatientResponse.from_record(r).model_dump(mode="json") for r in records],
        metadata={
            "count": len(records),
            "registry": PatientRecordTools(store).list_patients(),
        },
    )


@patient_router.get("/{name}", response_model=APIResponse)
async def get_patient(
    name: str, store: PatientStore = Depends(get_patient_store)
) -> APIResponse:
    """One patient's complete record."""
    record = store.get(name)
    if record is None:
        raise NotFoundError("Patient", name, message=f"No patient found with name '{name}'")
    return APIResponse(success=True, data=PatientResponse.from_record(record).model_dump(mode="json"))


# =============================================================================
# Session Router
# =============================================================================

session_router = APIRouter(prefix="/sessions", tags=["Sessions"])


@session_router.get("", response_model=APIResponse)
async def list_sessions(
    manager: SessionManager = Depends(get_session_manager),
) -> APIResponse:
    """Active session ids."""
    data = SessionListResponse(count=manager.count, session_ids=manager.active_session_ids())
    return APIResponse(success=True, data=data.model_dump())


@session_router.delete("/{session_id}", response_model=APIResponse)
async def delete_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> APIResponse:
    """Remove a session and its conversation history."""
    if not await manager.remove(session_id):
        raise NotFoundError("Session", session_id, message=f"Session '{session_id}' not found.")
    return APIResponse(success=True, data={"message": f"Session '{session_id}' removed."})


@session_router.post("/{session_id}/reset", response_model=APIResponse)
async def reset_session(
    session_id: str, manager: SessionManager = Depends(get_session_manager)
) -> APIResponse:
    """Clear a session's history but keep the session."""
    await manager.reset(session_id)
    return APIResponse(success=True, data={"message": f"Session '{session_id}' reset."})


# =============================================================================
# Health Router
# =============================================================================

health_router = APIRouter(tags=["Health"])


@health_router.get("/health", response_model=APIResponse)
async def health(
    manager: SessionManager = Depends(get_session_manager),
    store: PatientStore = Depends(get_patient_store),
) -> APIResponse:
    """Index sizes and session counts."""
    data = HealthResponse(
        status="healthy",
        acronyms_indexed=_term_index.indexed_entry_count if _term_index else 0,
        guideline_chunks_indexed=(
            _guidelines_index.indexed_chunk_count if _guidelines_index else 0
        ),
        active_sessions=manager.count,
        patients=len(store.list_all()),
    )
    return APIResponse(success=True, data=data.model_dump())


# Main API router
api_router = APIRouter(prefix="/api")
api_router.include_router(chat_router)
api_router.include_router(patient_router)
api_router.include_router(session_router)
api_router.include_router(health_router)
