"""API module.

Provides FastAPI routers, schemas, and dependencies.
"""

from .routes import (
    api_router,
    chat_router,
    clear_dependencies,
    health_router,
    init_dependencies,
    patient_router,
    session_router,
)
from .schemas import (
    DOCUMENT_PREFIX,
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

__all__ = [
    # Routers
    "api_router",
    "chat_router",
    "patient_router",
    "session_router",
    "health_router",
    # Functions
    "init_dependencies",
    "clear_dependencies",
    # Schemas - Common
    "APIResponse",
    # Schemas - Requests
    "ChatRequest",
    "DocumentRequest",
    "QueryRequest",
    "DOCUMENT_PREFIX",
    # Schemas - Events
    "SessionEvent",
    "MessageEvent",
    "DoneEvent",
    # Schemas - Responses
    "PatientResponse",
    "SessionListResponse",
    "HealthResponse",
]
