"""API schemas.

Request/response models for the FastAPI endpoints and the SSE event
payloads streamed by the chat endpoints.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from clinical_agents.models import AgentMessage, PatientRecord

DOCUMENT_PREFIX = "DOCUMENT: Process these clinical notes: "

# =============================================================================
# Common Schemas
# =============================================================================


class APIResponse(BaseModel):
    """Standard JSON response envelope."""

    success: bool = Field(..., description="Whether the request succeeded")
    data: Any = Field(default=None, description="Response payload")
    error: str | None = Field(default=None, description="Error message")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Extra metadata")


# =============================================================================
# Chat Schemas
# =============================================================================


class ChatRequest(BaseModel):
    """Free-form message for the coordinator."""

    message: str = Field(..., description="User message")
    session_id: str | None = Field(
        default=None, description="Existing session; a new one is created when omitted"
    )

    model_config = {
        "json_schema_extra": {
            "example": {"message": "List the patients admitted today", "session_id": None}
        }
    }


class DocumentRequest(BaseModel):
    """Clinical notes for the full extractor to secretary pipeline."""

    notes: str = Field(..., description="Clinical notes to document")
    session_id: str | None = Field(default=None, description="Existing session")

    def to_prompt(self) -> str:
        return f"{DOCUMENT_PREFIX}{self.notes}"


class QueryRequest(BaseModel):
    """Read-only record lookup."""

    patient_name: str = Field(..., description="Patient's full name")
    session_id: str | None = Field(default=None, description="Existing session")


# =============================================================================
# SSE Event Schemas
# =============================================================================


class SessionEvent(BaseModel):
    """First event of every stream."""

    type: Literal["session"] = "session"
    session_id: str


class MessageEvent(BaseModel):
    """One AgentMessage."""

    type: Literal["message"] = "message"
    author: str
    text: str
    is_streaming: bool
    is_complete: bool

    @classmethod
    def from_message(cls, message: AgentMessage) -> "MessageEvent":
        return cls(
            author=message.author,
            text=message.text,
            is_streaming=message.is_streaming,
            is_complete=message.is_complete,
        )


class DoneEvent(BaseModel):
    """Last event of every stream."""

    type: Literal["done"] = "done"


# =============================================================================
# Patient / Session Schemas
# =============================================================================


class PatientResponse(BaseModel):
    """Patient record as returned by the API."""

    full_name: str
    room: str | None = None
    age: int | None = None
    medical_history: list[str] = Field(default_factory=list)
    current_diagnosis: str | None = None
    evolution: str | None = None
    plan: list[str] = Field(default_factory=list)
    observations: str | None = None
    summary: str = Field(default="", description="One-line overview")

    @classmethod
    def from_record(cls, record: PatientRecord) -> "PatientResponse":
        return cls(
            full_name=record.full_name,
            room=record.room,
            age=record.age,
            medical_history=list(record.medical_history),
            current_diagnosis=record.current_diagnosis,
            evolution=record.evolution.label if record.evolution else None,
            plan=list(record.plan),
            observations=record.observations,
            summary=record.to_summary(),
        )


class SessionListResponse(BaseModel):
    """Active sessions."""

    count: int
    session_ids: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Service health."""

    status: str
    acronyms_indexed: int = 0
    guideline_chunks_indexed: int = 0
    active_sessions: int = 0
    patients: int = 0
