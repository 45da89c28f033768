"""Agents package.

Specialist protocol, the LLM-backed ChatAgent, prompts and the per-session
agent factory.
"""

from clinical_agents.agents.base import AgentError, ChatAgent, Specialist, ToolNotFoundError
from clinical_agents.agents.factory import AgentFactory
from clinical_agents.agents.instructions import (
    ADMISSION_PHRASES,
    ADVISOR_NAME,
    COORDINATOR_NAME,
    EXTRACTOR_NAME,
    OUTPUT_FIELDS,
    SECRETARY_NAME,
)

__all__ = [
    # Base
    "Specialist",
    "ChatAgent",
    "AgentError",
    "ToolNotFoundError",
    # Factory
    "AgentFactory",
    # Instructions
    "COORDINATOR_NAME",
    "EXTRACTOR_NAME",
    "ADVISOR_NAME",
    "SECRETARY_NAME",
    "ADMISSION_PHRASES",
    "OUTPUT_FIELDS",
]
