"""Utility modules for Clinical Agents.

This package provides utility functions and classes for:
- Configuration management
- Structured logging
- Exception handling
"""

from .config import (
    AppConfig,
    AppSettings,
    EmbeddingConfig,
    Environment,
    LLMConfig,
    LLMProviderType,
    LogFormat,
    LoggingConfig,
    OrchestratorConfig,
    RetrievalConfig,
    get_config,
    init_config,
    reset_config,
)
from .error_handlers import (
    create_error_response,
    register_error_handlers,
)
from .exceptions import (
    APIError,
    BadRequestError,
    ClinicalAgentsError,
    ConfigurationError,
    ExternalServiceError,
    InternalServerError,
    InvalidConfigurationError,
    KnowledgeBaseNotFoundError,
    LLMAPIError,
    MissingConfigurationError,
    NotFoundError,
    ServiceNotReadyError,
)
from .logging import (
    LoggerAdapter,
    clear_correlation_id,
    get_agent_logger,
    get_api_logger,
    get_correlation_id,
    get_logger,
    get_session_logger,
    set_correlation_id,
    setup_logging,
)

__all__ = [
    # Config
    "AppConfig",
    "AppSettings",
    "LLMConfig",
    "EmbeddingConfig",
    "RetrievalConfig",
    "OrchestratorConfig",
    "LoggingConfig",
    "Environment",
    "LLMProviderType",
    "LogFormat",
    "get_config",
    "init_config",
    "reset_config",
    # Logging
    "setup_logging",
    "get_logger",
    "LoggerAdapter",
    "get_agent_logger",
    "get_session_logger",
    "get_api_logger",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    # Exceptions
    "ClinicalAgentsError",
    "ConfigurationError",
    "MissingConfigurationError",
    "InvalidConfigurationError",
    "KnowledgeBaseNotFoundError",
    "APIError",
    "BadRequestError",
    "NotFoundError",
    "ServiceNotReadyError",
    "InternalServerError",
    "ExternalServiceError",
    "LLMAPIError",
    # Error Handlers
    "register_error_handlers",
    "create_error_response",
]
