"""Exception hierarchy for the clinical agents system.

Only startup configuration problems and HTTP-layer errors are raised as
exceptions. Everything that goes wrong while an orchestration run is in
flight is reported as a System message in the run's stream instead.

Every class carries the HTTP status it maps to, so the API layer needs a
single handler for the whole hierarchy.
"""

from typing import Any


class ClinicalAgentsError(Exception):
    """Root of the hierarchy.

    Attributes:
        message: Human-readable description
        details: Structured context included in API error bodies
        cause: Underlying exception, if any
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        if self.cause is not None:
            payload["cause"] = str(self.cause)
        return payload


# --- startup configuration -------------------------------------------------


class ConfigurationError(ClinicalAgentsError):
    """The service cannot run with the configuration it was given."""

    status_code = 503


class MissingConfigurationError(ConfigurationError):
    def __init__(self, config_key: str, message: str | None = None):
        self.config_key = config_key
        super().__init__(
            message or f"Missing required configuration: {config_key}",
            details={"config_key": config_key},
        )


class InvalidConfigurationError(ConfigurationError):
    def __init__(self, config_key: str, value: Any, message: str | None = None):
        self.config_key = config_key
        self.value = value
        super().__init__(
            message or f"Invalid configuration value for {config_key}: {value}",
            details={"config_key": config_key, "value": str(value)},
        )


class KnowledgeBaseNotFoundError(ConfigurationError):
    """An acronym dictionary or guidelines document is missing on disk."""

    def __init__(self, path: str, kind: str = "knowledge base"):
        self.path = path
        self.kind = kind
        super().__init__(
            f"{kind.capitalize()} file not found: {path}",
            details={"path": path, "kind": kind},
        )


# --- HTTP layer ------------------------------------------------------------


class APIError(ClinicalAgentsError):
    """Error raised by a route handler with an explicit status."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, details, cause)
        self.status_code = status_code


class BadRequestError(APIError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(APIError):
    """A session or patient the client named does not exist."""

    def __init__(self, resource_type: str, resource_id: str, message: str | None = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message or f"{resource_type} not found: {resource_id}",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ServiceNotReadyError(APIError):
    """Routes were called before startup wired the agent factory and sessions."""

    def __init__(self, component: str):
        self.component = component
        super().__init__(
            "Service not initialized",
            status_code=503,
            details={"component": component},
        )


class InternalServerError(APIError):
    def __init__(
        self,
        message: str = "Internal server error",
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, status_code=500, details=details, cause=cause)


# --- upstream model services -----------------------------------------------


class ExternalServiceError(ClinicalAgentsError):
    """A chat or embedding backend failed."""

    status_code = 502


class LLMAPIError(ExternalServiceError):
    def __init__(
        self,
        message: str,
        provider: str = "openai",
        model: str | None = None,
        cause: Exception | None = None,
    ):
        self.provider = provider
        self.model = model
        details: dict[str, Any] = {"provider": provider}
        if model:
            details["model"] = model
        super().__init__(message, details=details, cause=cause)
