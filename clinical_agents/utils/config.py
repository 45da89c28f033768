"""Application configuration management.

Configuration is loaded from a YAML file (``configs/app.yaml``) and then
overridden by environment variables, optionally read from a ``.env`` file.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogFormat(str, Enum):
    """Log output format types."""

    JSON = "json"
    CONSOLE = "console"


class LLMProviderType(str, Enum):
    """Chat completion backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class AppSettings(BaseModel):
    """Application settings."""

    env: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")
    name: str = Field(default="Clinical Agents", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v


class LLMConfig(BaseModel):
    """Chat model configuration shared by every agent."""

    provider: LLMProviderType = Field(
        default=LLMProviderType.OPENAI, description="Chat completion backend"
    )
    model: str = Field(default="qwen2.5-7b-instruct", description="Model name")
    base_url: str | None = Field(
        default="http://localhost:1234/v1",
        description="OpenAI-compatible endpoint (LM Studio by default)",
    )
    api_key: str = Field(default="lm-studio", description="API key")
    max_tokens: int = Field(default=2048, description="Max tokens per completion")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_tool_rounds: int = Field(
        default=8, description="Max tool-call round trips per agent turn"
    )

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @field_validator("max_tokens", "max_tool_rounds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class EmbeddingConfig(BaseModel):
    """Embedding endpoint configuration."""

    model: str = Field(
        default="text-embedding-nomic-embed-text-v1.5", description="Embedding model"
    )
    base_url: str | None = Field(
        default="http://localhost:1234/v1", description="OpenAI-compatible endpoint"
    )
    api_key: str = Field(default="lm-studio", description="API key")
    batch_size: int = Field(default=32, description="Texts per embedding request")

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("batch_size must be positive")
        return v


class RetrievalConfig(BaseModel):
    """Knowledge files and retrieval thresholds."""

    acronyms_path: str = Field(
        default="data/acronyms.txt", description="Medical acronym knowledge file"
    )
    guidelines_path: str | None = Field(
        default="data/clinical-guidelines.md",
        description="Clinical guidelines document; None disables the advisor",
    )
    confirmed_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    uncertain_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    relevance_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    chunk_size: int = Field(default=80, gt=0, description="Words per chunk")
    chunk_overlap: int = Field(default=20, ge=0, description="Words shared by chunks")
    min_chunk_words: int = Field(default=10, gt=0, description="Smallest kept chunk")
    top_k: int = Field(default=3, gt=0, description="Passages returned per query")

    @model_validator(mode="after")
    def validate_ranges(self) -> "RetrievalConfig":
        if self.uncertain_threshold > self.confirmed_threshold:
            raise ValueError("uncertain_threshold must not exceed confirmed_threshold")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self


class OrchestratorConfig(BaseModel):
    """Coordinated orchestrator settings."""

    max_turns: int = Field(default=20, gt=0, description="Turn budget per run")
    discussion_mode: bool = Field(
        default=False, description="Round-robin discussion after specialists"
    )
    max_history_messages: int = Field(
        default=50, gt=0, description="Messages kept when loading history"
    )
    history_dir: str | None = Field(
        default=None, description="Directory of per-session history files; None disables"
    )
    reports_dir: str = Field(default="reports", description="Report output directory")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: LogFormat = Field(default=LogFormat.JSON, description="Log format")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


def _optional_path(value: str) -> str | None:
    """Map "none" or "off" to None so an optional file can be disabled."""
    return None if value.strip().lower() in ("none", "off") else value


# Environment variable -> (section, field, converter)
_ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "APP_ENV": ("app", "env", str),
    "APP_DEBUG": ("app", "debug", lambda v: v.lower() == "true"),
    "APP_HOST": ("app", "host", str),
    "APP_PORT": ("app", "port", int),
    "LLM_PROVIDER": ("llm", "provider", str),
    "LLM_MODEL": ("llm", "model", str),
    "LLM_BASE_URL": ("llm", "base_url", str),
    "LLM_API_KEY": ("llm", "api_key", str),
    "LLM_MAX_TOKENS": ("llm", "max_tokens", int),
    "LLM_TEMPERATURE": ("llm", "temperature", float),
    "EMBEDDING_MODEL": ("embedding", "model", str),
    "EMBEDDING_BASE_URL": ("embedding", "base_url", str),
    "EMBEDDING_API_KEY": ("embedding", "api_key", str),
    "ACRONYMS_PATH": ("retrieval", "acronyms_path", str),
    "GUIDELINES_PATH": ("retrieval", "guidelines_path", _optional_path),
    "MAX_TURNS": ("orchestrator", "max_turns", int),
    "DISCUSSION_MODE": ("orchestrator", "discussion_mode", lambda v: v.lower() == "true"),
    "HISTORY_DIR": ("orchestrator", "history_dir", _optional_path),
    "REPORTS_DIR": ("orchestrator", "reports_dir", str),
    "LOG_LEVEL": ("logging", "level", str),
    "LOG_FORMAT": ("logging", "format", str),
}


def _load_env_file(env_file: str | Path | None) -> None:
    # load_dotenv never overrides variables already set in the process
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()


class AppConfig(BaseModel):
    """Complete service configuration.

    Precedence, lowest first: model defaults, the YAML file, then environment
    variables (see ``_ENV_OVERRIDES``). Unknown YAML sections are ignored.
    """

    app: AppSettings = Field(default_factory=AppSettings)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_sections(cls, data: dict[str, Any]) -> "AppConfig":
        return cls.model_validate({k: v for k, v in data.items() if k in cls.model_fields})

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "AppConfig":
        """Parse a YAML file whose top-level keys are config sections.

        Raises:
            FileNotFoundError: The file does not exist.
            ValueError: The document is not a mapping.
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping of config sections")
        return cls.from_sections(data)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "AppConfig":
        return cls.load(env_file=env_file)

    @classmethod
    def load(
        cls,
        yaml_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> "AppConfig":
        base = cls.from_yaml(yaml_path) if yaml_path else cls()
        _load_env_file(env_file)
        return base.with_env_overrides()

    def with_env_overrides(self) -> "AppConfig":
        data = self.model_dump(mode="json")
        for env_name, (section, field, convert) in _ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw:
                data[section][field] = convert(raw)
        return self.from_sections(data)


_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Process-wide configuration set by ``init_config``.

    Raises:
        RuntimeError: ``init_config`` has not run.
    """
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call init_config() first.")
    return _config


def init_config(
    yaml_path: str | Path | None = None,
    env_file: str | Path | None = None,
) -> AppConfig:
    global _config
    _config = AppConfig.load(yaml_path=yaml_path, env_file=env_file)
    return _config


def reset_config() -> None:
    global _config
    _config = None
