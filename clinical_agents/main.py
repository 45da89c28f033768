"""FastAPI application for the clinical agents service.

``create_app`` loads configuration and wires middleware and routes. The
expensive work (embedding the acronym dictionary and the guidelines) runs in
the lifespan, so the app object can be created without any model backend.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clinical_agents.agents.factory import AgentFactory
from clinical_agents.api.routes import api_router, clear_dependencies, init_dependencies
from clinical_agents.core.sessions import SessionManager
from clinical_agents.llm import BaseLLMProvider
from clinical_agents.records import InMemoryPatientStore
from clinical_agents.retrieval import (
    EmbeddingService,
    GuidelinesIndex,
    MedicalTermIndex,
    OpenAIEmbeddingService,
)
from clinical_agents.utils.config import AppConfig, Environment, LogFormat, get_config, init_config
from clinical_agents.utils.error_handlers import register_error_handlers
from clinical_agents.utils.logging import (
    clear_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def get_project_root() -> Path:
    return Path(__file__).parent.parent


def get_config_path() -> Path:
    return get_project_root() / "configs" / "app.yaml"


def resolve_data_path(path: str | Path) -> Path:
    """Absolute paths and paths that exist from the working directory win;
    anything else is taken relative to the project root."""
    candidate = Path(path)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    return get_project_root() / candidate


async def build_retrieval(
    config: AppConfig, embedder: EmbeddingService
) -> tuple[MedicalTermIndex, GuidelinesIndex | None]:
    """Embed the acronym dictionary and, when configured, the guidelines.

    Raises:
        KnowledgeBaseNotFoundError: A configured knowledge file is missing.
    """
    settings = config.retrieval

    term_index = MedicalTermIndex(
        embedder,
        confirmed_threshold=settings.confirmed_threshold,
        uncertain_threshold=settings.uncertain_threshold,
    )
    await term_index.initialize(resolve_data_path(settings.acronyms_path))

    if not settings.guidelines_path:
        logger.info("guidelines_disabled", reason="no guidelines_path configured")
        return term_index, None

    guidelines_index = GuidelinesIndex(
        embedder,
        relevance_threshold=settings.relevance_threshold,
        top_k=settings.top_k,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        min_chunk_words=settings.min_chunk_words,
    )
    await guidelines_index.initialize(resolve_data_path(settings.guidelines_path))
    return term_index, guidelines_index


def default_embedder(config: AppConfig) -> EmbeddingService:
    settings = config.embedding
    return OpenAIEmbeddingService(
        model=settings.model,
        api_key=settings.api_key,
        base_url=settings.base_url,
        batch_size=settings.batch_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: AppConfig = app.state.config
    logger.info("service_starting", name=config.app.name, version=config.app.version, env=config.app.env.value)

    term_index, guidelines_index = await build_retrieval(
        config, app.state.embedder or default_embedder(config)
    )

    store = InMemoryPatientStore()
    provider: BaseLLMProvider | None = app.state.provider
    if provider is not None:
        factory = AgentFactory(config, provider, term_index, guidelines_index, store)
    else:
        factory = AgentFactory.from_config(config, term_index, guidelines_index, store)

    sessions = SessionManager(factory.create_orchestrator, factory.delete_history)
    init_dependencies(sessions, factory, term_index, guidelines_index)
    app.state.term_index = term_index
    app.state.guidelines_index = guidelines_index
    app.state.agent_factory = factory
    app.state.session_manager = sessions

    logger.info(
        "service_ready",
        acronyms=term_index.indexed_entry_count,
        guideline_chunks=guidelines_index.indexed_chunk_count if guidelines_index else 0,
        advisor=factory.has_advisor,
    )

    yield

    logger.info("service_stopping", open_sessions=sessions.count)
    clear_dependencies()
    app.state.session_manager = None
    app.state.agent_factory = None


def create_app(
    config_path: str | Path | None = None,
    env_file: str | Path | None = None,
    embedder: EmbeddingService | None = None,
    provider: BaseLLMProvider | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        config_path: YAML config; ``configs/app.yaml`` when it exists.
        env_file: Optional .env file loaded before reading the environment.
        embedder: Embedding backend override, mainly for tests.
        provider: Chat backend override, mainly for tests.
    """
    if config_path is None and get_config_path().exists():
        config_path = get_config_path()
    config = init_config(yaml_path=config_path, env_file=env_file)

    setup_logging(
        level=config.logging.level,
        json_format=config.logging.format == LogFormat.JSON,
    )

    debug = config.app.debug
    app = FastAPI(
        title=config.app.name,
        description="Coordinated multi-agent clinical documentation with semantic retrieval",
        version=config.app.version,
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        openapi_url="/openapi.json" if debug else None,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.embedder = embedder
    app.state.provider = provider
    app.state.session_manager = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.app.env == Environment.DEVELOPMENT else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id
        set_correlation_id(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            # Streaming responses are still open here; duration covers headers only
            logger.info(
                "request_handled",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_correlation_id()

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, Any]:
        return {
            "name": config.app.name,
            "version": config.app.version,
            "status": "running",
            "docs": "/docs" if debug else "disabled",
        }

    @app.get("/ready", tags=["Health"])
    async def readiness() -> JSONResponse:
        """Ready once the indices are embedded and sessions can be served."""
        if app.state.session_manager is None:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "message": "Service not initialized"},
            )
        return JSONResponse(content={"status": "ready"})

    @app.get("/live", tags=["Health"])
    async def liveness() -> JSONResponse:
        return JSONResponse(content={"status": "alive"})

    return app


app = create_app()


def run_server(reload: bool = False) -> None:
    """Serve ``app`` with uvicorn on the configured host and port.

    Sessions live in process memory, so there is always one worker.
    """
    import uvicorn

    config = get_config()
    uvicorn.run(
        "clinical_agents.main:app",
        host=config.app.host,
        port=config.app.port,
        reload=reload,
        reload_dirs=["clinical_agents"] if reload else None,
        workers=1,
        log_level="info" if reload else "warning",
        access_log=reload,
    )


def run_prod_server() -> None:
    run_server(reload=False)


if __name__ == "__main__":
    run_server(reload=True)
