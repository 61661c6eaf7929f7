"""Deal comment thread API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dealthread.comments.dependencies import handle_comment_error
from dealthread.comments.exceptions import CommentError
from dealthread.comments.mentions import resolver_from_settings
from dealthread.comments.reactions import ReactionService
from dealthread.comments.router import deals_router
from dealthread.comments.router import router as comments_router
from dealthread.comments.service import CommentService
from dealthread.config import get_settings
from dealthread.core.context import get_request_id
from dealthread.core.logging import configure_structlog, get_logger
from dealthread.core.middleware import RequestContextMiddleware
from dealthread.health.router import router as health_router
from dealthread.notifications.router import router as notifications_router
from dealthread.notifications.service import NotificationService
from dealthread.store import HttpRecordStore, InMemoryRecordStore, RecordStore, StoreError


# Logging must be configured before the first logger is bound
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# ==============================================================================
# Services
# ==============================================================================


def build_store() -> RecordStore:
    """Remote store when configured, otherwise an in-process one."""
    settings = get_settings()
    if settings.store_configured:
        return HttpRecordStore.from_settings(settings)
    logger.warning(
        "store_not_configured",
        message="Running with in-memory record store - data is not persisted",
    )
    return InMemoryRecordStore()


def init_services(app: FastAPI, store: RecordStore) -> None:
    """Wire services onto app.state for dependency injection."""
    settings = get_settings()
    state = app.state
    state.store = store
    state.comment_service = CommentService(
        store,
        settings=settings,
        resolver=resolver_from_settings(settings, store),
    )
    state.reaction_service = ReactionService(store, settings=settings)
    state.notification_service = (
        NotificationService(store, settings=settings)
        if settings.notifications_enabled
        else None
    )
    logger.info(
        "services_initialized",
        store=type(store).__name__,
        user_directory=settings.user_directory_table,
        notifications=settings.notifications_enabled,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )
    store = build_store()
    init_services(app, store)
    try:
        yield
    finally:
        logger.info("shutting_down_application")
        await store.close()


# ==============================================================================
# Error responses
# ==============================================================================


def error_response(
    request: Request,
    status_code: int,
    message: str,
    **extra: Any,
) -> JSONResponse:
    """Uniform error body: error flag, message, status and request id."""
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": request_id,
            **extra,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
        )
        return error_response(request, exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        logger.warning("validation_error", errors=errors, path=request.url.path)
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                }
                for err in errors
            ],
        )

    @app.exception_handler(CommentError)
    @app.exception_handler(StoreError)
    async def domain_exception_handler(
        request: Request, exc: CommentError | StoreError
    ) -> JSONResponse:
        # Routes translate these themselves; this covers anything that slips past
        http_error = handle_comment_error(exc)
        logger.warning(
            "domain_exception",
            code=exc.code,
            status_code=http_error.status_code,
            path=request.url.path,
        )
        return error_response(request, http_error.status_code, http_error.detail)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )


# ==============================================================================
# Application
# ==============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    docs_enabled = settings.is_development

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Deal comment threads with replies, @mentions and reactions",
        debug=False,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )

    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_exception_handlers(app)

    for router in (health_router, deals_router, comments_router, notifications_router):
        app.include_router(router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "Deal Thread API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
