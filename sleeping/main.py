"""
Sleeping Backend: FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers, routers and
       the process-wide realtime relay; uvicorn serves `sleeping.main:app`.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Rate Limit → Request ID → Access Log       │
    │                                                          │
    │  Routes:                                                 │
    │   /auth  /users  /posts  /shop  /events  /media  /health │
    │   WS /ws  ──▶  ChatRelay(RoomRegistry)                   │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400  Auth→401  Permission→403  NotFound→404 │
    │   BusinessRule→400/409  MediaUpload→502  Database→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, storage directory
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from sleeping import __version__
from sleeping.config import settings
from sleeping.database import dispose_engine
from sleeping.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    DatabaseError,
    MediaUploadError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
    SleepingError,
    ValidationError,
)
from sleeping.middleware.logging import RequestLoggingMiddleware
from sleeping.middleware.rate_limit import RateLimitMiddleware
from sleeping.middleware.request_id import RequestIDMiddleware, request_id_var
from sleeping.routes import auth, chat, events, health, media, posts, shop, users
from sleeping.services.chat_relay import ChatRelay
from sleeping.services.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, before anything else logs.

    Format: 2024-01-15T12:00:00 [INFO] sleeping.services.ledger_service: Purchase committed ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Sleeping Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health reports the problem and requests fail loudly
        logger.error("Configuration error: %s", e)

    if settings.media_backend == "local":
        storage = Path(settings.storage_root)
        storage.mkdir(parents=True, exist_ok=True)
        logger.info("Local media directory: %s", storage.resolve())

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Sleeping Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the application exception hierarchy onto HTTP responses.

    Every error body has the same shape:
        {"error": <code>, "message": <text>, "details": {...}?, "request_id": <id>}

    Internal details (SQL, stack traces, upstream responses) are logged,
    never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=400, content=error_body("validation_error", exc.message, exc.context))

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.context)
        return JSONResponse(status_code=403, content=error_body("forbidden", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=error_body(exc.code, exc.message))

    @app.exception_handler(BusinessRuleError)
    async def handle_business_rule(request: Request, exc: BusinessRuleError):
        logger.info("[%s] Business rule rejected request: %s", request_id_var.get(""), exc.code)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message, exc.context),
        )

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=error_body("rate_limit_exceeded", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(MediaUploadError)
    async def handle_media_upload_error(request: Request, exc: MediaUploadError):
        logger.error("[%s] Media upload error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=502, content=error_body("media_upload_failed", exc.message))

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(SleepingError)
    async def handle_application_error(request: Request, exc: SleepingError):
        logger.error("[%s] Unhandled application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(status_code=500, content=error_body("server_error", exc.message))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Sleeping API",
        description=(
            "Backend for the Sleeping social app: accounts, a crystal-currency shop, "
            "a short-video feed, hashtag events and realtime chat rooms."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # One relay per process; its registry holds the in-memory presence state
    app.state.chat_relay = ChatRelay(registry=RoomRegistry())

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(shop.router)
    app.include_router(events.router)
    app.include_router(media.router)
    app.include_router(chat.router)

    return app


# uvicorn sleeping.main:app
app = create_app()
