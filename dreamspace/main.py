"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn dreamspace.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.dependencies import close_document_store
from .api.envelope import STATUS_BY_KIND
from .api.routes import connects, dreams, health, scoring, teams, users, weeks
from .config.settings import get_settings
from .core.errors import ErrorKind
from .core.results import ActionResult

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)

_KIND_BY_STATUS = {code: kind for kind, code in STATUS_BY_KIND.items() if kind != ErrorKind.PARTIAL_CONSISTENCY}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Validates configuration on startup and closes the document store
    client on shutdown.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "DreamSpace API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {"document_store": settings.document_store_mock_mode},
        }
    )

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    # Shutdown
    await close_document_store()
    logger.info("DreamSpace API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Goal tracking and team coaching.

        ## Authentication

        Every endpoint except `/health` requires an API key in the
        `X-API-Key` header and the signed-in user's id in `X-User-Id`.

        ## Responses

        Bodies are always an envelope:

        - success: `{"failed": false, "data": ...}`
        - failure: `{"failed": true, "errors": {"message": [...], "code": "..."}}`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix="/health", tags=["Health"])
    app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
    app.include_router(teams.router, prefix="/api/v1/teams", tags=["Teams"])
    app.include_router(weeks.router, prefix="/api/v1/weeks", tags=["Weeks"])
    app.include_router(dreams.router, prefix="/api/v1/dreams", tags=["Dreams"])
    app.include_router(connects.router, prefix="/api/v1/connects", tags=["Connects"])
    app.include_router(scoring.router, prefix="/api/v1/scoring", tags=["Scoring"])

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "DreamSpace API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render auth and routing errors as failure envelopes."""
        kind = _KIND_BY_STATUS.get(exc.status_code, ErrorKind.UNKNOWN)
        result = ActionResult.failure(str(exc.detail), kind)
        return JSONResponse(
            status_code=exc.status_code,
            content=result.to_dict(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        messages = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        logger.warning(
            "Request validation failed",
            extra={"path": request.url.path, "errors": messages},
        )
        result = ActionResult.failure(messages, ErrorKind.VALIDATION)
        return JSONResponse(
            status_code=STATUS_BY_KIND[ErrorKind.VALIDATION],
            content=jsonable_encoder(result.to_dict()),
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        result = ActionResult.failure(
            "Internal server error. Please contact support if this persists.",
            ErrorKind.UNKNOWN,
        )
        return JSONResponse(status_code=500, content=result.to_dict())

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "dreamspace.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
