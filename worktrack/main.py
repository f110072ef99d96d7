"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Middleware binds request_id/method/path to the log context,
     then routers are registered.
  4. Exception handlers render WorkTrackError as JSON and normalise
     unexpected errors.

Run with:
    uvicorn worktrack.main:app --reload              # development
    uvicorn worktrack.main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from worktrack.api.routes import auth, signup, team
from worktrack.core.config import settings
from worktrack.core.exceptions import WorkTrackError
from worktrack.core.logging import bind_request_context, configure_logging, get_logger
from worktrack.db.session import create_all_tables, engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging
      - Create tables when CREATE_TABLES_ON_STARTUP is set

    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
    )
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_all_tables()
        logger.info("Tables created")
    yield
    logger.info("Shutting down, disposing DB engine")
    await engine.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant workforce management backend: organization signup, "
            "session resolution and team administration."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request context ───────────────────────────────────────────────────────

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = bind_request_context(
            request.method,
            request.url.path,
            request_id=request.headers.get("X-Request-ID", ""),
        )
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(signup.router)
    app.include_router(auth.router)
    app.include_router(team.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(WorkTrackError)
    async def worktrack_exception_handler(
        request: Request, exc: WorkTrackError
    ) -> JSONResponse:
        logger.warning(
            "Request failed",
            path=request.url.path,
            method=request.method,
            error_code=exc.code,
            error=exc.message,
        )
        headers = (
            {"WWW-Authenticate": "Bearer"}
            if exc.status_code == status.HTTP_401_UNAUTHORIZED
            else None
        )
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=headers
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=WorkTrackError("Internal server error", code="INTERNAL_ERROR").to_dict(),
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
