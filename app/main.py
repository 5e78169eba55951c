"""FastAPI application factory and lifespan."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError

from app.api.v1 import api_router
from app.core.config import get_settings
from app.core.exceptions import PartialCompositionError, StoreError, WorkoutTrackerError
from app.db.session import engine

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: nothing (schema is managed by Alembic); shutdown: dispose the pool."""
    yield
    await engine.dispose()


async def workout_error_handler(request: Request, exc: WorkoutTrackerError) -> JSONResponse:
    """Map domain errors to JSON responses with their status code."""
    status_code = exc.status_code
    content: dict = {"detail": exc.detail}
    if isinstance(exc, PartialCompositionError):
        content["workout_id"] = str(exc.workout_id) if exc.workout_id else None
    elif isinstance(exc, StoreError) and isinstance(exc.__cause__, IntegrityError):
        status_code = 409
    elif isinstance(exc, StoreError) and isinstance(exc.__cause__, DataError):
        status_code = 422
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status_code, content=content)


def create_application() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    # CORS: allow everything in debug, localhost in dev; in production use CORS_ORIGINS env (comma-separated)
    if settings.debug:
        cors_origins = ["*"]
    elif settings.environment == "development":
        cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8081"]
    else:
        cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(WorkoutTrackerError, workout_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "message": settings.app_name}

    app.include_router(api_router, prefix=settings.api_v1_prefix)
    return app


app = create_application()
