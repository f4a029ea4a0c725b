import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__, config
from .database import Base, engine
from .errors import AuthError, TaskTrackerError, ValidationError
from .logging_setup import setup_logging
from .ratelimit import FixedWindowRateLimiter, RateLimitMiddleware
from .routes import auth_router, tasks_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # Автоматическая инициализация таблиц
    Base.metadata.create_all(bind=engine)
    logger.info("Task tracker started (database: %s)", engine.url.render_as_string(hide_password=True))
    yield
    await app.state.limiter.close()
    logger.info("Task tracker stopped")


def _format_error(error) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else error.get("msg")


def create_app(limiter: Optional[FixedWindowRateLimiter] = None) -> FastAPI:
    app = FastAPI(title="Task Tracker API", version=__version__, lifespan=lifespan)

    if limiter is None:
        limiter = FixedWindowRateLimiter(
            permit_limit=config.RATE_LIMIT_PERMIT_LIMIT,
            window=config.RATE_LIMIT_WINDOW_SECONDS,
            queue_limit=config.RATE_LIMIT_QUEUE_LIMIT,
        )
    app.state.limiter = limiter
    app.add_middleware(RateLimitMiddleware, limiter=limiter)

    # -----------------------------
    # Перевод доменных ошибок в HTTP-ответы
    # -----------------------------
    @app.exception_handler(TaskTrackerError)
    async def domain_error_handler(request: Request, exc: TaskTrackerError):
        content = {"detail": exc.message}
        headers = None
        if isinstance(exc, ValidationError):
            content["reasons"] = exc.reasons
        if isinstance(exc, AuthError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request.", "reasons": [_format_error(e) for e in exc.errors()]},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error."},
        )

    @app.get("/healthz", tags=["health"])
    def health_check():
        return {"status": "ok"}

    app.include_router(auth_router)
    app.include_router(tasks_router)
    return app


app = create_app()
