"""Main FastAPI application"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .config import Settings
from .database import Store
from .docs import router as docs_router
from .errors import (
    ConfigurationError,
    ConnectivityError,
    MoneyManagerError,
    ServiceUnavailableError,
)
from .logging_config import configure_logging
from .routes import StoreDep, income_router, spending_router, users_router
from .schemas import describe_errors

logger = logging.getLogger(__name__)


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message, "code": code})


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    """Build the app. An injected ``store`` is used as-is and left open on shutdown."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_store = app.state.store is None
        if owns_store:
            try:
                app.state.store = await Store.connect(
                    settings.database_url, timeout=settings.store_timeout
                )
            except (ConfigurationError, ConnectivityError) as e:
                logger.critical("Failed to initialize database: %s", e.message)
                raise

        yield

        if owns_store:
            await app.state.store.close()
            app.state.store = None

    app = FastAPI(
        title="Money Manager API",
        description="Users, their spending and their income.",
        version=__version__,
        lifespan=lifespan,
        # documentation is served from the static openapi.yaml
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.store = store
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MoneyManagerError)
    async def handle_app_error(request: Request, exc: MoneyManagerError):
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s", request.method, request.url.path, exc.message,
                exc_info=exc.__cause__,
            )
        else:
            logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        message = describe_errors(exc.errors())
        logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
        return error_response(400, "validation_error", message)

    @app.exception_handler(SQLAlchemyError)
    async def handle_store_error(request: Request, exc: SQLAlchemyError):
        logger.error("Store error on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(500, "internal_error", "Internal server error")

    @app.get("/", include_in_schema=False)
    async def read_root():
        return {"message": "Money Manager backend is running"}

    @app.get("/health")
    async def health(store: StoreDep):
        try:
            await store.ping()
        except (SQLAlchemyError, OSError) as e:
            raise ServiceUnavailableError("Database is not reachable") from e
        return {"status": "ok"}

    app.include_router(users_router)
    app.include_router(spending_router)
    app.include_router(income_router)
    app.include_router(docs_router)
    return app


def run() -> None:
    """Console entry point: validate configuration, then serve with uvicorn."""
    import uvicorn

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        configure_logging()
        logger.critical(e.message)
        raise SystemExit(1)

    log_config = configure_logging(settings.log_level)
    if not settings.database_url:
        logger.critical("DATABASE_URL environment variable is not set")
        raise SystemExit(1)

    logger.info("Server starting on %s:%s", settings.host, settings.port)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=log_config,
    )


if __name__ == "__main__":
    run()
