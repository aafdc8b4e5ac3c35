"""Application factory and entry point.

Run with:
    uvicorn app:app --reload
or:
    calc-history-server
"""
from __future__ import annotations

import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import (
    ApiProblem,
    BodySizeLimitMiddleware,
    handle_api_problem,
    handle_http_exception,
    handle_validation_error,
    router,
)
from history import HistoryLedger
from service import CalculatorService, HistoryCalculatorService
from settings import APP_NAME, APP_VERSION, Settings, load_settings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    service: CalculatorService | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Accepts an optional service for testing; creates a fresh one sized by
    ``settings.max_history`` if omitted.
    """
    if settings is None:
        settings = load_settings()
    if service is None:
        service = HistoryCalculatorService(HistoryLedger(settings.max_history))

    app = FastAPI(
        title=APP_NAME,
        description=(
            "Four arithmetic operations over HTTP. Every call, successful or "
            "not, is recorded in a bounded in-memory history that can be "
            "listed newest-first or cleared."
        ),
        version=APP_VERSION,
    )
    app.state.service = service
    app.include_router(router)
    app.add_exception_handler(ApiProblem, handle_api_problem)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_middleware(BodySizeLimitMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        client = request.client.host if request.client else "-"
        logger.info(
            "%s %s %s %d (%.1fms)",
            client,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    return app


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting %s on %s:%d", APP_NAME, settings.host, settings.port)
    logger.info("Health check: http://localhost:%d/health", settings.port)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


# Default app instance for `uvicorn app:app`
app = create_app()

if __name__ == "__main__":
    main()
