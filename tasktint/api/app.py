"""FastAPI server for the tasktint coloring core"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tasktint.api.routes.colors import router as colors_router
from tasktint.api.routes.health import router as health_router
from tasktint.coloring.service import ColoringService
from tasktint.config import API_ALLOWED_ORIGINS, API_HOST, API_PORT, APP_VERSION
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter, log_event
from tasktint.storage.sqlite_store import SQLiteStore

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Custom validation error handler that prevents leaking internal validation logic.

    Side Effects:
        - Logs detailed validation errors for debugging
        - Increments validation error counter for monitoring
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    # Only expose field names, not validation logic
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def create_app(service: ColoringService | None = None) -> FastAPI:
    """
    Build the API around a coloring service.

    Without an explicit service, one backed by the SQLite store is created at
    startup. The service is started on startup and torn down on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        current = service if service is not None else ColoringService(SQLiteStore(), context="api")
        app.state.service = current
        current.start()
        log_event("api.startup", version=APP_VERSION, context=current.context)
        try:
            yield
        finally:
            current.teardown()
            log_event("api.shutdown", context=current.context)

    app = FastAPI(title="tasktint API", version=APP_VERSION, lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=API_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.include_router(health_router)
    app.include_router(colors_router)
    return app


app = create_app()


def main() -> None:
    uvicorn.run("tasktint.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
