"""
FastAPI application for the M.I.L.A. billing assistant.

The lifespan builds one ``AssistantService`` per process and keeps it on
``app.state.assistant``; tests may place their own instance there before
startup.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mila_assistant.api.v1 import assistant
from mila_assistant.core.config import get_config
from mila_assistant.core.logging_config import setup_logging
from mila_assistant.core.response_utils import (
    create_error_response,
    create_success_response,
    envelope_json,
    ResponseTimer,
)
from mila_assistant.schemas import StandardResponse
from mila_assistant.services.assistant_service import AssistantService

config = get_config()
logger = logging.getLogger(__name__)

API_VERSION_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the assistant on startup and drain its memory writes on shutdown."""
    setup_logging(config.application)
    logger.info(f"Starting {config.application.app_name} ({config.application.environment})")

    if getattr(app.state, "assistant", None) is None:
        app.state.assistant = AssistantService.from_config(config)
    service: AssistantService = app.state.assistant

    if not service.gateway.is_configured():
        logger.warning("GEMINI_API_KEY is not set, complex questions will be answered from built-in knowledge")
    if not await service.memory.is_available():
        logger.warning("Memory store unavailable, answers will not be personalized")

    yield

    logger.info("Shutting down, waiting for pending memory writes")
    await service.close()


app = FastAPI(
    title=config.application.app_name,
    description=config.application.app_description,
    version=config.application.app_version,
    lifespan=lifespan,
    docs_url=None if config.is_production() else "/docs",
    redoc_url=None if config.is_production() else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.application.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({time.perf_counter() - start_time:.3f}s)"
    )
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP exception on {request.url.path}: {exc.status_code} - {exc.detail}")
    return envelope_json(create_error_response(message=str(exc.detail), status_code=exc.status_code))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Validation failures keep status 422 but use the standard envelope."""
    errors = [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()]
    logger.info(f"Rejected request to {request.url.path}: {errors}")
    return envelope_json(create_error_response(message="Invalid request", status_code=422, errors=errors))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    # Never leak exception text to clients
    return envelope_json(create_error_response(message="Internal server error", status_code=500))


@app.get("/health", response_model=StandardResponse)
async def health_check():
    """Process liveness; see /api/v1/assistant/health for collaborators."""
    with ResponseTimer() as timer:
        return create_success_response(
            data={
                "status": "healthy",
                "timestamp": time.time(),
                "version": config.application.app_version,
                "environment": config.application.environment,
            },
            execution_time=timer.get_execution_time(),
        )


app.include_router(assistant.router, prefix=f"{API_VERSION_PREFIX}/assistant", tags=["Assistant"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mila_assistant.main:app",
        host=config.application.api_host,
        port=config.application.api_port,
        reload=config.is_development() and config.application.debug,
        log_level=config.application.log_level.lower(),
    )
