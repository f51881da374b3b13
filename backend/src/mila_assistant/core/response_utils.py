"""
Builders for the ``StandardResponse`` envelope every endpoint returns.

Handled failures keep HTTP 200 and report the real status in
``metadata.statusCode``; exception handlers use ``envelope_json`` to send the
same envelope with a matching HTTP status.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse

from mila_assistant.schemas import ErrorResponse, Metadata, StandardResponse


def _metadata(status_code: int, errors: List[str], execution_time: Optional[float]) -> Metadata:
    return Metadata(
        statusCode=status_code,
        errors=errors,
        executionTime=round(execution_time or 0.0, 6),
        timestamp=datetime.now(timezone.utc),
    )


def create_success_response(
    data: Any,
    status_code: int = 200,
    execution_time: Optional[float] = None,
) -> StandardResponse:
    """Wrap ``data`` with success=1."""
    return StandardResponse(data=data, metadata=_metadata(status_code, [], execution_time), success=1)


def create_error_response(
    message: str,
    status_code: int = 400,
    errors: Optional[List[str]] = None,
    execution_time: Optional[float] = None,
    additional_details: Optional[Dict[str, Any]] = None
) -> StandardResponse:
    """
    Wrap an error message with success=0.

    Args:
        message: User-safe summary, also the default single error entry
        status_code: Status reported in the metadata
        errors: Detailed error strings (validation messages etc.)
        execution_time: Seconds spent before failing
        additional_details: Extra fields for the client, never stack traces
    """
    return StandardResponse(
        data=ErrorResponse(message=message, details=additional_details),
        metadata=_metadata(status_code, errors or [message], execution_time),
        success=0,
    )


def envelope_json(response: StandardResponse, http_status: Optional[int] = None) -> JSONResponse:
    """Serialize an envelope; the HTTP status defaults to the one in its metadata."""
    return JSONResponse(
        status_code=http_status or response.metadata.statusCode,
        content=response.model_dump(mode="json"),
    )


class ResponseTimer:
    """Measures wall time of an endpoint body."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.execution_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.execution_time = time.perf_counter() - self.start_time

    def get_execution_time(self) -> float:
        # Callable inside the block, before __exit__ has run
        if self.execution_time is None:
            return time.perf_counter() - self.start_time
        return self.execution_time
