"""
Response envelope helpers.

Every dispatch resolves to exactly one of:

    {"id", "status": "ok", "data", "duration_ms"}     (durationMillis over HTTP)
    {"id", "status": "error", "error": {"code", "message", "retryable"}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from csop.core.errors import error_code_of, is_retryable


class ErrorBody(BaseModel):
    code: str
    message: str
    retryable: bool


class ResponseEnvelope(BaseModel):
    id: str
    status: str
    data: Any | None = None
    # Python callers get duration_ms; HTTP JSON carries durationMillis.
    duration_ms: int | None = Field(default=None, serialization_alias="durationMillis")
    error: ErrorBody | None = None


def ok_response(message_id: str, data: Any, duration_ms: int) -> Dict[str, Any]:
    return {
        "id": message_id,
        "status": "ok",
        "data": data,
        "duration_ms": duration_ms,
    }


def error_response(message_id: str, code: str, message: str) -> Dict[str, Any]:
    return {
        "id": message_id,
        "status": "error",
        "error": {
            "code": code,
            "message": message,
            "retryable": is_retryable(code),
        },
    }


def error_from_exception(message_id: str, exc: Optional[BaseException]) -> Dict[str, Any]:
    """Build an error envelope from the last error an operation raised."""
    message = str(exc) if exc is not None else ""
    if not message:
        message = exc.__class__.__name__ if exc is not None else "Unknown error"
    return error_response(message_id, error_code_of(exc), message)
