"""
Error codes and error types for the dispatch protocol.

Structural codes (malformed action, unknown capability, unknown operation)
are never retryable. Every other code, including codes a capability
invents for itself, is retryable.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional


class ErrorCode(str, Enum):
    NOT_INITIALIZED = "NOT_INITIALIZED"
    INVALID_ACTION = "INVALID_ACTION"
    CAPABILITY_NOT_FOUND = "CAPABILITY_NOT_FOUND"
    OPERATION_NOT_FOUND = "OPERATION_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    STORAGE_QUOTA_EXCEEDED = "STORAGE_QUOTA_EXCEEDED"
    REMOTE_STORE_ERROR = "REMOTE_STORE_ERROR"
    EXECUTION_FAILED = "EXECUTION_FAILED"


NON_RETRYABLE_CODES: FrozenSet[str] = frozenset({
    ErrorCode.INVALID_ACTION.value,
    ErrorCode.CAPABILITY_NOT_FOUND.value,
    ErrorCode.OPERATION_NOT_FOUND.value,
})


def is_retryable(code: str) -> bool:
    """Whether reissuing an action that failed with this code may help."""
    if isinstance(code, ErrorCode):
        code = code.value
    return code not in NON_RETRYABLE_CODES


class CapabilityError(RuntimeError):
    """
    Error raised by capability operations.

    The dispatcher reads `code` to build the error envelope.
    """

    def __init__(self, code: str, details: str):
        if isinstance(code, ErrorCode):
            code = code.value
        self.code = code
        self.details = details
        super().__init__(details)


class OperationTimeout(CapabilityError):
    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(ErrorCode.TIMEOUT, f"Operation timed out after {timeout_ms}ms")


class NotInitializedError(RuntimeError):
    """
    Raised when dispatch is called before init().

    This is a caller lifecycle bug, so it is never encoded in an envelope.
    """

    code = ErrorCode.NOT_INITIALIZED.value


def error_code_of(exc: Optional[BaseException]) -> str:
    """Code carried by an exception, or EXECUTION_FAILED when it has none."""
    code = getattr(exc, "code", None)
    if isinstance(code, ErrorCode):
        return code.value
    if isinstance(code, str) and code:
        return code
    return ErrorCode.EXECUTION_FAILED.value
