"""Typed errors raised by the trace fetch layer and configuration."""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Categories of failures surfaced to the UI."""

    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    INVALID_DATA = "INVALID_DATA"
    INVALID_CONFIG = "INVALID_CONFIG"


class TraceApiError(Exception):
    """Error raised while talking to the trace server or validating its data.

    Attributes
    ----------
    message : str
        Human-readable description, safe to show to the user.
    code : ErrorCode
        Failure category.
    status_code : Optional[int]
        HTTP status code, when the server answered with an error.
    details : Any
        Offending payload or underlying error, for logging only.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code)
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return (
            f"TraceApiError(code={self.code.value}, status_code={self.status_code}, "
            f"message={self.message!r})"
        )


def is_trace_api_error(error: Any) -> bool:
    """Check if an error is a TraceApiError."""
    return isinstance(error, TraceApiError)
