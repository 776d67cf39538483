"""
Error taxonomy for the yoga API client.

Every failure carries an ``ErrorKind`` tag assigned where it is raised.
Retry decisions read the tag, never the message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Where a request failed."""

    TIMEOUT = "timeout"  # dispatch aborted by its timeout
    NETWORK = "network"  # host unreachable, connection refused/reset
    HTTP = "http"  # server answered with status >= 400
    VALIDATION = "validation"  # request body could not be prepared
    DECODE = "decode"  # response body was not JSON


TRANSIENT_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.NETWORK})

CONNECTIVITY_MESSAGE = (
    "Both production and local servers are unavailable. Please try again later."
)
GENERIC_REJECTION_MESSAGE = "Something went wrong"


class ApiError(Exception):
    """Base class for every failure surfaced by the client."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS


class TransportError(ApiError):
    """Transport-level failure (timeout or network)."""


class ConnectivityError(ApiError):
    """Transient failures used up the retry budget."""

    def __init__(self, message: str = CONNECTIVITY_MESSAGE, cause: Optional[ApiError] = None):
        kind = cause.kind if cause is not None else ErrorKind.NETWORK
        super().__init__(message, kind)
        self.cause = cause


class RequestRejectedError(ApiError):
    """The endpoint was reachable but answered with an error status."""

    def __init__(self, message: str, status_code: int, payload: object = None):
        super().__init__(message or GENERIC_REJECTION_MESSAGE, ErrorKind.HTTP, status_code)
        self.payload = payload


class RequestValidationError(ApiError):
    """The request could not be built locally (malformed body)."""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.VALIDATION)


class ResponseDecodeError(ApiError):
    """A successful response carried a body that is not JSON."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, ErrorKind.DECODE, status_code)
