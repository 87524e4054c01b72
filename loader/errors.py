"""
Failure taxonomy for a single load.

These never reach the consumer as exceptions: the controller turns every one
of them into a Failed state.
"""

from typing import Optional

from .state import FailureKind


class LoaderError(Exception):
    kind = FailureKind.TRANSPORT

    def __init__(self, message: str, kind: Optional[FailureKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class TransportError(LoaderError):
    """The request could not be completed (DNS, refused connection, timeout)."""


class StatusError(LoaderError):
    """A response arrived with a non-2xx status code."""
    kind = FailureKind.STATUS

    def __init__(self, status_code: int):
        super().__init__(f"HTTP error! status: {status_code}")
        self.status_code = status_code


class ParseError(LoaderError):
    """The response body could not be decoded into a collection."""
    kind = FailureKind.PARSE
