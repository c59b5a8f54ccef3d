"""Errors raised by the school-data client.

Every failure of a fetch surfaces as a :class:`SourceError` subclass; the
refresh orchestrator catches them all and falls back to offline data.
"""
from __future__ import annotations

import typing as t
from enum import Enum


class SourceErrorReason(str, Enum):
    """Why a fetch from the school-data service failed."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    BAD_STATUS = "bad_status"
    MALFORMED_BODY = "malformed_body"


class SourceError(Exception):
    """Base class for school-data fetch failures."""
    reason: SourceErrorReason

    def __init__(self, message: str, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint

    def log_context(self) -> dict[str, t.Any]:
        """Fields attached to the structured log event for this failure."""
        return {"reason": self.reason.value, "endpoint": self.endpoint}


class NetworkError(SourceError):
    """Connection-level failure (DNS, refused connection, reset...)."""
    reason = SourceErrorReason.NETWORK


class SourceTimeoutError(SourceError):
    """A request, the whole fetch, or the orchestrator backstop timed out."""
    reason = SourceErrorReason.TIMEOUT

    def __init__(self, message: str, endpoint: str, timeout: float) -> None:
        super().__init__(message, endpoint)
        self.timeout = timeout

    def log_context(self) -> dict[str, t.Any]:
        return {**super().log_context(), "timeout": self.timeout}


class BadStatusError(SourceError):
    """The service answered with a non-success status code."""
    reason = SourceErrorReason.BAD_STATUS

    def __init__(self, endpoint: str, status_code: int) -> None:
        super().__init__(f"{endpoint} API failed: {status_code}", endpoint)
        self.status_code = status_code

    def log_context(self) -> dict[str, t.Any]:
        return {**super().log_context(), "status_code": self.status_code}


class MalformedBodyError(SourceError):
    """The body was empty, not JSON, or did not match the expected schema."""
    reason = SourceErrorReason.MALFORMED_BODY
