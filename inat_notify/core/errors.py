"""
Centralized error types for source fetches and load cycles.
Constants and a reusable helper so the controller stays thin and new error kinds are easy to add.
"""
from __future__ import annotations

from typing import Callable

# ---------------------------------------------------------------------------
# Error kinds surfaced to UI consumers
# ---------------------------------------------------------------------------

ERROR_KIND_AUTH = "auth"
ERROR_KIND_SOURCE = "source"

MSG_NOT_AUTHENTICATED = "Not authenticated. Please visit iNaturalist.org while logged in."
MSG_SESSION_EXPIRED = "Session expired. Please visit iNaturalist.org while logged in."
MSG_NOT_LOGGED_IN = "Not logged in to iNaturalist"


class NotificationEngineError(Exception):
    """Base for errors raised by the engine."""


class SourceFetchError(NotificationEngineError):
    """A single source failed (network, HTTP status or unparseable payload)."""

    def __init__(self, source: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class NotAuthenticatedError(SourceFetchError):
    """The source needs credentials that are missing, expired or rejected."""


# ---------------------------------------------------------------------------
# Error rules: (predicate, user-facing message)
# Add new rules here instead of scattering checks in the controller.
# ---------------------------------------------------------------------------

def _is_timeout(exc: BaseException) -> bool:
    lower = str(exc).lower()
    return "timeout" in lower or "timed out" in lower or type(exc).__name__.endswith("Timeout")


def _is_connect_error(exc: BaseException) -> bool:
    return type(exc).__name__ in ("ConnectError", "ConnectTimeout") or "connection" in str(exc).lower()


# List of (predicate, message). First match wins.
LOAD_ERROR_RULES: list[tuple[Callable[[BaseException], bool], str]] = [
    (_is_timeout, "iNaturalist took too long to respond. Try again in a moment."),
    (_is_connect_error, "Could not reach iNaturalist. Check your connection."),
]


def classify_fetch_error(exc: BaseException | None) -> str | None:
    """Map a settled fetch result to an error kind: 'auth', 'source' or None (not an error)."""
    if exc is None:
        return None
    if isinstance(exc, NotAuthenticatedError):
        return ERROR_KIND_AUTH
    return ERROR_KIND_SOURCE


def error_message(exc: BaseException) -> str:
    """
    User-visible message for an exception from a load cycle.
    Uses LOAD_ERROR_RULES for known error types; otherwise the exception message.
    """
    for predicate, message in LOAD_ERROR_RULES:
        if predicate(exc):
            return message
    return str(exc) or type(exc).__name__
