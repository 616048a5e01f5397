"""Error taxonomy for argonaut.

Every failure raised by the client is an :class:`ArgonautError` carrying an
``http_status`` so a boundary layer can translate it without inspecting the
message text.
"""

from __future__ import annotations

from typing import Optional


class ArgonautError(Exception):
    """Base class for all client errors."""

    http_status = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ArgonautError):
    """The requested resource does not exist (any more)."""

    http_status = 404


class InvalidInputError(ArgonautError):
    """The caller supplied a malformed reference, body or parameter set."""

    http_status = 400


class UnavailableError(ArgonautError):
    """The control plane or Argo Server could not be reached.

    Retryable by the caller; the client itself never retries.
    """

    http_status = 503


class InternalError(ArgonautError):
    """Unexpected failure, e.g. a response that could not be transformed."""

    http_status = 500


class ConfigurationError(InternalError):
    """The client configuration is incomplete or unusable."""


def error_from_status(status_code: int, message: str) -> ArgonautError:
    """Map a transport status code to the matching error type."""
    if status_code == 404:
        return NotFoundError(message, status_code=status_code)
    if status_code in (400, 409, 422):
        return InvalidInputError(message, status_code=status_code)
    if status_code >= 500:
        return UnavailableError(message, status_code=status_code)
    return InternalError(message, status_code=status_code)


__all__ = [
    "ArgonautError",
    "NotFoundError",
    "InvalidInputError",
    "UnavailableError",
    "InternalError",
    "ConfigurationError",
    "error_from_status",
]
