"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    segment_count: int
    expected_length: int
    actual_length: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when API key authentication/authorization fails."""


class CredentialError(AppError):
    """Base for failures sealing or opening stored credentials.

    Never shown to clients verbatim; the HTTP layer answers with an opaque
    internal error.
    """


class ConfigurationError(CredentialError):
    """The encryption key is missing or malformed. Needs an operator fix."""


class FormatError(CredentialError):
    """A sealed secret does not have the ``nonce:tag:ciphertext`` shape."""


class AuthenticationError(CredentialError):
    """The authentication tag did not verify (tampering, wrong key, corruption)."""
