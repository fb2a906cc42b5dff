"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context carried by policy errors."""

    policy: str
    key_prefix: str
    available: list[str]


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


class PolicyConfigurationError(AppError):
    """Raised when a rate limit policy is misconfigured.

    This is a programmer/deployment error detected at startup, never a
    condition to recover from at request time.
    """


class UnknownPolicyError(PolicyConfigurationError):
    """Raised when a policy name is not present in the registry."""
