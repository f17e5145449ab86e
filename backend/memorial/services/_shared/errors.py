"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, or SQLAlchemy directly. They serve as stable contracts between
repositories, domain values, and application services.

The translation to HTTP responses (RFC 7807) is handled by
``memorial/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain values.
    - The API layer or BaseService will later translate them to APIError.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Authentication").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


class InvalidTokenError(ServiceError):
    """
    Raised when a presented or stored token cannot be used.

    Covers unknown token values, missing (revoked) token slots, expired
    refresh tokens and tokens of the wrong type.
    """

    def __init__(self, message: str = "Invalid token.") -> None:
        super().__init__(message)


class InvalidArgumentError(ServiceError, ValueError):
    """
    Raised when a domain value is constructed from structurally invalid data.

    Subclasses :class:`ValueError` so callers validating raw input can treat
    it like any other value error.
    """


class AuthenticationFailedError(ServiceError):
    """Raised when a credential pair does not resolve to a user."""

    def __init__(self, message: str = "Invalid credentials.") -> None:
        super().__init__(message)


class ConflictError(ServiceError):
    """Raised when a write would violate a uniqueness rule (e.g. duplicate email)."""
