"""Convenience exports for application schemas."""

from __future__ import annotations

from .authentication import (
    AuthenticationOutSchema,
    IntrospectionOutSchema,
    LoginSchema,
    LogoutSchema,
    ProfileOutSchema,
    RefreshRequestSchema,
    TokenOutSchema,
    TokenRequestSchema,
    TokenSchema,
)

__all__ = [
    "AuthenticationOutSchema",
    "IntrospectionOutSchema",
    "LoginSchema",
    "LogoutSchema",
    "ProfileOutSchema",
    "RefreshRequestSchema",
    "TokenOutSchema",
    "TokenRequestSchema",
    "TokenSchema",
]
