"""
memorial.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that define the contracts
for authentication infrastructure.

These ports decouple the service layer from concrete implementations
of the authentication store.

Modules
-------
- :mod:`authentication_repository`:
    Defines :class:`~.AuthenticationRepository`, the lifecycle store for
    authentication records (persist, find, introspection, refresh, revoke,
    logout) and :class:`~.InMemoryAuthenticationRepository`, its map-backed
    double.

Design Notes
------------
Concrete adapters (SQLAlchemy in :mod:`memorial.repositories`, Redis under
``memorial.infra``) implement these interfaces.
"""

from __future__ import annotations

from .authentication_repository import (
    AuthenticationRepository,
    Clock,
    InMemoryAuthenticationRepository,
    both_tokens_active,
    introspect_tokens,
)

__all__ = [
    "AuthenticationRepository",
    "Clock",
    "InMemoryAuthenticationRepository",
    "both_tokens_active",
    "introspect_tokens",
]
