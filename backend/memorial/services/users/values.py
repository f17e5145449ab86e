# comments in English; reST docstrings
"""User-side values referenced by the authentication subsystem."""

from __future__ import annotations

from enum import Enum

from memorial.services._shared.values import UniversallyUniqueIdentifier


class UserIdentifier(UniversallyUniqueIdentifier):
    """Identifier of a user (foreign reference, not owned by authentication)."""

    __slots__ = ()


class Role(Enum):
    """Closed set of user roles; captured as abilities when tokens are issued."""

    ADMIN = "ADMIN"
    USER = "USER"
