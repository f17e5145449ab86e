"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from memorial.repositories.authentication import SQLAlchemyAuthenticationRepository
from memorial.repositories.base import BaseRepository
from memorial.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "SQLAlchemyAuthenticationRepository",
    "UserRepository",
]
