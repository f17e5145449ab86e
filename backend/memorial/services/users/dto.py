# memorial/services/users/dto.py
from __future__ import annotations

from dataclasses import dataclass

from memorial.services.users.values import Role, UserIdentifier


@dataclass(frozen=True, slots=True)
class UserCreateIn:
    """
    Input DTO for creating a user.

    :param email: Login email (normalised to lower case).
    :param password: Raw password, hashed before storage.
    :param first_name: Given name.
    :param last_name: Family name.
    :param role: Role captured as the token abilities at login.
    """

    email: str
    password: str
    first_name: str
    last_name: str
    role: Role = Role.USER


@dataclass(frozen=True, slots=True)
class UserOut:
    """Public projection of a user."""

    identifier: UserIdentifier
    email: str
    full_name: str
    role: Role
