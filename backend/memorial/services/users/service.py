# memorial/services/users/service.py
from __future__ import annotations

import logging

from memorial.models.user import User
from memorial.services._shared.base import BaseService
from memorial.services._shared.errors import ConflictError
from memorial.services.users.dto import UserCreateIn, UserOut
from memorial.services.users.values import UserIdentifier

log = logging.getLogger(__name__)


class UserService(BaseService):
    """Account management use cases."""

    def create_user(self, dto: UserCreateIn) -> UserOut:
        """
        Create a user with a hashed password.

        :raises ConflictError: If the email is already registered.
        """
        with self.rw_uow() as uow:
            if uow.users.exists_by_email(dto.email):
                raise ConflictError(f"Email already registered: {dto.email}")
            user = User(
                email=dto.email,
                first_name=dto.first_name,
                last_name=dto.last_name,
                role=dto.role,
            )
            user.password = dto.password
            uow.users.add(user)
            out = UserOut(
                identifier=UserIdentifier(user.identifier),
                email=user.email,
                full_name=user.full_name,
                role=user.role,
            )
        log.info("users.created", extra={"event": "users.created", "user_id": out.identifier.value})
        return out
