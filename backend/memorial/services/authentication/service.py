# memorial/services/authentication/service.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from memorial.services._shared.base import BaseService, ServiceContext
from memorial.services._shared.errors import (
    AuthenticationFailedError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
)
from memorial.services._shared.ports import AuthenticationRepository, Clock
from memorial.services._shared.values import utc_now
from memorial.services.authentication.dto import LoginIn, LogoutIn, TokenIn
from memorial.services.authentication.values import (
    Authentication,
    AuthenticationIdentifier,
    Introspection,
    TokenType,
)
from memorial.services.users.values import UserIdentifier
from memorial.uow.sqlalchemy_uow import SQLAlchemyRepositoryContainer

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Profile:
    """Bearer-facing view of the current authentication."""

    identifier: AuthenticationIdentifier
    user: UserIdentifier
    abilities: list[str]


class AuthenticationService(BaseService):
    """
    Authentication lifecycle use cases (login / introspect / refresh / revoke / logout).

    Credentials are checked against the users repository before a record is
    persisted; the repository itself never re-authenticates.

    :param repository: Explicit authentication store. Defaults to the one the
        Unit of Work builds from ``AUTH_STORAGE``.
    :param ctx: Request-scoped context.
    :param clock: Source of "now" shared with the repositories.
    """

    def __init__(
        self,
        *,
        repository: AuthenticationRepository | None = None,
        ctx: ServiceContext | None = None,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(ctx=ctx, clock=clock)
        self._repository = repository

    def _authentications(self, uow: SQLAlchemyRepositoryContainer) -> AuthenticationRepository:
        if self._repository is not None:
            return self._repository
        return uow.authentications

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> Authentication:
        """
        Authenticate credentials and issue the authentication.

        A record whose two tokens are still active is never handed out again;
        the client refreshes or logs out instead.

        :param dto: Login input.
        :returns: Authentication carrying the plaintext bearer values.
        :raises AuthenticationFailedError: If credentials are invalid.
        :raises ConflictError: If the identifier is still active or belongs to
            another user.
        :raises InvalidArgumentError: If the identifier is not a UUID.
        """
        identifier = AuthenticationIdentifier(dto.identifier)
        with self.rw_uow() as uow:
            user = uow.users.authenticate(dto.email, dto.password)
            if user is None:
                log.warning("auth.login.failed", extra={"event": "auth.login.failed"})
                raise AuthenticationFailedError()

            owner = UserIdentifier(user.identifier)
            repo = self._authentications(uow)
            self._ensure_reissuable(repo, identifier, owner)
            return repo.persist(identifier, owner, user.role, name=user.full_name)

    @staticmethod
    def _ensure_reissuable(
        repo: AuthenticationRepository,
        identifier: AuthenticationIdentifier,
        owner: UserIdentifier,
    ) -> None:
        try:
            current = repo.find(identifier)
        except NotFoundError:
            return
        if current.user != owner:
            raise ConflictError(f"Authentication {identifier.value} belongs to another user.")
        status = repo.introspection(current)
        if status.access_token.active and status.refresh_token.active:
            log.info(
                "auth.login.active",
                extra={"event": "auth.login.active", "authentication_id": identifier.value},
            )
            raise ConflictError(
                f"Authentication {identifier.value} is still active; refresh or log out."
            )

    # ------------------------------------------------------------------ #
    # Token operations
    # ------------------------------------------------------------------ #

    def introspect(self, dto: TokenIn) -> Introspection:
        """
        Report whether the tokens of the record owning ``dto`` are active.

        :raises InvalidTokenError: If the presented value is unknown.
        """
        with self.rw_uow() as uow:
            repo = self._authentications(uow)
            authentication = repo.find_by_token(dto.value, dto.type)
            return repo.introspection(authentication)

    def refresh(self, dto: TokenIn) -> Authentication:
        """
        Rotate both tokens using a refresh token.

        :raises InvalidTokenError: If the token is not a live refresh token.
        """
        if dto.type is not TokenType.REFRESH:
            raise InvalidTokenError("A refresh token is required.")
        with self.rw_uow() as uow:
            repo = self._authentications(uow)
            authentication = repo.find_by_token(dto.value, dto.type)
            return repo.refresh(authentication.identifier)

    def revoke(self, dto: TokenIn) -> None:
        """
        Revoke the presented token, leaving the other one untouched.

        :raises InvalidTokenError: If the token is unknown or already revoked.
        """
        with self.rw_uow() as uow:
            repo = self._authentications(uow)
            authentication = repo.find_by_token(dto.value, dto.type)
            repo.revoke(authentication.identifier, dto.type)

    def logout(self, dto: LogoutIn, *, actor: Authentication | None = None) -> None:
        """
        Delete the authentication record.

        :param actor: Bearer authentication of the caller. When given, the
            record must belong to the same user.
        :raises NotFoundError: If no record exists.
        :raises AuthenticationFailedError: If ``actor`` does not own the record.
        """
        identifier = AuthenticationIdentifier(dto.identifier)
        with self.rw_uow() as uow:
            repo = self._authentications(uow)
            if actor is not None and repo.find(identifier).user != actor.user:
                raise AuthenticationFailedError("Not allowed to log out this authentication.")
            repo.logout(identifier)

    # ------------------------------------------------------------------ #
    # Bearer guard
    # ------------------------------------------------------------------ #

    def authenticate_bearer(self, value: str) -> Authentication:
        """
        Resolve an access bearer value and require it to be active.

        :raises InvalidTokenError: If unknown, revoked or expired.
        """
        with self.rw_uow() as uow:
            repo = self._authentications(uow)
            authentication = repo.find_by_token(value, TokenType.ACCESS)
            if not repo.introspection(authentication).access_token.active:
                raise InvalidTokenError("Access token has expired.")
            return authentication

    def profile(self, authentication: Authentication) -> Profile:
        """Return the identifier, user and captured abilities of ``authentication``."""
        with self.ro_uow() as uow:
            repo = self._authentications(uow)
            return Profile(
                identifier=authentication.identifier,
                user=authentication.user,
                abilities=repo.abilities_of(authentication.identifier),
            )

    # ------------------------------------------------------------------ #
    # Housekeeping
    # ------------------------------------------------------------------ #

    def purge_expired(self) -> int:
        """Delete every record whose two tokens are expired or revoked."""
        with self.rw_uow() as uow:
            purged = self._authentications(uow).purge_expired(self.clock())
        log.info("auth.purge", extra={"event": "auth.purge", "purged": purged})
        return purged
