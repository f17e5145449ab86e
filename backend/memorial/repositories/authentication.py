"""SQLAlchemy adapter of the authentication lifecycle store.

Rows of ``authentications`` hold keyed digests of the token values. Records
rebuilt from a row therefore carry the digest as ``Token.value``; only the
operations that mint tokens (a non-reused ``persist`` and ``refresh``) return
plaintext values, which are never stored.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import cast

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import Session

from memorial.models.authentication import AuthenticationRecord
from memorial.models.user import User
from memorial.repositories.base import BaseRepository
from memorial.services._shared.errors import ConflictError, InvalidTokenError, NotFoundError
from memorial.services._shared.ports.authentication_repository import (
    AuthenticationRepository,
    Clock,
    both_tokens_active,
    introspect_tokens,
)
from memorial.services._shared.values import as_utc, utc_now
from memorial.services.authentication.tokens import TokenHasher, TokenIssuer, TokenPair
from memorial.services.authentication.values import (
    Authentication,
    AuthenticationIdentifier,
    Introspection,
    Token,
    TokenType,
)
from memorial.services.users.values import Role, UserIdentifier

log = logging.getLogger(__name__)


class SQLAlchemyAuthenticationRepository(
    BaseRepository[AuthenticationRecord], AuthenticationRepository
):
    """Relational :class:`AuthenticationRepository` over ``authentications``.

    :param session: Unit of Work session.
    :param issuer: Token issuer (TTLs and prefix).
    :param hasher: Keyed digest applied before any token value hits storage.
    :param tokenable_type: Discriminator stored with every row.
    :param clock: Source of "now" (aware UTC).
    """

    model = AuthenticationRecord

    def __init__(
        self,
        *,
        session: Session | None = None,
        issuer: TokenIssuer,
        hasher: TokenHasher,
        tokenable_type: str,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__(session=session)
        self.issuer = issuer
        self.hasher = hasher
        self.tokenable_type = tokenable_type
        self.clock = clock

    # ------------------------------ mapping ---------------------------------

    @staticmethod
    def _restore_token(
        token_type: TokenType, value: str | None, expires_at: datetime | None
    ) -> Token | None:
        if value is None or expires_at is None:
            return None
        return Token(type=token_type, value=value, expires_at=as_utc(expires_at))

    def _to_domain(self, record: AuthenticationRecord) -> Authentication:
        """Rebuild an :class:`Authentication` from a row (digest values)."""
        return Authentication(
            identifier=AuthenticationIdentifier(record.identifier),
            user=UserIdentifier(record.tokenable_id),
            access_token=self._restore_token(TokenType.ACCESS, record.token, record.expires_at),
            refresh_token=self._restore_token(
                TokenType.REFRESH,
                record.refresh_token,
                record.refresh_token_expires_at,
            ),
        )

    def _write_pair(self, record: AuthenticationRecord, pair: TokenPair) -> None:
        record.token = self.hasher.digest(pair.access_token.value)
        record.expires_at = pair.access_token.expires_at
        record.refresh_token = self.hasher.digest(pair.refresh_token.value)
        record.refresh_token_expires_at = pair.refresh_token.expires_at

    def _default_name(self, user: UserIdentifier) -> str:
        owner = self.session.get(User, user.value)
        if owner is None:
            raise NotFoundError("User", user.value)
        return owner.full_name

    # -------------------------------- API -----------------------------------

    def persist(
        self,
        identifier: AuthenticationIdentifier,
        user: UserIdentifier,
        role: Role,
        *,
        name: str | None = None,
    ) -> Authentication:
        now = self.clock()
        record = self.get(identifier.value)
        if record is not None:
            if record.tokenable_id != user.value:
                raise ConflictError(f"Authentication {identifier.value} belongs to another user.")
            current = self._to_domain(record)
            if both_tokens_active(current, now):
                log.info(
                    "auth.persist.reused",
                    extra={"event": "auth.persist.reused", "authentication_id": identifier.value},
                )
                return current

        display_name = name or self._default_name(user)
        pair = self.issuer.issue_pair(now)
        if record is None:
            record = AuthenticationRecord(identifier=identifier.value)
            self.session.add(record)
        record.tokenable_id = user.value
        record.tokenable_type = self.tokenable_type
        record.name = display_name
        record.abilities = [role.value]
        self._write_pair(record, pair)
        self.flush()

        log.info(
            "auth.persist.issued",
            extra={
                "event": "auth.persist.issued",
                "authentication_id": identifier.value,
                "user_id": user.value,
            },
        )
        return Authentication(
            identifier=identifier,
            user=user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def find(self, identifier: AuthenticationIdentifier) -> Authentication:
        record = self.get(identifier.value)
        if record is None:
            raise NotFoundError("Authentication", identifier.value)
        return self._to_domain(record)

    def find_by_token(self, value: str, token_type: TokenType) -> Authentication:
        column = (
            AuthenticationRecord.token
            if token_type is TokenType.ACCESS
            else AuthenticationRecord.refresh_token
        )
        stmt = select(AuthenticationRecord).where(column == self.hasher.digest(value))
        record = cast(
            AuthenticationRecord | None, self.session.execute(stmt).scalars().first()
        )
        if record is None:
            raise InvalidTokenError("Token not found.")
        record.last_used_at = self.clock()
        self.flush()
        return self._to_domain(record)

    def introspection(self, authentication: Authentication) -> Introspection:
        stored = self.find(authentication.identifier)
        return introspect_tokens(stored, self.clock())

    def refresh(self, identifier: AuthenticationIdentifier) -> Authentication:
        now = self.clock()
        record = self.get(identifier.value)
        if record is None:
            raise InvalidTokenError("Refresh token is invalid.")
        current = self._to_domain(record)
        if current.refresh_token is None:
            raise InvalidTokenError("Refresh token is invalid.")
        if not current.refresh_token.is_active(now):
            raise InvalidTokenError("Refresh token has expired.")

        pair = self.issuer.issue_pair(now)
        self._write_pair(record, pair)
        self.flush()

        log.info(
            "auth.refresh",
            extra={"event": "auth.refresh", "authentication_id": identifier.value},
        )
        return Authentication(
            identifier=current.identifier,
            user=current.user,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def revoke(self, identifier: AuthenticationIdentifier, token_type: TokenType) -> None:
        record = self.get(identifier.value)
        if record is None:
            raise InvalidTokenError("Token not found.")

        if token_type is TokenType.ACCESS:
            if record.token is None:
                raise InvalidTokenError("Token not found.")
            record.token = None
            record.expires_at = None
        else:
            if record.refresh_token is None:
                raise InvalidTokenError("Token not found.")
            record.refresh_token = None
            record.refresh_token_expires_at = None
        self.flush()

        log.info(
            "auth.revoke",
            extra={
                "event": "auth.revoke",
                "authentication_id": identifier.value,
                "token_type": token_type.value,
            },
        )

    def logout(self, identifier: AuthenticationIdentifier) -> None:
        record = self.get(identifier.value)
        if record is None:
            raise NotFoundError("Authentication", identifier.value)
        self.delete(record)
        log.info(
            "auth.logout",
            extra={"event": "auth.logout", "authentication_id": identifier.value},
        )

    # ---------------------------- housekeeping ------------------------------

    def abilities_of(self, identifier: AuthenticationIdentifier) -> list[str]:
        """Return the role names captured when ``identifier`` was issued."""
        record = self.get(identifier.value)
        if record is None:
            raise NotFoundError("Authentication", identifier.value)
        return list(record.abilities or [])

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete rows whose two tokens are both expired or revoked.

        :param now: Reference time, defaults to the repository clock.
        :returns: Number of deleted rows.
        :rtype: int
        """
        moment = as_utc(now or self.clock())
        dead = and_(
            or_(
                AuthenticationRecord.token.is_(None),
                AuthenticationRecord.expires_at <= moment,
            ),
            or_(
                AuthenticationRecord.refresh_token.is_(None),
                AuthenticationRecord.refresh_token_expires_at <= moment,
            ),
        )
        result = self.session.execute(
            delete(AuthenticationRecord)
            .where(dead)
            .execution_options(synchronize_session=False)
        )
        self.flush()
        purged = int(result.rowcount or 0)
        log.info("auth.purge", extra={"event": "auth.purge", "purged": purged})
        return purged
