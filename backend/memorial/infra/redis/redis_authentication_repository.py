# comments in English; reST docstrings
"""
Redis adapter of the authentication lifecycle store.

Layout (``ns`` defaults to ``"auth"``):

* ``<ns>:rec:<identifier>`` hash holding the record fields. Token digests and
  expiries (epoch seconds) are absent once revoked.
* ``<ns>:idx:<TYPE>:<digest>`` string pointing back to the identifier, used by
  :meth:`RedisAuthenticationRepository.find_by_token`.

Keys carry no TTL: expired records stay introspectable until purged.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

import redis  # type: ignore[import-untyped]

from memorial.services._shared.errors import ConflictError, InvalidTokenError, NotFoundError
from memorial.services._shared.ports import (
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

# hash field names per token slot: (digest, expiry)
_FIELDS: dict[TokenType, tuple[str, str]] = {
    TokenType.ACCESS: ("token", "expires_at"),
    TokenType.REFRESH: ("refresh_token", "refresh_token_expires_at"),
}


def _s(value: bytes | str | None, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisAuthenticationRepository(AuthenticationRepository):
    """
    Redis-backed :class:`AuthenticationRepository`.

    :param r: A Redis client (already connected).
    :param issuer: Token issuer (TTLs and prefix).
    :param hasher: Keyed digest applied before any token value hits Redis.
    :param tokenable_type: Discriminator stored with every record.
    :param clock: Source of "now" (aware UTC).
    :param namespace: Key prefix.
    """

    r: redis.Redis
    issuer: TokenIssuer
    hasher: TokenHasher
    tokenable_type: str
    clock: Clock = utc_now
    namespace: str = "auth"

    # -------------------- helpers --------------------

    def _k(self, identifier: str) -> str:
        return f"{self.namespace}:rec:{identifier}"

    def _ki(self, token_type: TokenType, digest: str) -> str:
        return f"{self.namespace}:idx:{token_type.value}:{digest}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(as_utc(dt).timestamp())

    @staticmethod
    def _from_ts(raw: str) -> datetime:
        return datetime.fromtimestamp(int(raw), tz=UTC)

    def _load(self, identifier: str) -> dict[str, str]:
        raw: Mapping[bytes | str, bytes | str] = self.r.hgetall(self._k(identifier))
        return {_s(k): _s(v) for k, v in raw.items()}

    def _restore_token(self, h: Mapping[str, str], token_type: TokenType) -> Token | None:
        digest_field, expiry_field = _FIELDS[token_type]
        digest = h.get(digest_field)
        expiry = h.get(expiry_field)
        if not digest or not expiry:
            return None
        return Token(type=token_type, value=digest, expires_at=self._from_ts(expiry))

    def _to_domain(self, identifier: str, h: Mapping[str, str]) -> Authentication:
        return Authentication(
            identifier=AuthenticationIdentifier(identifier),
            user=UserIdentifier(h["tokenable_id"]),
            access_token=self._restore_token(h, TokenType.ACCESS),
            refresh_token=self._restore_token(h, TokenType.REFRESH),
        )

    def _index_keys(self, h: Mapping[str, str]) -> list[str]:
        keys = []
        for token_type, (digest_field, _) in _FIELDS.items():
            digest = h.get(digest_field)
            if digest:
                keys.append(self._ki(token_type, digest))
        return keys

    def _write_pair(
        self,
        identifier: str,
        previous: Mapping[str, str],
        pair: TokenPair,
        extra: Mapping[str, str],
    ) -> None:
        access_digest = self.hasher.digest(pair.access_token.value)
        refresh_digest = self.hasher.digest(pair.refresh_token.value)
        stale = self._index_keys(previous)

        with self.r.pipeline(transaction=True) as p:
            if stale:
                p.delete(*stale)
            p.hset(
                self._k(identifier),
                mapping={
                    **extra,
                    "token": access_digest,
                    "expires_at": str(self._to_ts(pair.access_token.expires_at)),
                    "refresh_token": refresh_digest,
                    "refresh_token_expires_at": str(self._to_ts(pair.refresh_token.expires_at)),
                },
            )
            p.set(self._ki(TokenType.ACCESS, access_digest), identifier)
            p.set(self._ki(TokenType.REFRESH, refresh_digest), identifier)
            p.execute()

    # -------------------- API ------------------------

    def persist(
        self,
        identifier: AuthenticationIdentifier,
        user: UserIdentifier,
        role: Role,
        *,
        name: str | None = None,
    ) -> Authentication:
        now = self.clock()
        h = self._load(identifier.value)
        if h:
            if h.get("tokenable_id") != user.value:
                raise ConflictError(f"Authentication {identifier.value} belongs to another user.")
            current = self._to_domain(identifier.value, h)
            if both_tokens_active(current, now):
                log.info(
                    "auth.persist.reused",
                    extra={"event": "auth.persist.reused", "authentication_id": identifier.value},
                )
                return current

        pair = self.issuer.issue_pair(now)
        self._write_pair(
            identifier.value,
            h,
            pair,
            {
                "tokenable_id": user.value,
                "tokenable_type": self.tokenable_type,
                "name": name or user.value,
                "abilities": json.dumps([role.value]),
            },
        )
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
        h = self._load(identifier.value)
        if not h:
            raise NotFoundError("Authentication", identifier.value)
        return self._to_domain(identifier.value, h)

    def find_by_token(self, value: str, token_type: TokenType) -> Authentication:
        index_key = self._ki(token_type, self.hasher.digest(value))
        identifier = self.r.get(index_key)
        if identifier is None:
            raise InvalidTokenError("Token not found.")
        identifier = _s(identifier)
        h = self._load(identifier)
        if not h:
            # Record deleted underneath a dangling index entry
            self.r.delete(index_key)
            raise InvalidTokenError("Token not found.")
        self.r.hset(self._k(identifier), "last_used_at", str(self._to_ts(self.clock())))
        return self._to_domain(identifier, h)

    def introspection(self, authentication: Authentication) -> Introspection:
        stored = self.find(authentication.identifier)
        return introspect_tokens(stored, self.clock())

    def refresh(self, identifier: AuthenticationIdentifier) -> Authentication:
        now = self.clock()
        h = self._load(identifier.value)
        if not h:
            raise InvalidTokenError("Refresh token is invalid.")
        current = self._to_domain(identifier.value, h)
        if current.refresh_token is None:
            raise InvalidTokenError("Refresh token is invalid.")
        if not current.refresh_token.is_active(now):
            raise InvalidTokenError("Refresh token has expired.")

        pair = self.issuer.issue_pair(now)
        self._write_pair(identifier.value, h, pair, {})
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
        h = self._load(identifier.value)
        digest_field, expiry_field = _FIELDS[token_type]
        digest = h.get(digest_field)
        if not digest:
            raise InvalidTokenError("Token not found.")

        with self.r.pipeline(transaction=True) as p:
            p.hdel(self._k(identifier.value), digest_field, expiry_field)
            p.delete(self._ki(token_type, digest))
            p.execute()
        log.info(
            "auth.revoke",
            extra={
                "event": "auth.revoke",
                "authentication_id": identifier.value,
                "token_type": token_type.value,
            },
        )

    def logout(self, identifier: AuthenticationIdentifier) -> None:
        h = self._load(identifier.value)
        if not h:
            raise NotFoundError("Authentication", identifier.value)
        self._drop(identifier.value, h)
        log.info(
            "auth.logout",
            extra={"event": "auth.logout", "authentication_id": identifier.value},
        )

    # -------------------- housekeeping ---------------

    def _drop(self, identifier: str, h: Mapping[str, str]) -> None:
        with self.r.pipeline(transaction=True) as p:
            p.delete(self._k(identifier), *self._index_keys(h))
            p.execute()

    def abilities_of(self, identifier: AuthenticationIdentifier) -> list[str]:
        """Return the role names captured when ``identifier`` was issued."""
        h = self._load(identifier.value)
        if not h:
            raise NotFoundError("Authentication", identifier.value)
        return list(json.loads(h.get("abilities") or "[]"))

    def purge_expired(self, now: datetime | None = None) -> int:
        """
        Delete records whose two tokens are both expired or revoked.

        :returns: Number of deleted records.
        :rtype: int
        """
        moment = as_utc(now or self.clock())
        prefix = self._k("")
        purged = 0
        for key in self.r.scan_iter(match=f"{prefix}*"):
            identifier = _s(key)[len(prefix) :]
            h = self._load(identifier)
            if not h:
                continue
            status = introspect_tokens(self._to_domain(identifier, h), moment)
            if status.access_token.active or status.refresh_token.active:
                continue
            self._drop(identifier, h)
            purged += 1
        log.info("auth.purge", extra={"event": "auth.purge", "purged": purged})
        return purged
