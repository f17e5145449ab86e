from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import datetime
from typing import Protocol

from memorial.services._shared.errors import ConflictError, InvalidTokenError, NotFoundError
from memorial.services._shared.values import utc_now
from memorial.services.authentication.tokens import TokenIssuer
from memorial.services.authentication.values import (
    Authentication,
    AuthenticationIdentifier,
    Introspection,
    Token,
    TokenIntrospection,
    TokenType,
)
from memorial.services.users.values import Role, UserIdentifier


Clock = Callable[[], datetime]


class AuthenticationRepository(Protocol):
    """
    Lifecycle store for authentication records keyed by identifier.

    States: non-existent -> active -> (partially) revoked -> deleted.
    Operations are synchronous; concurrent writers on the same identifier
    follow last-writer-wins.
    """

    def persist(
        self,
        identifier: AuthenticationIdentifier,
        user: UserIdentifier,
        role: Role,
        *,
        name: str | None = None,
    ) -> Authentication:
        """
        Issue (or reuse) the authentication for ``identifier``.

        An existing record whose two tokens are both still active is returned
        unchanged; otherwise a new token pair replaces it. Adapters that store
        digests return the reused record in digest form.

        :raises ConflictError: If the identifier belongs to another user.
        """

    def find(self, identifier: AuthenticationIdentifier) -> Authentication:
        """Return the stored record. :raises NotFoundError: when absent."""

    def find_by_token(self, value: str, token_type: TokenType) -> Authentication:
        """Resolve a presented bearer value. :raises InvalidTokenError: when unknown."""

    def introspection(self, authentication: Authentication) -> Introspection:
        """Report token activity from stored expiries. :raises NotFoundError: when absent."""

    def refresh(self, identifier: AuthenticationIdentifier) -> Authentication:
        """
        Rotate both tokens.

        :raises InvalidTokenError: If the refresh token is missing or expired.
        """

    def revoke(self, identifier: AuthenticationIdentifier, token_type: TokenType) -> None:
        """Null out one token slot. :raises InvalidTokenError: when nothing to revoke."""

    def logout(self, identifier: AuthenticationIdentifier) -> None:
        """Delete the whole record. :raises NotFoundError: when absent."""

    def abilities_of(self, identifier: AuthenticationIdentifier) -> list[str]:
        """Role names captured at issuance. :raises NotFoundError: when absent."""

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete records whose two tokens are expired or revoked; return the count."""


def introspect_tokens(authentication: Authentication, now: datetime) -> Introspection:
    """
    Compute token activity of ``authentication`` at ``now``.

    Revoked slots count as inactive.
    """

    def _status(token: Token | None) -> TokenIntrospection:
        return TokenIntrospection(active=token is not None and token.is_active(now))

    return Introspection(
        access_token=_status(authentication.access_token),
        refresh_token=_status(authentication.refresh_token),
    )


def both_tokens_active(authentication: Authentication, now: datetime) -> bool:
    """Return ``True`` when both the access and refresh token are still active."""
    result = introspect_tokens(authentication, now)
    return result.access_token.active and result.refresh_token.active


class InMemoryAuthenticationRepository(AuthenticationRepository):
    """
    Map-backed repository double keyed by identifier string.

    Token values are kept in plaintext. Optional hooks observe writes:
    ``on_persist`` receives every stored record, ``on_remove`` every record
    that was revoked or deleted.
    """

    def __init__(
        self,
        *,
        issuer: TokenIssuer,
        instances: Iterable[Authentication] = (),
        on_persist: Callable[[Authentication], None] | None = None,
        on_remove: Callable[[Authentication], None] | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.issuer = issuer
        self.clock = clock
        self._on_persist = on_persist
        self._on_remove = on_remove
        self._instances: dict[str, Authentication] = {
            instance.identifier.value: instance for instance in instances
        }
        self._roles: dict[str, Role] = {}

    # ------------------------- helpers -------------------------

    def _store(self, authentication: Authentication) -> Authentication:
        self._instances[authentication.identifier.value] = authentication
        if self._on_persist is not None:
            self._on_persist(authentication)
        return authentication

    def abilities_of(self, identifier: AuthenticationIdentifier) -> list[str]:
        if identifier.value not in self._instances:
            raise NotFoundError("Authentication", identifier.value)
        role = self._roles.get(identifier.value)
        return [role.value] if role is not None else []

    def all(self) -> list[Authentication]:
        """Return a snapshot of every stored record."""
        return list(self._instances.values())

    # -------------------------- API ----------------------------

    def persist(
        self,
        identifier: AuthenticationIdentifier,
        user: UserIdentifier,
        role: Role,
        *,
        name: str | None = None,
    ) -> Authentication:
        now = self.clock()
        existing = self._instances.get(identifier.value)
        if existing is not None and existing.user != user:
            raise ConflictError(f"Authentication {identifier.value} belongs to another user.")
        if existing is not None and both_tokens_active(existing, now):
            return existing

        pair = self.issuer.issue_pair(now)
        self._roles[identifier.value] = role
        return self._store(
            Authentication(
                identifier=identifier,
                user=user,
                access_token=pair.access_token,
                refresh_token=pair.refresh_token,
            )
        )

    def find(self, identifier: AuthenticationIdentifier) -> Authentication:
        instance = self._instances.get(identifier.value)
        if instance is None:
            raise NotFoundError("Authentication", identifier.value)
        return instance

    def find_by_token(self, value: str, token_type: TokenType) -> Authentication:
        for instance in self._instances.values():
            token = instance.token(token_type)
            if token is not None and token.value == value:
                return instance
        raise InvalidTokenError("Token not found.")

    def introspection(self, authentication: Authentication) -> Introspection:
        stored = self.find(authentication.identifier)
        return introspect_tokens(stored, self.clock())

    def refresh(self, identifier: AuthenticationIdentifier) -> Authentication:
        now = self.clock()
        current = self._instances.get(identifier.value)
        if current is None or current.refresh_token is None:
            raise InvalidTokenError("Refresh token is invalid.")
        if not current.refresh_token.is_active(now):
            raise InvalidTokenError("Refresh token has expired.")

        pair = self.issuer.issue_pair(now)
        return self._store(
            replace(current, access_token=pair.access_token, refresh_token=pair.refresh_token)
        )

    def revoke(self, identifier: AuthenticationIdentifier, token_type: TokenType) -> None:
        current = self._instances.get(identifier.value)
        if current is None or current.token(token_type) is None:
            raise InvalidTokenError("Token not found.")

        if token_type is TokenType.ACCESS:
            revoked = replace(current, access_token=None)
        else:
            revoked = replace(current, refresh_token=None)
        self._instances[identifier.value] = revoked
        if self._on_remove is not None:
            self._on_remove(revoked)

    def logout(self, identifier: AuthenticationIdentifier) -> None:
        removed = self._instances.pop(identifier.value, None)
        if removed is None:
            raise NotFoundError("Authentication", identifier.value)
        self._roles.pop(identifier.value, None)
        if self._on_remove is not None:
            self._on_remove(removed)

    def purge_expired(self, now: datetime | None = None) -> int:
        moment = now or self.clock()
        dead = [
            key
            for key, instance in self._instances.items()
            if not any(
                token is not None and token.is_active(moment)
                for token in (instance.access_token, instance.refresh_token)
            )
        ]
        for key in dead:
            removed = self._instances.pop(key)
            self._roles.pop(key, None)
            if self._on_remove is not None:
                self._on_remove(removed)
        return len(dead)
