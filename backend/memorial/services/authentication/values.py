# comments in English; reST docstrings
"""
Authentication aggregate and its token values.

An :class:`Authentication` binds an identifier, the owning user and at most one
access and one refresh :class:`Token`. Instances are immutable: every lifecycle
step (refresh, revoke) produces a new instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from memorial.services._shared.errors import InvalidArgumentError
from memorial.services._shared.values import UniversallyUniqueIdentifier, as_utc
from memorial.services.users.values import UserIdentifier

TOKEN_SEPARATOR = "|"


class TokenType(Enum):
    """Kind of bearer credential."""

    ACCESS = "ACCESS"
    REFRESH = "REFRESH"


class AuthenticationIdentifier(UniversallyUniqueIdentifier):
    """Identifier of an authentication record (client-chosen UUID)."""

    __slots__ = ()


@dataclass(frozen=True, slots=True, eq=False)
class Token:
    """
    Bearer credential value.

    :param type: Access or refresh.
    :type type: TokenType
    :param value: Opaque non-empty string (plaintext at issuance, stored digest
        once rehydrated from storage).
    :type value: str
    :param expires_at: Absolute expiry.
    :type expires_at: datetime
    :raises InvalidArgumentError: On an empty value or wrongly typed fields.
    """

    type: TokenType
    value: str
    expires_at: datetime

    def __post_init__(self) -> None:
        if not isinstance(self.type, TokenType):
            raise InvalidArgumentError("Token type must be a TokenType.")
        if not isinstance(self.value, str) or not self.value:
            raise InvalidArgumentError("Token value must be a non-empty string.")
        if not isinstance(self.expires_at, datetime):
            raise InvalidArgumentError("Token expiry must be a datetime.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return (
            self.type is other.type
            and self.value == other.value
            and self._expiry_key() == other._expiry_key()
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self._expiry_key()))

    def _expiry_key(self) -> datetime:
        # Second precision, like the stored timestamp columns.
        return as_utc(self.expires_at).replace(microsecond=0)

    def split(self) -> list[str]:
        """Return the value split on ``|`` (entropy and checksum by convention)."""
        return self.value.split(TOKEN_SEPARATOR)

    def is_active(self, now: datetime) -> bool:
        """Return ``True`` while ``now`` is strictly before the expiry."""
        return as_utc(now) < as_utc(self.expires_at)


@dataclass(frozen=True, slots=True)
class Authentication:
    """
    Aggregate root of the token lifecycle.

    :param identifier: Authentication identifier.
    :param user: Owning user (foreign reference).
    :param access_token: Access token or ``None`` once revoked.
    :param refresh_token: Refresh token or ``None`` once revoked.
    :raises InvalidArgumentError: If a token sits in the slot of the other type.
    """

    identifier: AuthenticationIdentifier
    user: UserIdentifier
    access_token: Token | None = None
    refresh_token: Token | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, AuthenticationIdentifier):
            raise InvalidArgumentError("identifier must be an AuthenticationIdentifier.")
        if not isinstance(self.user, UserIdentifier):
            raise InvalidArgumentError("user must be a UserIdentifier.")
        if self.access_token is not None and self.access_token.type is not TokenType.ACCESS:
            raise InvalidArgumentError("access_token must be of type ACCESS.")
        if self.refresh_token is not None and self.refresh_token.type is not TokenType.REFRESH:
            raise InvalidArgumentError("refresh_token must be of type REFRESH.")

    def token(self, token_type: TokenType) -> Token | None:
        """Return the token held in the slot for ``token_type``."""
        if token_type is TokenType.ACCESS:
            return self.access_token
        return self.refresh_token


@dataclass(frozen=True, slots=True)
class TokenIntrospection:
    """Activity of a single token at introspection time."""

    active: bool


@dataclass(frozen=True, slots=True)
class Introspection:
    """
    Result of introspecting an authentication.

    A revoked slot (no value/expiry) is reported as inactive.
    """

    access_token: TokenIntrospection
    refresh_token: TokenIntrospection

    def of(self, token_type: TokenType) -> TokenIntrospection:
        """Return the entry for ``token_type``."""
        if token_type is TokenType.ACCESS:
            return self.access_token
        return self.refresh_token
