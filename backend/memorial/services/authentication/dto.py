# memorial/services/authentication/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from memorial.services.authentication.values import TokenType

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param identifier: Client-chosen authentication identifier (UUID).
    :type identifier: str
    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    identifier: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class TokenIn:
    """
    Input DTO carrying a presented token.

    :param type: Declared token type.
    :type type: TokenType
    :param value: Bearer value as handed out at issuance.
    :type value: str
    :param expires_at: Expiry echoed back by the client (informational).
    :type expires_at: datetime | None
    """

    type: TokenType
    value: str
    expires_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param identifier: Authentication identifier to delete.
    :type identifier: str
    """

    identifier: str


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_ttl: Access token lifetime.
    :type access_ttl: timedelta
    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param tokenable_type: Discriminator stored for the polymorphic user link.
    :type tokenable_type: str
    :param token_prefix: Static prefix of issued token strings.
    :type token_prefix: str
    :param hash_secret: Key of the stored token digests.
    :type hash_secret: str
    """

    access_ttl: timedelta
    refresh_ttl: timedelta
    tokenable_type: str
    token_prefix: str
    hash_secret: str

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthTokenConfig:
        """
        Build the configuration from a Flask-style config mapping.

        TTL keys are expressed in minutes. ``TOKEN_HASH_SECRET`` falls back to
        ``SECRET_KEY`` when unset.
        """
        return cls(
            access_ttl=timedelta(minutes=int(config.get("ACCESS_TOKEN_TTL", 60))),
            refresh_ttl=timedelta(minutes=int(config.get("REFRESH_TOKEN_TTL", 1440))),
            tokenable_type=str(config.get("TOKENABLE_TYPE", "memorial.models.user.User")),
            token_prefix=str(config.get("TOKEN_PREFIX", "") or ""),
            hash_secret=str(config.get("TOKEN_HASH_SECRET") or config.get("SECRET_KEY") or ""),
        )
