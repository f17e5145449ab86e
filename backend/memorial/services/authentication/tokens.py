# comments in English; reST docstrings
"""
Token issuance and storage digests.

Token strings are ``<prefix><entropy>|<crc32>``: 40 alphanumeric characters
drawn from :mod:`secrets` followed by the CRC32 of that entropy as 8 hex
digits. Storage only ever sees :meth:`TokenHasher.digest` of a value.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string
import zlib
from dataclasses import dataclass
from datetime import datetime, timedelta

from memorial.services._shared.values import as_utc
from memorial.services.authentication.values import TOKEN_SEPARATOR, Token, TokenType

ENTROPY_LENGTH = 40
ENTROPY_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True, slots=True)
class TokenPair:
    """Freshly issued access and refresh tokens."""

    access_token: Token
    refresh_token: Token


class TokenIssuer:
    """
    Issue opaque bearer tokens with absolute expiries.

    :param access_ttl: Lifetime of access tokens.
    :type access_ttl: timedelta
    :param refresh_ttl: Lifetime of refresh tokens.
    :type refresh_ttl: timedelta
    :param prefix: Optional static prefix prepended to every value.
    :type prefix: str
    """

    def __init__(self, *, access_ttl: timedelta, refresh_ttl: timedelta, prefix: str = "") -> None:
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.prefix = prefix

    def ttl(self, token_type: TokenType) -> timedelta:
        """Return the configured lifetime for ``token_type``."""
        return self.access_ttl if token_type is TokenType.ACCESS else self.refresh_ttl

    def generate_value(self) -> str:
        """
        Build a new token string.

        :returns: ``prefix + entropy + "|" + crc32(entropy)``.
        :rtype: str
        """
        entropy = "".join(secrets.choice(ENTROPY_ALPHABET) for _ in range(ENTROPY_LENGTH))
        checksum = format(zlib.crc32(entropy.encode("ascii")), "08x")
        return f"{self.prefix}{entropy}{TOKEN_SEPARATOR}{checksum}"

    def issue(self, token_type: TokenType, now: datetime) -> Token:
        """
        Issue a token of ``token_type`` expiring ``ttl`` after ``now``.

        ``now`` is truncated to the second, the precision tokens compare at.
        """
        issued_at = as_utc(now).replace(microsecond=0)
        return Token(
            type=token_type,
            value=self.generate_value(),
            expires_at=issued_at + self.ttl(token_type),
        )

    def issue_pair(self, now: datetime) -> TokenPair:
        """Issue a fresh access + refresh pair sharing the same ``now``."""
        return TokenPair(
            access_token=self.issue(TokenType.ACCESS, now),
            refresh_token=self.issue(TokenType.REFRESH, now),
        )


class TokenHasher:
    """
    Keyed one-way digest of token values (HMAC-SHA256, 64 hex chars).

    :param secret: Server-side key.
    :type secret: str | bytes
    """

    def __init__(self, secret: str | bytes) -> None:
        if not secret:
            raise ValueError("Token hash secret must not be empty.")
        self._key = secret.encode("utf-8") if isinstance(secret, str) else secret

    def digest(self, value: str) -> str:
        """Return the hex digest stored in place of ``value``."""
        return hmac.new(self._key, value.encode("utf-8"), hashlib.sha256).hexdigest()

    def matches(self, value: str, stored: str) -> bool:
        """Compare a presented plaintext value against a stored digest."""
        return hmac.compare_digest(self.digest(value), stored)
