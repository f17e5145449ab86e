"""Authentication record: one row per issued access/refresh token pair."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memorial.core.extensions import db

from .base import ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class AuthenticationRecord(ReprMixin, TimestampMixin, db.Model):
    """
    Storage row of an authentication.

    Token columns hold keyed digests, never plaintext values. A revoked token
    has both its digest and expiry set to ``NULL``.

    Fields
    ------
    identifier : str
        Client-chosen UUID primary key.
    tokenable_id : str
        Owning user identifier.
    tokenable_type : str
        Discriminator of the polymorphic owner association.
    name : str
        Display name captured at issuance.
    token : str | None
        Digest of the access token.
    expires_at : datetime | None
        Access token expiry.
    refresh_token : str | None
        Digest of the refresh token.
    refresh_token_expires_at : datetime | None
        Refresh token expiry.
    abilities : list[str] | None
        Role names captured at issuance (not re-derived later).
    last_used_at : datetime | None
        Last time a bearer lookup resolved to this row.
    """

    __tablename__ = "authentications"

    identifier: Mapped[str] = mapped_column(String(36), primary_key=True)
    tokenable_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.identifier", ondelete="CASCADE"), nullable=False
    )
    tokenable_type: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    refresh_token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    abilities: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", lazy="joined")

    __table_args__ = (Index("ix_authentications_tokenable_id", "tokenable_id"),)
