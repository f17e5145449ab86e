"""Authentication request and response Marshmallow schemas.

Wire keys are camelCase (``accessToken``, ``expiresAt``); datetimes are ISO
8601 with an offset.
"""

from __future__ import annotations

from datetime import UTC
from typing import Any

from marshmallow import (
    EXCLUDE,
    Schema,
    ValidationError,
    fields,
    post_load,
    validate,
    validates_schema,
)

from memorial.services.authentication.dto import LoginIn, LogoutIn, TokenIn
from memorial.services.authentication.values import TokenType

# --------------------------------- Requests ----------------------------------


class LoginSchema(Schema):
    """Input payload for signing in."""

    class Meta:
        unknown = EXCLUDE

    identifier = fields.UUID(required=True)
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=255))

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> LoginIn:
        return LoginIn(
            identifier=str(data["identifier"]),
            email=data["email"],
            password=data["password"],
        )


class TokenSchema(Schema):
    """A token echoed back by the client."""

    class Meta:
        unknown = EXCLUDE

    type = fields.Enum(TokenType, required=True)
    value = fields.String(required=True, validate=validate.Length(min=1))
    expires_at = fields.AwareDateTime(required=True, data_key="expiresAt", default_timezone=UTC)


class TokenRequestSchema(Schema):
    """``{"token": {...}}`` envelope used by introspect and revoke."""

    class Meta:
        unknown = EXCLUDE

    token = fields.Nested(TokenSchema, required=True)

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> TokenIn:
        token = data["token"]
        return TokenIn(type=token["type"], value=token["value"], expires_at=token["expires_at"])


class RefreshRequestSchema(TokenRequestSchema):
    """Token envelope that only accepts a refresh token."""

    @validates_schema
    def require_refresh(self, data: dict[str, Any], **_: Any) -> None:
        if data["token"]["type"] is not TokenType.REFRESH:
            raise ValidationError("Must be a REFRESH token.", field_name="token")


class LogoutSchema(Schema):
    """Input payload for logging out an authentication."""

    class Meta:
        unknown = EXCLUDE

    identifier = fields.UUID(required=True)

    @post_load
    def make_dto(self, data: dict[str, Any], **_: Any) -> LogoutIn:
        return LogoutIn(identifier=str(data["identifier"]))


# -------------------------------- Encoders -----------------------------------


class TokenOutSchema(Schema):
    """Token encoder: ``{type, value, expiresAt}``."""

    type = fields.Enum(TokenType)
    value = fields.String()
    expires_at = fields.AwareDateTime(data_key="expiresAt", default_timezone=UTC)


class AuthenticationOutSchema(Schema):
    """Authentication encoder; revoked slots are ``null``."""

    identifier = fields.Function(lambda obj: obj.identifier.value)
    access_token = fields.Nested(TokenOutSchema, data_key="accessToken", allow_none=True)
    refresh_token = fields.Nested(TokenOutSchema, data_key="refreshToken", allow_none=True)


class TokenIntrospectionOutSchema(Schema):
    active = fields.Boolean()


class IntrospectionOutSchema(Schema):
    """``{active, accessToken: {active}, refreshToken: {active}}``.

    ``active`` reflects the token that was presented.
    """

    active = fields.Boolean()
    access_token = fields.Nested(TokenIntrospectionOutSchema, data_key="accessToken")
    refresh_token = fields.Nested(TokenIntrospectionOutSchema, data_key="refreshToken")


class ProfileOutSchema(Schema):
    """Bearer profile returned by ``GET /auth/me``."""

    identifier = fields.Function(lambda obj: obj.identifier.value)
    user = fields.Function(lambda obj: obj.user.value)
    abilities = fields.List(fields.String())
