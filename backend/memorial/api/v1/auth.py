"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint

from memorial.api.deps import (
    current_authentication,
    json_body,
    json_response,
    require_auth,
    timing,
    translate_service_errors,
)
from memorial.schemas import (
    AuthenticationOutSchema,
    IntrospectionOutSchema,
    LoginSchema,
    LogoutSchema,
    ProfileOutSchema,
    RefreshRequestSchema,
    TokenRequestSchema,
)
from memorial.services.authentication.service import AuthenticationService

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
token_request_schema = TokenRequestSchema()
refresh_request_schema = RefreshRequestSchema()
logout_schema = LogoutSchema()
authentication_schema = AuthenticationOutSchema()
introspection_schema = IntrospectionOutSchema()
profile_schema = ProfileOutSchema()


@bp.post("/login")
@timing
@translate_service_errors
def login():
    """Authenticate credentials and issue (or reuse) a token pair."""

    dto = login_schema.load(json_body())
    authentication = AuthenticationService().login(dto)
    return json_response({"data": authentication_schema.dump(authentication)})


@bp.post("/introspect")
@timing
@translate_service_errors
def introspect():
    """Report whether the presented token and its sibling are active."""

    dto = token_request_schema.load(json_body())
    result = AuthenticationService().introspect(dto)
    payload = {
        "active": result.of(dto.type).active,
        "access_token": result.access_token,
        "refresh_token": result.refresh_token,
    }
    return json_response({"data": introspection_schema.dump(payload)})


@bp.post("/refresh")
@timing
@translate_service_errors
def refresh():
    """Rotate both tokens using a live refresh token."""

    dto = refresh_request_schema.load(json_body())
    authentication = AuthenticationService().refresh(dto)
    return json_response({"data": authentication_schema.dump(authentication)})


@bp.post("/revoke")
@timing
@translate_service_errors
def revoke():
    """Revoke the presented token only."""

    dto = token_request_schema.load(json_body())
    AuthenticationService().revoke(dto)
    return json_response({})


@bp.post("/logout")
@require_auth
@timing
@translate_service_errors
def logout():
    """Delete an authentication owned by the bearer's user."""

    dto = logout_schema.load(json_body())
    AuthenticationService().logout(dto, actor=current_authentication())
    return json_response({})


@bp.get("/me")
@require_auth
@timing
@translate_service_errors
def me():
    """Return the bearer's authentication identifier, user and abilities."""

    profile = AuthenticationService().profile(current_authentication())
    return json_response({"data": profile_schema.dump(profile)})
