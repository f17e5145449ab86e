"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from memorial.core.errors import InvalidToken
from memorial.services._shared.base import BaseService
from memorial.services._shared.errors import ServiceError
from memorial.services.authentication.service import AuthenticationService
from memorial.services.authentication.values import Authentication

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "Bearer "


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def json_body() -> dict[str, Any]:
    """Return the request JSON object, or an empty mapping when absent."""

    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def translate_service_errors(func: F) -> F:
    """Re-raise service-layer errors as their RFC 7807 API counterparts."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise BaseService.translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def bearer_value() -> str:
    """Extract the bearer value from the ``Authorization`` header.

    :raises InvalidToken: When the header is missing or not a bearer token.
    """

    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX) or not header[len(BEARER_PREFIX) :].strip():
        raise InvalidToken("Missing bearer token")
    return header[len(BEARER_PREFIX) :].strip()


def require_auth(func: F) -> F:
    """Ensure the request carries an active access token.

    The resolved :class:`Authentication` is available through
    :func:`current_authentication` for the rest of the request.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        value = bearer_value()
        try:
            g.authentication = AuthenticationService().authenticate_bearer(value)
        except ServiceError as exc:
            raise BaseService.translate_exceptions(exc) from exc
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_authentication() -> Authentication:
    """Return the authentication resolved by :func:`require_auth`."""

    authentication = getattr(g, "authentication", None)
    if authentication is None:
        raise InvalidToken("Missing bearer token")
    return cast(Authentication, authentication)
