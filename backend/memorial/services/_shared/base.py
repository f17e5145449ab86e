# memorial/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from memorial.core import errors as api_errors
from memorial.services._shared.errors import (
    AuthenticationFailedError,
    ConflictError,
    InvalidArgumentError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
)
from memorial.services._shared.ports import Clock
from memorial.services._shared.values import utc_now
from memorial.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (auth, request ids, etc.).

    :param actor_id: Authenticated user identifier.
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Own the clock every unit of work hands to its repositories.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None, clock: Clock = utc_now) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (auth, tracing).
        :type ctx: ServiceContext | None
        :param clock: Source of "now" shared with the repositories.
        :type clock: Callable[[], datetime]
        """
        self.ctx = ctx or ServiceContext()
        self.clock = clock

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork(clock=self.clock)

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(clock=self.clock)

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, NotFoundError):
            # → 404 Not Found
            return api_errors.NotFound(str(exc))

        if isinstance(exc, InvalidTokenError):
            # → 401 Unauthorized
            return api_errors.InvalidToken(str(exc))

        if isinstance(exc, AuthenticationFailedError):
            # → 403 Forbidden
            return api_errors.Forbidden(str(exc))

        if isinstance(exc, InvalidArgumentError):
            # → 422 Unprocessable Entity
            return api_errors.UnprocessableEntity(str(exc))

        if isinstance(exc, ConflictError):
            # → 409 Conflict
            return api_errors.Conflict(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
