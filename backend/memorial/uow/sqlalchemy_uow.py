"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from memorial.core.extensions import db, get_redis
from memorial.infra.redis.redis_authentication_repository import RedisAuthenticationRepository
from memorial.repositories import SQLAlchemyAuthenticationRepository, UserRepository
from memorial.services._shared.ports import AuthenticationRepository, Clock
from memorial.services._shared.values import utc_now
from memorial.services.authentication.dto import AuthTokenConfig
from memorial.services.authentication.tokens import TokenHasher, TokenIssuer
from memorial.uow.base import UnitOfWork


def build_authentication_repository(
    *,
    session: Session,
    storage: str,
    token_cfg: AuthTokenConfig,
    clock: Clock = utc_now,
) -> AuthenticationRepository:
    """Return the authentication store selected by ``storage``.

    :param session: Session used by the relational adapter.
    :param storage: ``"sqlalchemy"`` or ``"redis"``.
    :param token_cfg: Token emission settings.
    :param clock: Source of "now".
    :raises ValueError: On an unknown storage name.
    """
    issuer = TokenIssuer(
        access_ttl=token_cfg.access_ttl,
        refresh_ttl=token_cfg.refresh_ttl,
        prefix=token_cfg.token_prefix,
    )
    hasher = TokenHasher(token_cfg.hash_secret)
    if storage == "sqlalchemy":
        return SQLAlchemyAuthenticationRepository(
            session=session,
            issuer=issuer,
            hasher=hasher,
            tokenable_type=token_cfg.tokenable_type,
            clock=clock,
        )
    if storage == "redis":
        return RedisAuthenticationRepository(
            r=get_redis(),
            issuer=issuer,
            hasher=hasher,
            tokenable_type=token_cfg.tokenable_type,
            clock=clock,
        )
    raise ValueError(f"Unknown AUTH_STORAGE {storage!r}")


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session.

    ``authentications`` follows the ``AUTH_STORAGE`` setting of the current
    application.
    """

    def __init__(self, *, session: Session, clock: Clock = utc_now) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.authentications = build_authentication_repository(
            session=self.session,
            storage=str(current_app.config.get("AUTH_STORAGE", "sqlalchemy")),
            token_cfg=AuthTokenConfig.from_mapping(current_app.config),
            clock=clock,
        )


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    The same session is shared across all repositories for a consistent transaction.
    """

    def __init__(self, *, clock: Clock = utc_now) -> None:
        """Initialise the Unit of Work with a shared SQLAlchemy session.

        All repositories receive the same session instance so that they operate
        within the identical transactional context.
        """
        super().__init__(session=db.session, clock=clock)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first write.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work over the Flask-scoped session.

    - Owns a transaction when none is running and marks it ``READ ONLY`` on
      PostgreSQL and MySQL/MariaDB.
    - Blocks ORM flushes for the whole scope.
    - Discards pending changes on exit and never commits.
    """

    _READ_ONLY_DIALECTS = ("postgresql", "mysql", "mariadb")

    def __init__(self, *, clock: Clock = utc_now) -> None:
        super().__init__(session=db.session, clock=clock)
        self._txn: SessionTransaction | None = None
        self._guard = self._block_flush

    @staticmethod
    def _block_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: ORM flush blocked.")

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        if not self.session.in_transaction():
            self._txn = self.session.begin()
            dialect = self.session.get_bind().dialect.name
            if dialect in self._READ_ONLY_DIALECTS:
                try:
                    self.session.execute(text("SET TRANSACTION READ ONLY"))
                except SQLAlchemyError as exc:
                    current_app.logger.warning("SET TRANSACTION READ ONLY failed (%s).", exc)
        event.listen(self.session, "before_flush", self._guard)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        event.remove(self.session, "before_flush", self._guard)
        self.rollback()

    def commit(self) -> None:
        """
        :raises RuntimeError: always; a read-only scope never commits.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        """End an owned transaction, or drop pending changes of an outer one."""
        if self._txn is not None:
            if self._txn.is_active:
                self._txn.rollback()
            self._txn = None
            return
        for obj in list(self.session.new):
            self.session.expunge(obj)
        for obj in list(self.session.dirty):
            self.session.expire(obj)
