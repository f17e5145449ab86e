"""Unit tests for SQLAlchemyAuthenticationRepository."""

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from memorial.models.authentication import AuthenticationRecord
from memorial.repositories.authentication import SQLAlchemyAuthenticationRepository
from memorial.services._shared.errors import ConflictError, InvalidTokenError, NotFoundError
from memorial.services._shared.values import as_utc
from memorial.services.authentication.values import AuthenticationIdentifier, TokenType
from memorial.services.users.values import Role, UserIdentifier
from tests.factories.authentication import AuthenticationRecordFactory
from tests.factories.user import UserFactory

TOKENABLE_TYPE = "memorial.models.user.User"


def _new_id() -> AuthenticationIdentifier:
    return AuthenticationIdentifier(str(uuid4()))


class TestSQLAlchemyAuthenticationRepository:
    """Ensure the relational adapter honours the token lifecycle."""

    @pytest.fixture()
    def repo(self, session, issuer, hasher, clock):
        return SQLAlchemyAuthenticationRepository(
            session=session,
            issuer=issuer,
            hasher=hasher,
            tokenable_type=TOKENABLE_TYPE,
            clock=clock,
        )

    @pytest.fixture()
    def user(self, session):
        u = UserFactory(first_name="Ada", last_name="Lovelace", role=Role.ADMIN)
        session.commit()
        return u

    @pytest.fixture()
    def owner(self, user):
        return UserIdentifier(user.identifier)

    def test_persist_stores_digests_only(self, repo, session, owner, hasher):
        identifier = _new_id()

        authentication = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        row = session.get(AuthenticationRecord, identifier.value)
        assert row.token == hasher.digest(authentication.access_token.value)
        assert row.refresh_token == hasher.digest(authentication.refresh_token.value)
        assert row.token != authentication.access_token.value
        assert as_utc(row.expires_at) == authentication.access_token.expires_at
        assert row.tokenable_id == owner.value
        assert row.tokenable_type == TOKENABLE_TYPE
        assert row.abilities == ["ADMIN"]

    def test_persist_defaults_name_to_user_full_name(self, repo, session, owner):
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN)

        assert session.get(AuthenticationRecord, identifier.value).name == "LovelaceAda"

    def test_persist_keeps_explicit_name(self, repo, session, owner):
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN, name="console")

        assert session.get(AuthenticationRecord, identifier.value).name == "console"

    def test_persist_for_unknown_user_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.persist(_new_id(), UserIdentifier(str(uuid4())), Role.USER)

    def test_persist_reuses_active_pair_in_digest_form(self, repo, session, owner, clock, hasher):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(30)
        reused = repo.persist(identifier, owner, Role.ADMIN)

        assert reused.access_token.value == hasher.digest(issued.access_token.value)
        assert reused.access_token.expires_at == issued.access_token.expires_at
        assert repo.find_by_token(issued.access_token.value, TokenType.ACCESS).identifier == (
            identifier
        )

    @pytest.mark.parametrize("minute", [30, 90])
    def test_persist_rejects_identifier_owned_by_another_user(
        self, repo, session, owner, clock, minute
    ):
        intruder = UserFactory()
        session.commit()
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(minute)
        with pytest.raises(ConflictError):
            repo.persist(identifier, UserIdentifier(intruder.identifier), Role.USER)

        row = session.get(AuthenticationRecord, identifier.value)
        assert row.tokenable_id == owner.value
        assert row.abilities == ["ADMIN"]

    def test_persist_replaces_pair_once_access_expired(self, repo, session, owner, clock):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(90)
        renewed = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        assert renewed.access_token.value != issued.access_token.value
        with pytest.raises(InvalidTokenError):
            repo.find_by_token(issued.access_token.value, TokenType.ACCESS)
        rows = session.query(AuthenticationRecord).filter_by(identifier=identifier.value)
        assert rows.count() == 1

    def test_find_returns_digest_values(self, repo, session, owner, hasher):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        found = repo.find(identifier)
        assert found.user == owner
        assert found.refresh_token.value == hasher.digest(issued.refresh_token.value)

    def test_find_missing_raises(self, repo):
        with pytest.raises(NotFoundError):
            repo.find(_new_id())

    def test_find_by_token_records_last_use(self, repo, session, owner, clock):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(5)
        repo.find_by_token(issued.access_token.value, TokenType.ACCESS)
        session.commit()

        row = session.get(AuthenticationRecord, identifier.value)
        assert as_utc(row.last_used_at) == clock.now

    def test_find_by_token_unknown_or_wrong_type(self, repo, session, owner):
        issued = repo.persist(_new_id(), owner, Role.ADMIN)
        session.commit()

        with pytest.raises(InvalidTokenError):
            repo.find_by_token("unknown|00000000", TokenType.ACCESS)
        with pytest.raises(InvalidTokenError):
            repo.find_by_token(issued.access_token.value, TokenType.REFRESH)

    def test_introspection_reports_each_token(self, repo, session, owner, clock):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(90)
        result = repo.introspection(issued)

        assert result.access_token.active is False
        assert result.refresh_token.active is True

    def test_refresh_rotates_and_invalidates_old_values(self, repo, session, owner, clock):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        clock.at_minute(90)
        rotated = repo.refresh(identifier)
        session.commit()

        assert rotated.identifier == identifier
        assert rotated.access_token.expires_at == clock.now + repo.issuer.access_ttl
        assert repo.find_by_token(rotated.refresh_token.value, TokenType.REFRESH).identifier == (
            identifier
        )
        with pytest.raises(InvalidTokenError):
            repo.find_by_token(issued.refresh_token.value, TokenType.REFRESH)

    def test_refresh_rejects_expired_revoked_or_missing(self, repo, session, owner, clock):
        expired = _new_id()
        revoked = _new_id()
        repo.persist(expired, owner, Role.ADMIN)
        repo.persist(revoked, owner, Role.ADMIN)
        repo.revoke(revoked, TokenType.REFRESH)
        session.commit()

        with pytest.raises(InvalidTokenError):
            repo.refresh(revoked)
        with pytest.raises(InvalidTokenError):
            repo.refresh(_new_id())
        clock.at_minute(1440)
        with pytest.raises(InvalidTokenError):
            repo.refresh(expired)

    def test_revoke_nulls_digest_and_expiry(self, repo, session, owner):
        identifier = _new_id()
        issued = repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        repo.revoke(identifier, TokenType.ACCESS)
        session.commit()

        row = session.get(AuthenticationRecord, identifier.value)
        assert row.token is None
        assert row.expires_at is None
        assert row.refresh_token is not None
        found = repo.find(identifier)
        assert found.access_token is None
        assert repo.introspection(found).access_token.active is False
        assert repo.find_by_token(issued.refresh_token.value, TokenType.REFRESH).identifier == (
            identifier
        )

    def test_revoke_twice_or_missing_is_invalid(self, repo, session, owner):
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN)
        repo.revoke(identifier, TokenType.REFRESH)

        with pytest.raises(InvalidTokenError):
            repo.revoke(identifier, TokenType.REFRESH)
        with pytest.raises(InvalidTokenError):
            repo.revoke(_new_id(), TokenType.ACCESS)

    def test_logout_deletes_row(self, repo, session, owner):
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN)
        session.commit()

        repo.logout(identifier)
        session.commit()

        assert session.get(AuthenticationRecord, identifier.value) is None
        with pytest.raises(NotFoundError):
            repo.logout(identifier)

    def test_abilities_of(self, repo, session, owner):
        identifier = _new_id()
        repo.persist(identifier, owner, Role.ADMIN)

        assert repo.abilities_of(identifier) == ["ADMIN"]
        with pytest.raises(NotFoundError):
            repo.abilities_of(_new_id())

    def test_purge_expired_removes_only_dead_rows(self, repo, session, clock):
        hour = timedelta(hours=1)
        live = AuthenticationRecordFactory(
            expires_at=clock.now - hour, refresh_token_expires_at=clock.now + hour
        )
        expired = AuthenticationRecordFactory(
            expires_at=clock.now - 2 * hour, refresh_token_expires_at=clock.now - hour
        )
        revoked = AuthenticationRecordFactory(
            token=None, expires_at=None, refresh_token=None, refresh_token_expires_at=None
        )
        session.commit()
        live_id, expired_id, revoked_id = live.identifier, expired.identifier, revoked.identifier

        purged = repo.purge_expired()
        session.commit()

        assert purged == 2
        remaining = {row.identifier for row in session.query(AuthenticationRecord).all()}
        assert live_id in remaining
        assert expired_id not in remaining
        assert revoked_id not in remaining
