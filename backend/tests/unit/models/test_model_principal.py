"""Tests for the PrincipalRecord model."""

from __future__ import annotations

import pytest
from authcore.models.principal import PrincipalRecord
from sqlalchemy.exc import IntegrityError
from tests.factories.principal import DEFAULT_PASSWORD, PrincipalRecordFactory
from werkzeug.security import check_password_hash


class TestPrincipalRecord:
    def test_defaults(self, session):
        row = PrincipalRecord(username="dave", email="dave@example.com", password_digest="x")
        session.add(row)
        session.commit()

        assert len(row.id) == 36
        assert row.role == "customer"
        assert row.is_active is True
        assert row.is_email_verified is False
        assert row.created_at is not None
        assert repr(row) == f"<PrincipalRecord id={row.id}>"

    def test_email_normalized_and_unique(self, session):
        PrincipalRecordFactory(email="Alice@Example.com", username="alice")
        session.commit()
        assert session.query(PrincipalRecord).filter_by(username="alice").one().email == (
            "alice@example.com"
        )

        session.add(
            PrincipalRecord(username="alice2", email="alice@example.com", password_digest="x")
        )
        with pytest.raises(IntegrityError):
            session.commit()

    def test_username_unique(self, session):
        PrincipalRecordFactory(username="bob")
        session.commit()

        session.add(PrincipalRecord(username="bob", email="bob2@example.com", password_digest="x"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_username_trimmed(self):
        row = PrincipalRecord(username="  eve  ", email="eve@example.com", password_digest="x")
        assert row.username == "eve"

    @pytest.mark.parametrize("email", ["", "no-at-sign", "user@localhost"])
    def test_email_validation(self, email):
        with pytest.raises(ValueError):
            PrincipalRecord(username="u", email=email, password_digest="x")

    def test_username_required(self):
        with pytest.raises(ValueError):
            PrincipalRecord(username="   ", email="u@example.com", password_digest="x")

    def test_factory_password_digest(self, session):
        # The factory hashes the default password with werkzeug
        row = PrincipalRecordFactory()
        assert check_password_hash(row.password_digest, DEFAULT_PASSWORD)
