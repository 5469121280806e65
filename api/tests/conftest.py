from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bankrec.db import get_db
from bankrec.main import app
from bankrec.models.base import Base
from bankrec.models.bank import Bank
from bankrec.models.user import User
from bankrec.models import report_settings, statement  # noqa: F401  register tables


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture()
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def banks(db):
    rows = [Bank(code="BK1", name="First National"), Bank(code="BK2", name="Second Savings")]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture()
def user(db):
    u = User(email="clerk@example.com", display_name="Clerk")
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


@pytest.fixture()
def client(session_factory):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _past(statement_id, bank_code, reconciliation_date, **extra):
    """Lightweight history entry for the pure continuity/draft tests."""
    values = dict(
        id=statement_id,
        statement_id=statement_id,
        bank_code=bank_code,
        reconciliation_date=reconciliation_date,
        corrected_balance=Decimal("0"),
        corrected_book_balance=Decimal("0"),
        additions=[],
        deductions=[],
        book_additions=[],
        book_deductions=[],
    )
    values.update(extra)
    return SimpleNamespace(**values)


@pytest.fixture()
def past():
    return _past


@pytest.fixture()
def march_bk1():
    return _past(1, "BK1", date(2024, 3, 15))
