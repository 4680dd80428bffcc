"""
Pytest fixtures for clubpos backend tests.

Provides the Flask app on an in-memory database, a test client, an
in-memory state store, a controllable clock and deterministic ids.
"""

import itertools

import pytest
from clubpos import create_app
from clubpos.extensions import db
from clubpos.models import KeyValueRecord
from clubpos.storage import InMemoryKeyValueStore


# 2024-06-10T12:00:00Z
NOON = 1718020800000


class FakeClock:
    """Epoch-ms clock the test moves by hand."""

    def __init__(self, start: int = NOON):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, *, minutes: float = 0, seconds: float = 0, ms: int = 0) -> int:
        self.now += int(minutes * 60_000) + int(seconds * 1000) + ms
        return self.now


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PAYMENT_PROCESSING_DELAY_SECONDS': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh state documents for each test."""
    with app.app_context():
        db.session.query(KeyValueRecord).delete()
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def store():
    return InMemoryKeyValueStore()


@pytest.fixture(scope='function')
def clock():
    return FakeClock()


@pytest.fixture(scope='function')
def ids():
    """Deterministic id generator: session-1, item-2, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"
