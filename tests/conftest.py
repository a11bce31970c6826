"""
Pytest configuration and shared fixtures.

Unit tests never touch PostgreSQL: importer tests use the in-memory
FakeStore, persistence tests use an in-memory SQLite session.
"""

import os

os.environ.setdefault("SKIP_DB_INIT", "1")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rendezvous.db.session import Base


class FakeStore:
    """EntityStore keeping entities in lists; ``fail_on`` makes create calls raise."""

    def __init__(self, clients=None, services=None, fail_on=None):
        self.clients = [dict(client) for client in (clients or [])]
        self.services = [dict(service) for service in (services or [])]
        self.appointments = []
        self.fail_on = fail_on
        self.create_calls = 0

    def _create(self, bucket, data):
        self.create_calls += 1
        if self.fail_on is not None and self.fail_on(data):
            raise RuntimeError("Erreur de base de données")
        entity = dict(data, id=len(bucket) + 1 + (100 if bucket is self.appointments else 0))
        bucket.append(entity)
        return entity

    def create_client(self, data):
        return self._create(self.clients, data)

    def create_service(self, data):
        return self._create(self.services, data)

    def create_appointment(self, data):
        return self._create(self.appointments, data)

    def get_clients(self):
        return list(self.clients)

    def get_services(self):
        return list(self.services)


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def store_with_catalog():
    """Store pre-loaded with one client and two services."""
    return FakeStore(
        clients=[{"id": 1, "firstName": "Jean", "lastName": "Dupont", "email": "jean.dupont@example.com"}],
        services=[
            {"id": 1, "name": "Consultation Premium", "duration": 90, "price": 125.0},
            {"id": 2, "name": "Coupe", "duration": 30, "price": 40.0},
        ],
    )


@pytest.fixture
def db_session():
    from rendezvous.db import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
