"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from apistem import registry

from example_presenters import ALL_PRESENTERS
from fixtures_schema import Base, seed


@pytest.fixture
def session():
    """Create a temporary in-memory database session with seed data."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    seed(session)

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture(autouse=True)
def presenters():
    """Start every test from the shared presenters and default settings."""
    registry.reset()
    for presenter_class in ALL_PRESENTERS:
        presenter_class.register()
    yield registry.presenter_collection()
    registry.reset()
