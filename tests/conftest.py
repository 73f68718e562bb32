import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cookbook import app as app_module
from cookbook import models
from cookbook.db import Base, schema_capabilities


def make_engine(skip_tables=()):
    # StaticPool so the same in-memory database is shared across connections
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    tables = [t for t in Base.metadata.sorted_tables if t.name not in skip_tables]
    Base.metadata.create_all(bind=engine, tables=tables)
    return engine


@pytest.fixture
def engine():
    engine = make_engine()
    yield engine
    schema_capabilities.cache_clear()
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app_module.app.dependency_overrides[app_module.get_db] = override_get_db
    # Not entered as a context manager, so startup never touches the real database
    yield TestClient(app_module.app)
    app_module.app.dependency_overrides.clear()


@pytest.fixture
def signed_in(client, db):
    db.add(models.User(id="user-1", email="cook@example.com"))
    db.add(models.AuthSession(token="token-1", user_id="user-1"))
    db.commit()
    client.headers["Authorization"] = "Bearer token-1"
    return "user-1"


@pytest.fixture
def soup_payload():
    return {
        "title": "Test Soup",
        "servings": 2,
        "status": "published",
        "tags": ["Dinner"],
        "ingredients": [{"ingredient_text": "Water", "quantity": "2", "unit": "cups"}],
        "steps": [{"content": "Boil it", "ingredient_positions": [1]}],
    }
