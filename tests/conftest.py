import os

# Must be set before the backend modules read their settings
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["SEED_DEMO_USERS"] = "false"

import pytest


@pytest.fixture
def engine():
    pytest.importorskip("sqlalchemy")
    from sqlalchemy import create_engine
    from sqlalchemy.pool import StaticPool

    from backend.core.database import init_db

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    from sqlalchemy.orm import sessionmaker

    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def users(db_session):
    from backend.core.security import hash_password
    from backend.repositories.user_repository import UserRepository

    repo = UserRepository(db_session)
    return [
        repo.create(email="ada@example.com", name="Ada Lovelace", password_hash=hash_password("password123")),
        repo.create(email="alan@example.com", name="Alan Turing", password_hash=hash_password("password123")),
    ]


@pytest.fixture
def app(session_factory):
    pytest.importorskip("fastapi")
    from backend.api.deps import get_db_dep
    from backend.app import create_app

    app = create_app()

    def _get_test_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db_dep] = _get_test_db
    return app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def login(client):
    """Put a valid session cookie for the given user into the test client."""
    from backend.core.security import create_session_token
    from backend.core.settings import settings

    def _login(user):
        client.cookies.set(settings.SESSION_COOKIE_NAME, create_session_token(user.id))
        return client

    return _login


@pytest.fixture
def anyio_backend():
    # The query cache and boundaries are built on asyncio primitives
    return "asyncio"
