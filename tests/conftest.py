from pathlib import Path

from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / ".env.test"
load_dotenv(env_file)

import uuid  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.db.base  # noqa: E402, F401
from app.core.rate_limit import limiter  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.session import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from tests.utils.factories import create_video_session_factory  # noqa: E402


@pytest.fixture
def memory_engine():
    """In-memory SQLite engine shared across connections of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(memory_engine):
    session_factory = sessionmaker(bind=memory_engine, autocommit=False, autoflush=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
async def test_app(db_session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.reset()

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def test_client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def learner_id():
    return uuid.uuid4()


@pytest.fixture
def admin_id():
    return uuid.uuid4()


@pytest.fixture
def test_user_token(learner_id):
    return create_access_token({"sub": str(learner_id), "role": "learner"})


@pytest.fixture
def test_admin_token(admin_id):
    return create_access_token({"sub": str(admin_id), "role": "admin"})


@pytest.fixture
def test_session(db_session):
    """A ten minute session with a known duration."""
    return create_video_session_factory(db_session, duration_seconds=600)


@pytest.fixture
def session_without_duration(db_session):
    return create_video_session_factory(
        db_session, duration_seconds=None, video_url="https://vimeo.com/76979871"
    )
