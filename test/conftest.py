import pytest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foundation import db, telemetry


@pytest.fixture
def engine():
    # Attempts run on worker threads, so the in-memory database must be shared
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    yield engine

    engine.dispose()


@pytest.fixture
def session(engine):
    Session = sessionmaker(bind=engine)

    with Session() as session:
        yield session


@pytest.fixture
def events():
    calls = []

    def handler(name, metadata):
        calls.append((name, metadata))

    telemetry.attach(
        "test-events",
        ["foundation.job.start", "foundation.job.stop", "foundation.job.exception"],
        handler,
    )

    yield calls

    telemetry.detach("test-events")


@pytest.fixture(autouse=True)
def reset_db_config():
    yield

    db.reset_config()
