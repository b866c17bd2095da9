from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from worldweaver.api.deps import get_db
from worldweaver.core.storage import ImageStorage, get_storage
from worldweaver.main import app
from worldweaver.models import User, World, WorldCreate
from worldweaver.services.worlds import create_world
from worldweaver.tests.utils import make_user


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> ImageStorage:
    return ImageStorage(root=tmp_path, url_prefix="/static")


@pytest.fixture
def client(session: Session, storage: ImageStorage) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def owner(session: Session) -> User:
    return make_user(session, "owner@example.com")


@pytest.fixture
def outsider(session: Session) -> User:
    return make_user(session, "outsider@example.com")


@pytest.fixture
def world(session: Session, owner: User) -> World:
    return create_world(
        session=session,
        world_in=WorldCreate(
            name="Aerth",
            description="A shattered continent",
            genre_blend=["High Fantasy"],
            overall_tone="Hopeful",
        ),
        owner_id=owner.id,
    )
