import random

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from rangeround.engine.models import Hole
from rangeround.services.round_service import RoundService
from rangeround.storage import database  # noqa: F401  (registers the tables)
from rangeround.storage.offline import OfflineQueue
from rangeround.storage.repository import RoundStore


def make_hole(number=1, par=4, yardage=400, hazard=None, hazard_type=None,
              wind_direction="Left-to-Right", wind_speed=10):
    # Left-to-Right by default: no carry effect, only drift
    return Hole(
        number=number,
        par=par,
        yardage=yardage,
        hazard=hazard,
        hazard_type=hazard_type,
        wind_speed=wind_speed,
        wind_direction=wind_direction,
    )


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine):
    return RoundStore(engine=db_engine)


@pytest.fixture
def offline(tmp_path):
    return OfflineQueue(directory=str(tmp_path / "offline"))


@pytest.fixture
def service(store, offline):
    return RoundService(store=store, offline=offline, rng=random.Random(1234))


@pytest.fixture
def profile(store):
    return store.create_profile("Tester")
