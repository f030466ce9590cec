import os
import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine
from starlette.testclient import TestClient

# Set up test config before any app imports
_tmpdir = tempfile.mkdtemp()
_data_dir = Path(__file__).resolve().parents[1] / "data"

_test_config_content = f"""\
srs:
  initial_ease: 2.5
  min_ease: 1.3
catalog:
  data_dir: "{_data_dir.as_posix()}"
database:
  url: "sqlite:///{_tmpdir}/test.db"
logging:
  level: "WARNING"
  file: "{_tmpdir}/test.log"
security:
  cors_origins:
    - "http://localhost"
"""

_test_config_path = Path(_tmpdir) / "config.yaml"
_test_config_path.write_text(_test_config_content)
os.environ["APP_CONFIG_PATH"] = str(_test_config_path)

from varnamala.core.config import get_config

get_config.cache_clear()

from varnamala.api.deps import get_srs_session
from varnamala.core.clock import FrozenClock
from varnamala.main import app
from varnamala.models.card import Card, Category  # noqa: F401
from varnamala.models.catalog import Catalog, CatalogEntry
from varnamala.services.card_store import CardStore
from varnamala.services.scheduler import SRSScheduler
from varnamala.services.srs_session import SRSSession

T0 = datetime(2024, 3, 1, 9, 0, 0)


def make_catalog(*entries: tuple[str, Category]) -> Catalog:
    return Catalog(CatalogEntry(item_id=item_id, category=category) for item_id, category in entries)


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(T0)


@pytest.fixture
def catalog() -> Catalog:
    # Categories deliberately interleaved so category sorting has work to do
    return make_catalog(
        ("v-a", Category.VOWEL),
        ("c-ka", Category.CONSONANT),
        ("v-aa", Category.VOWEL),
        ("m-aa", Category.MATRA),
        ("c-kha", Category.CONSONANT),
        ("cj-ksha", Category.CONJUNCT),
    )


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(test_engine)
    return test_engine


@pytest.fixture
def scheduler() -> SRSScheduler:
    return SRSScheduler()


@pytest.fixture
def store(engine, catalog, scheduler, clock) -> CardStore:
    return CardStore(engine, catalog, scheduler=scheduler, clock=clock)


@pytest.fixture
def srs(store) -> SRSSession:
    return SRSSession(store)


@pytest.fixture(name="client")
def client_fixture(srs):
    app.dependency_overrides[get_srs_session] = lambda: srs
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
