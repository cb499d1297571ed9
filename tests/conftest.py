import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ownerchain.api.main import create_app
from ownerchain.core.ownership import OwnershipRegistry

from ownership_models import Account, Base, Category, Folder, Item, Note, Region, Site, Tag


@pytest.fixture(scope="session", autouse=True)
def _force_test_env():
    os.environ.setdefault("OWNERCHAIN_ENV", "dev")


@pytest.fixture()
def engine():
    # One shared in-memory database per test, visible to every session/thread
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture()
def session(session_factory):
    s: Session = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture()
def registry():
    return OwnershipRegistry(Base)


@pytest.fixture()
def seeded(session):
    """
    accounts: 9, 10
    folders:  5 -> 9, 6 -> 10, 7 -> (none)
    items:    1 -> folder 5 (tag 1), 2 -> folder 6, 3 -> (no folder), 4 -> folder 7
    tags:     1 -> 9, 2 -> 10
    notes:    1 -> item 1
    regions:  (jp, 13)
    sites:    1 -> (jp, 13), 2 -> (none)
    """
    tag1 = Tag(id=1, account_id=9, label="red")
    session.add_all(
        [
            Account(id=9, name="acme"),
            Account(id=10, name="globex"),
            Folder(id=5, account_id=9, name="inbox"),
            Folder(id=6, account_id=10, name="inbox"),
            Folder(id=7, account_id=None, name="orphan"),
            tag1,
            Tag(id=2, account_id=10, label="blue"),
            Item(id=1, folder_id=5, title="one", tags=[tag1]),
            Item(id=2, folder_id=6, title="two"),
            Item(id=3, folder_id=None, title="three"),
            Item(id=4, folder_id=7, title="four"),
            Note(id=1, item_id=1, body="hello"),
            Region(country="jp", code="13"),
            Site(id=1, region_country="jp", region_code="13"),
            Site(id=2),
            Category(id=1),
        ]
    )
    session.commit()
    return session


@pytest.fixture()
def client(registry, session_factory, seeded):
    return TestClient(create_app(registry, session_factory))
