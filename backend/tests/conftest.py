import os

# one shared in-memory database for the whole test run
os.environ["SITEPAY_DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from sitepay import models
from sitepay.database import SessionLocal, engine
from sitepay.main import app
from sitepay.registry import ComponentRegistry
from sitepay.store import COMPANIES, SITES, TEAMS, WORKERS, DocumentStore


@pytest.fixture(autouse=True)
def fresh_tables():
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return DocumentStore(db)


@pytest.fixture
def client():
    app.state.registry = ComponentRegistry(SessionLocal)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seeded(store):
    """A monthly worker on team t1 of company c1, plus a site."""
    store.create(COMPANIES, {"name": "다원건설", "type": "constructor"}, doc_id="c1")
    store.create(TEAMS, {"name": "1팀", "company_id": "c1", "company_name": "다원건설"}, doc_id="t1")
    store.create(SITES, {"name": "강남현장"}, doc_id="s1")
    store.create(WORKERS, {
        "name": "김철수",
        "id_number": "800101-1******",
        "team_id": "t1",
        "team_name": "1팀",
        "company_id": "c1",
        "company_name": "다원건설",
        "bank_name": "국민은행",
        "account_number": "123-456-789",
        "account_holder": "김철수",
        "unit_price": 150000,
        "pay_model": "monthly",
    }, doc_id="w1")
    return store
