import pytest
from fastapi.testclient import TestClient

from beetracker import db
from beetracker.main import app

DATE = "2096-01-01"
LETTERS = ["T", "I", "A", "O", "L", "K", "C"]


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}"


@pytest.fixture
def client(db_url):
    db.configure_engine(db_url)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def day(client):
    r = client.post("/api/days", json={"date": DATE, "letters": LETTERS})
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def anyio_backend():
    return "asyncio"


def add(client, word, date=DATE, **extra):
    r = client.post(f"/api/days/{date}/words", json={"word": word, **extra})
    assert r.status_code in (200, 201), r.text
    return r.json()


def words_by_position(client, date=DATE):
    return [w["word"] for w in client.get(f"/api/days/{date}/words").json()]


def to_backfill(client, date=DATE):
    r = client.patch(f"/api/days/{date}", json={"current_stage": "backfill"})
    assert r.status_code == 200, r.text
    return r.json()
