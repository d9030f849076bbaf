# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Shared fixtures: in-memory SQLite, clean tables per test, signed-in clients."""
import os

# ── Environment before any application import ────────────────────────────
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["OWNERSHIP_SCOPED"] = "true"
os.environ["APP_BASE_URL"] = "http://testserver"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("RESET_WEBHOOK_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

from coldcall.core.database import engine, init_schema
from coldcall.models.tables import metadata
from main import app

init_schema(engine)

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(delete(table))


@pytest.fixture
def client():
    return TestClient(app)


def signup(client: TestClient, email: str = "teacher@school.edu") -> dict:
    r = client.post("/api/v1/auth/signup", json={"email": email, "password": PASSWORD,
                                                  "first_name": "Ada", "last_name": "Lovelace"})
    assert r.status_code == 201, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client):
    return signup(client)


@pytest.fixture
def other_headers():
    return signup(TestClient(app), email="other@school.edu")


def class_payload(**overrides) -> dict:
    payload = {
        "name": "Intro to Databases",
        "classroom": "Mudd 833",
        "code": "COMS 4111",
        "start_time": "13:10",
        "end_time": "14:25",
        "start_date": "2026-01-20",
        "end_date": "2099-05-01",
        "students": [],
    }
    payload.update(overrides)
    return payload


def make_class(client: TestClient, headers: dict, students=(), **overrides) -> dict:
    body = class_payload(students=[{"name": n, "uni": u} for n, u in students], **overrides)
    r = client.post("/api/v1/classes", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()
