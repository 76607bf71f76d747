"""Shared pytest fixtures for the test suite.

The app runs against an in-memory SQLite database (standing in for
PostgreSQL) and a mongomock client (standing in for MongoDB). Both are
rebuilt for every test.

Fixture overview
----------------
client        - TestClient with the app's lifespan running
student       - registered student: {"user_id", "token", "headers"}
company       - registered company
admin         - admin account created directly in the database
internship    - active posting owned by `company`
make_student  - factory for additional students
post_internship - factory for additional postings
"""

import os
import sqlite3
import tempfile
from datetime import datetime, timedelta

# Settings are read once, at import time
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="internhub-uploads-")
os.environ["LOG_LEVEL"] = "WARNING"

import mongomock
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, text
from sqlalchemy.pool import StaticPool

from internhub.core.auth import hash_password
from internhub.db import mongodb, postgres
from internhub.db.tables import metadata
from internhub.main import app
from internhub.services.realtime import manager
from internhub.utils.dates import utcnow

sqlite3.register_adapter(datetime, lambda value: value.isoformat(" "))

DESCRIPTION = (
    "Work with our platform team on internal tooling, code reviews and "
    "production services used by thousands of customers."
)


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
def databases():
    """Fresh SQLite schema and Mongo database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    metadata.create_all(engine)
    postgres.use_engine(engine)

    mongodb.use_client(mongomock.MongoClient(), "internhub_test")
    manager.__init__()

    yield engine

    engine.dispose()


@pytest.fixture
def client(databases):
    with TestClient(app) as test_client:
        yield test_client


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client, name: str, email: str, role: str = "student", **extra) -> dict:
    response = client.post("/api/auth/register", json={
        "name": name, "email": email, "password": "secret123", "role": role, **extra
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {"user_id": body["user_id"], "token": body["access_token"], "headers": auth_headers(body["access_token"])}


def internship_payload(**overrides) -> dict:
    now = utcnow()
    payload = {
        "title": "Backend Engineering Intern",
        "description": DESCRIPTION,
        "category": "Software Development",
        "location": {"type": "hybrid", "city": "Berlin", "country": "Germany"},
        "duration": "3 months",
        "stipend": {"amount": 1500, "currency": "EUR", "period": "monthly"},
        "skills": ["Python", "SQL"],
        "application_deadline": (now + timedelta(days=20)).isoformat(),
        "start_date": (now + timedelta(days=40)).isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_student(client):
    counter = {"n": 0}

    def factory(name: str = None) -> dict:
        counter["n"] += 1
        n = counter["n"]
        return register(client, name or f"Student {n}", f"student{n}@uni.edu")

    return factory


@pytest.fixture
def student(make_student):
    return make_student("Ada Lovelace")


@pytest.fixture
def company(client):
    return register(client, "Acme Recruiter", "jobs@acme.io", role="company", company_name="Acme Corp")


@pytest.fixture
def other_company(client):
    return register(client, "Globex Recruiter", "jobs@globex.io", role="company", company_name="Globex")


@pytest.fixture
def admin(client, databases):
    with databases.begin() as conn:
        result = conn.execute(
            text("""
                INSERT INTO users (name, email, password_hash, role)
                VALUES ('Site Admin', 'admin@internhub.io', :hash, 'admin')
                RETURNING user_id
            """),
            {"hash": hash_password("secret123")}
        )
        user_id = result.fetchone()[0]

    response = client.post("/api/auth/login", json={"email": "admin@internhub.io", "password": "secret123"})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"user_id": user_id, "token": token, "headers": auth_headers(token)}


@pytest.fixture
def post_internship(client, company):
    def factory(owner: dict = None, **overrides) -> dict:
        response = client.post(
            "/api/internships",
            json=internship_payload(**overrides),
            headers=(owner or company)["headers"]
        )
        assert response.status_code == 201, response.text
        return response.json()

    return factory


@pytest.fixture
def internship(post_internship):
    return post_internship()


def set_deadline(engine, internship_id: int, deadline: datetime) -> None:
    with engine.begin() as conn:
        conn.execute(
            text("UPDATE internships SET application_deadline = :deadline WHERE internship_id = :iid"),
            {"deadline": deadline, "iid": internship_id}
        )


class FakeSocket:
    """Collects frames instead of sending them."""

    def __init__(self, fail: bool = False):
        self.frames = []
        self.fail = fail

    async def send_json(self, frame):
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(frame)

    def events(self):
        return [f["event"] for f in self.frames]

    def data(self, event: str) -> list:
        return [f["data"] for f in self.frames if f["event"] == event]


def listen(account: dict, role: str) -> FakeSocket:
    """Register a fake socket for `account` with the live connection manager."""
    ws = FakeSocket()
    manager.register(ws, {"user_id": account["user_id"], "name": "Listener", "role": role})
    return ws
