"""Shared pytest fixtures for the test suite.

The environment is pointed at an in-memory SQLite database and a throwaway blob
directory before the application is imported, so nothing touches real services.

Fixture overview
----------------
db_session: fresh schema per test, seeded with default task types
storage: LocalBlobStorage rooted in the test's tmp_path
summarizer: FakeSummarizer recording what it was asked to summarize
staff_user: stand-in for the authenticated user
client: TestClient with auth, storage and summarizer overridden
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["BLOB_STORAGE_PATH"] = tempfile.mkdtemp(prefix="casedesk-blobs-")
os.environ["ANTHROPIC_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from casedesk.auth import get_current_user
from casedesk.database import SessionLocal, engine, seed_defaults
from casedesk.dependencies import get_blob_storage, get_summarizer
from casedesk.main import app
from casedesk.models.database import Base
from casedesk.services.storage import LocalBlobStorage


class FakeSummarizer:
    def __init__(self):
        self.calls = []

    async def summarize(self, content: bytes, mime_type: str) -> str:
        self.calls.append((content, mime_type))
        return f"Summary of {len(content)} bytes of {mime_type}"

    async def summarize_data_uri(self, data_uri: str) -> str:
        self.calls.append((data_uri, None))
        return "Summary of inline document"


# ── Database ─────────────────────────────────────────────────────────────────


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    session = SessionLocal()
    seed_defaults(session)
    try:
        yield session
    finally:
        session.close()


# ── Services ─────────────────────────────────────────────────────────────────


@pytest.fixture
def storage(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(root=str(tmp_path / "blobs"), public_url="/blobs")


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def staff_user():
    return SimpleNamespace(id=1, username="mlopez", full_name="María López", is_active=True, is_admin=False)


@pytest.fixture
def client(db_session, storage, summarizer, staff_user):
    app.dependency_overrides[get_current_user] = lambda: staff_user
    app.dependency_overrides[get_blob_storage] = lambda: storage
    app.dependency_overrides[get_summarizer] = lambda: summarizer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ── Payload helpers ──────────────────────────────────────────────────────────


@pytest.fixture
def make_case(client):
    def _make_case(**overrides):
        payload = {
            "case_number": "2024-001",
            "client_name": "Juan Pérez",
            "type": "Civil",
            "status": "Abierto",
            "assigned_lawyer": "María López",
        }
        payload.update(overrides)
        response = client.post("/api/v1/cases", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_case


@pytest.fixture
def make_rate(client):
    def _make_rate(name="Consulta inicial", price=150.0, description=None):
        response = client.post(
            "/api/v1/billing/rates",
            json={"name": name, "price": price, "description": description},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make_rate


@pytest.fixture
def make_task(client):
    def _make_task(**overrides):
        payload = {
            "task_name": "Preparar demanda",
            "type": "Audiencia",
            "due_date": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
            "priority": "Alta",
            "status": "Pendiente",
        }
        payload.update(overrides)
        response = client.post("/api/v1/tasks", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _make_task
