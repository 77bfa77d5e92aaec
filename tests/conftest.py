# tests/conftest.py
# Set environment variables BEFORE any imports that read them
import os
os.environ["JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["REDIS_URL"] = ""

import threading
import time
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from convert_server.accounts import new_api_key, new_user
from convert_server.config import Settings
from convert_server.database import Base, make_engine, make_session_factory
from convert_server.engine import ConversionEngine, ConversionError, PlaceholderEngine
from convert_server.main import create_app
from convert_server.plans import Plan
from convert_server.store import SqlStore

JWT_SECRET = "test-jwt-secret-for-testing-only"
PASSWORD = "correct-horse-battery"


class GatedEngine(ConversionEngine):
    """Blocks every conversion until `release` is set."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self._inner = PlaceholderEngine()

    def convert(self, tool, input_path, output_path, options=None):
        self.started.set()
        self.release.wait(timeout=10)
        self._inner.convert(tool, input_path, output_path, options)


class FailingEngine(ConversionEngine):
    def convert(self, tool, input_path, output_path, options=None):
        raise ConversionError("Corrupt input document")


class BrokenDiskEngine(ConversionEngine):
    def convert(self, tool, input_path, output_path, options=None):
        raise PermissionError(13, "Permission denied", str(output_path))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        jwt_secret=JWT_SECRET,
        upload_dir=str(tmp_path / "uploads"),
        redis_url="",
        max_concurrent_jobs=2,
    )


@pytest.fixture
def store(settings):
    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    yield SqlStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def make_user(store):
    """Create a user directly in the store; returns (user, api_key_secret)."""

    def _make(email="alice@example.com", plan=Plan.FREE, **fields):
        user = new_user(email, PASSWORD, plan)
        for name, value in fields.items():
            setattr(user, name, value)
        api_key, secret = new_api_key(user.id)
        store.create_user(user, api_key)
        return user, secret

    return _make


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
def register(client):
    """Register through the API; returns the response ``data``."""

    def _register(email="alice@example.com", password=PASSWORD):
        response = client.post("/api/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _register


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def upload(name="report.pdf", size=1024, content=None):
    return {"file": (name, content if content is not None else b"%PDF" + b"x" * (size - 4), "application/pdf")}


def wait_for_status(client, job_id, headers=None, statuses=("completed", "failed"), timeout=5.0):
    """Poll the status endpoint until the job reaches one of ``statuses``."""
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/api/jobs/{job_id}", headers=headers or {}).json()
        if body["data"]["status"] in statuses or time.monotonic() > deadline:
            return body["data"]
        time.sleep(0.02)


def write_input(artifacts, name="report.pdf", content=b"%PDF-1.7 test"):
    """Place an input file in the artifact store and return its ref."""
    artifacts.ensure_dirs()
    ref = f"inputs/{Path(name).stem}_test{Path(name).suffix}"
    artifacts.path(ref).write_bytes(content)
    return ref
