import io
import sys
from pathlib import Path

# ensure project root is importable for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from config import Settings


def build_settings(tmp_path, **overrides) -> Settings:
    values = {
        "mode": "development",
        "database_url": "sqlite://",
        "secret_key": "test-secret",
        "upload_dir": tmp_path / "uploads",
        "geocoder_url": "https://geocoder.test/reverse",
        "service_region": "Maharashtra",
    }
    values.update(overrides)
    return Settings(**values)


def build_app(settings: Settings):
    from main import create_app

    app = create_app(settings)
    app.state.store.create_tables()
    return app


def register(client: TestClient, username: str, role: str = "individual", **extra):
    payload = {
        "username": username,
        "password": "secret123",
        "fullName": f"{username.title()} Person",
        "role": role,
    }
    payload.update(extra)
    r = client.post("/api/register", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def png_bytes(size=(4, 4)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=(200, 120, 40)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def settings(tmp_path):
    return build_settings(tmp_path)


@pytest.fixture
def app(settings):
    """A fresh app with its own in-memory store and upload directory per test."""
    app = build_app(settings)
    yield app
    app.state.store.dispose()


@pytest.fixture
def make_client(app):
    """One TestClient per account so cookie jars stay separate."""

    def _make() -> TestClient:
        return TestClient(app)

    return _make


@pytest.fixture
def anon(make_client):
    return make_client()


@pytest.fixture
def individual(make_client):
    client = make_client()
    client.account = register(client, "alice")
    return client


@pytest.fixture
def other_individual(make_client):
    client = make_client()
    client.account = register(client, "bob")
    return client


@pytest.fixture
def ngo(make_client):
    client = make_client()
    client.account = register(
        client, "pawscare", role="ngo", ngoName="PawsCare", ngoRegistration="NGO-001"
    )
    return client


@pytest.fixture
def other_ngo(make_client):
    client = make_client()
    client.account = register(client, "furfriends", role="ngo", ngoName="Fur Friends")
    return client


@pytest.fixture
def report_form():
    return {
        "animalType": "dog",
        "urgency": "urgent",
        "description": "Limping dog near the bus stop, left leg injured",
        "location": "FC Road, Pune",
    }


@pytest.fixture
def listing_form():
    return {
        "name": "Rex",
        "animalType": "dog",
        "gender": "male",
        "age": "2 years",
        "vaccinated": "yes",
        "description": "Friendly stray, 10+ chars",
    }
