"""Shared fixtures: an in-memory application, accounts, and auth headers."""

from __future__ import annotations

import io

import pytest
from PIL import Image


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Fresh application backed by an in-memory SQLite database."""
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("UPLOAD_PATH", str(tmp_path / "uploads"))
    monkeypatch.setenv("DEFAULT_AUTHORITY_EMAIL", "")
    monkeypatch.setenv("DEFAULT_AUTHORITY_PASSWORD", "")
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)

    from app import create_app
    from extensions import db

    application = create_app("testing")
    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_ctx(app):
    """Application context for tests that call the stores directly.

    HTTP tests must not run inside this context: the request would reuse it
    and carry the previous request's authenticated user along.
    """
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user():
    """Factory that registers an account; needs an active app context."""
    from models import UserRole
    from utils import user_directory

    counter = {"n": 0}

    def _make(name=None, role=UserRole.CITIZEN, email=None, password="secret1"):
        counter["n"] += 1
        n = counter["n"]
        return user_directory.register(
            name=name or f"User Number {n}",
            email=email or f"user{n}@mail.com",
            password=password,
            role=role,
        )

    return _make


def _account(app, name, email, role):
    from models import UserRole
    from utils import user_directory
    from utils.tokens import issue_token

    with app.app_context():
        user = user_directory.register(name=name, email=email, password="secret1", role=UserRole(role))
        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "headers": {"Authorization": f"Bearer {issue_token(user)}"},
        }


@pytest.fixture
def citizen(app):
    return _account(app, "Ana Citizen", "ana@mail.com", "citizen")


@pytest.fixture
def other_citizen(app):
    return _account(app, "Bruno Citizen", "bruno@mail.com", "citizen")


@pytest.fixture
def authority(app):
    return _account(app, "Carla Authority", "carla@mail.com", "authority")


@pytest.fixture
def other_authority(app):
    return _account(app, "Diego Authority", "diego@mail.com", "authority")


@pytest.fixture
def complaint_payload():
    return {
        "title": "Pothole on Main Street",
        "description": "A deep pothole next to the bus stop.",
        "category": "pothole",
        "address": "Main Street 123",
    }


@pytest.fixture
def create_complaint(client, complaint_payload):
    """Create a complaint over HTTP and return its JSON representation."""

    def _create(account, **overrides):
        payload = {**complaint_payload, **overrides}
        response = client.post("/api/complaints", json=payload, headers=account["headers"])
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]

    return _create


def image_bytes(fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    return image_bytes("PNG")
