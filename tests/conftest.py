"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
import time
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from flask import Flask
from flask.testing import FlaskClient
from itsdangerous import TimestampSigner

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402

PASSWORD = "Secret1*3*5*"


class _BaseTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RATELIMIT_ENABLED = False
    CORS_ORIGINS = "*"
    INERTIA_VERSION = "1"
    MAIL_FROM = "from@example.com"
    SESSION_COOKIE_SECURE = False


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance backed by a throwaway SQLite file."""

    class TestConfig(_BaseTestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def create_user(app: Flask):
    """Factory persisting a user and returning a detached, fully loaded copy."""

    counter = {"n": 0}

    def _create(
        email: str | None = None,
        *,
        name: str = "Test User",
        password: str = PASSWORD,
        verified: bool = True,
    ) -> User:
        counter["n"] += 1
        with app.app_context():
            user = User(
                email=email or f"user{counter['n']}@example.com",
                name=name,
                verified=verified,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            db.session.refresh(user)
            db.session.expunge(user)
            return user

    return _create


@pytest.fixture()
def user(create_user) -> User:
    return create_user("one@example.com")


@pytest.fixture()
def sign_in_as(client: FlaskClient):
    def _sign_in(user: User, password: str = PASSWORD):
        response = client.post("/sign_in", data={"email": user.email, "password": password})
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/dashboard")
        return response

    return _sign_in


@pytest.fixture()
def travel(monkeypatch):
    """Move the clock used to check token ages."""

    def _travel(delta: timedelta) -> None:
        frozen = int(time.time() + delta.total_seconds())
        monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: frozen)

    return _travel


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> list[dict]:
    """Capture emails handed to the background queue instead of enqueuing them."""

    sent: list[dict] = []
    task = MagicMock()
    task.delay.side_effect = lambda **kwargs: sent.append(kwargs)
    monkeypatch.setattr("mailers.user_mailer.send_email_task", task)
    return sent


@pytest.fixture()
def broker_down(outbox, monkeypatch) -> MagicMock:
    """Make every enqueue fail the way an unreachable broker does."""

    task = MagicMock()
    task.delay.side_effect = ConnectionError("broker unreachable")
    monkeypatch.setattr("mailers.user_mailer.send_email_task", task)
    return task


def flashes(client: FlaskClient) -> dict[str, str]:
    """Return pending flash messages keyed by category."""

    with client.session_transaction() as sess:
        return {category: message for category, message in sess.get("_flashes", [])}


def stored_errors(client: FlaskClient) -> dict[str, str]:
    with client.session_transaction() as sess:
        return dict(sess.get("inertia_errors") or {})
