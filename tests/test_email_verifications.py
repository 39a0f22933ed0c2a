"""Tests covering email verification links."""

from __future__ import annotations

from datetime import timedelta

from flask.testing import FlaskClient

from conftest import flashes
from models import db
from models.user import User


def _reload(app, user_id: int) -> User:
    with app.app_context():
        user = db.session.get(User, user_id)
        return user.to_dict()


def test_resend_enqueues_verification_email(client: FlaskClient, create_user, sign_in_as, outbox):
    user = create_user(verified=False)
    sign_in_as(user)

    response = client.post("/identity/email_verification")

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")
    assert flashes(client) == {"notice": "We sent a verification email to your email address"}
    assert len(outbox) == 1
    assert outbox[0]["subject"] == "Verify your email"
    assert outbox[0]["to"] == [user.email]
    assert "/identity/email_verification?sid=" in outbox[0]["text_body"]


def test_resend_requires_sign_in(client: FlaskClient, outbox):
    response = client.post("/identity/email_verification")

    assert response.headers["Location"].endswith("/sign_in")
    assert outbox == []


def test_valid_token_verifies_email(client: FlaskClient, app, create_user):
    user = create_user(verified=False)
    with app.app_context():
        sid = user.generate_token_for("email_verification")

    response = client.get("/identity/email_verification", query_string={"sid": sid})

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")
    assert flashes(client) == {"notice": "Thank you for verifying your email address"}
    assert _reload(app, user.id)["verified"] is True


def test_token_is_still_valid_after_one_day(client: FlaskClient, app, create_user, travel):
    user = create_user(verified=False)
    with app.app_context():
        sid = user.generate_token_for("email_verification")

    travel(timedelta(days=1))
    client.get("/identity/email_verification", query_string={"sid": sid})

    assert _reload(app, user.id)["verified"] is True


def test_expired_token_shows_error(client: FlaskClient, app, create_user, sign_in_as, travel):
    user = create_user(verified=False)
    sign_in_as(user)
    with app.app_context():
        sid = user.generate_token_for("email_verification")

    travel(timedelta(days=3))
    response = client.get("/identity/email_verification", query_string={"sid": sid})

    assert response.status_code == 302
    assert response.headers["Location"].endswith("/settings/email")
    assert flashes(client) == {"alert": "That email verification link is invalid"}
    assert _reload(app, user.id)["verified"] is False


def test_token_for_previous_email_is_rejected(client: FlaskClient, app, create_user):
    user = create_user("before@example.com", verified=False)
    with app.app_context():
        sid = user.generate_token_for("email_verification")
        stored = db.session.get(User, user.id)
        stored.email = "after@example.com"
        stored.save()

    response = client.get("/identity/email_verification", query_string={"sid": sid})

    assert flashes(client) == {"alert": "That email verification link is invalid"}
    assert _reload(app, user.id)["verified"] is False


def test_tampered_token_is_rejected(client: FlaskClient, app, create_user):
    user = create_user(verified=False)
    with app.app_context():
        sid = user.generate_token_for("email_verification")

    client.get("/identity/email_verification", query_string={"sid": sid + "x"})

    assert flashes(client) == {"alert": "That email verification link is invalid"}


def test_resend_reports_unreachable_mail_queue(client: FlaskClient, create_user, sign_in_as, broker_down):
    sign_in_as(create_user(verified=False))

    response = client.post("/identity/email_verification")

    assert response.status_code == 302
    assert flashes(client) == {
        "alert": "We couldn't send the verification email. Please try again later"
    }
