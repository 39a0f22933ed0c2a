"""Tests for the Flask application factory."""
from __future__ import annotations

import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


def test_health_endpoint_returns_ok(client):
    """The health endpoint should respond with an OK payload."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    required = {
        "home",
        "sessions",
        "users",
        "email_verifications",
        "password_resets",
        "settings",
    }
    assert required.issubset(bps)


def test_http_routes(app):
    """Every documented route is bound to the expected methods."""
    rules = {}
    for rule in app.url_map.iter_rules():
        rules.setdefault(rule.rule, set()).update(rule.methods - {"HEAD", "OPTIONS"})

    assert rules["/sign_in"] == {"GET", "POST"}
    assert rules["/sign_up"] == {"GET", "POST"}
    assert rules["/sessions/<int:session_id>"] == {"DELETE"}
    assert rules["/identity/email_verification"] == {"GET", "POST"}
    assert rules["/identity/password_reset"] == {"POST", "PATCH", "PUT"}
    assert rules["/identity/password_reset/new"] == {"GET"}
    assert rules["/identity/password_reset/edit"] == {"GET"}
    assert rules["/settings/profile"] == {"GET", "PATCH", "PUT", "DELETE"}
    assert rules["/settings/password"] == {"GET", "PATCH", "PUT"}
    assert rules["/settings/email"] == {"GET", "PATCH", "PUT"}
    assert rules["/settings/sessions"] == {"GET"}
