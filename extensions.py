"""Flask extension instances shared by the application factory and blueprints."""

from flask import current_app
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

migrate = Migrate()
cors = CORS()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[lambda: current_app.config.get("RATE_LIMIT", "60 per minute")],
)


def auth_rate_limit() -> str:
    """Tighter limit for endpoints that accept credentials or send mail."""
    return current_app.config.get("AUTH_RATE_LIMIT", "10 per minute")
