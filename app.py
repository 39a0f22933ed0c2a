"""Application factory."""

import json
import os
import uuid

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from celery_config import init_celery
from config import Config
from extensions import cors, limiter, migrate
from models import db
from routes.home import home_bp
from routes.identity import email_verifications_bp, password_resets_bp
from routes.sessions import sessions_bp
from routes.settings import settings_bp
from routes.users import users_bp
from utils import inertia
from utils.authentication import resolve_current


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Core subsystems
    db.init_app(app)
    migrate.init_app(app, db)

    # CORS
    cors.init_app(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    # Rate limiting; a fresh key prefix keeps separate app instances apart.
    if not app.config.get("RATELIMIT_KEY_PREFIX"):
        app.config["RATELIMIT_KEY_PREFIX"] = str(uuid.uuid4())
    limiter.init_app(app)

    # Background mail delivery
    init_celery(app)

    # Blueprints
    app.register_blueprint(home_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(email_verifications_bp, url_prefix="/identity/email_verification")
    app.register_blueprint(password_resets_bp, url_prefix="/identity/password_reset")
    app.register_blueprint(settings_bp, url_prefix="/settings")

    # Health
    @app.route("/health", methods=["GET"])
    @limiter.exempt
    def health_check():
        return jsonify({"status": "ok"})

    # Errors
    _register_error_handlers(app)

    # Runs after the request id and rate limit hooks.
    inertia.init_app(app)

    return app


def _wants_json() -> bool:
    if inertia.is_inertia_request():
        return False
    best = request.accept_mimetypes.best_match(["application/json", "text/html"])
    return best == "application/json" and request.accept_mimetypes[best] > request.accept_mimetypes["text/html"]


def _register_error_handlers(app: Flask) -> None:
    """Register error handlers that carry request IDs."""

    @app.before_request
    def _assign_request_id():  # pragma: no cover
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

    @app.after_request
    def _add_request_id_header(response):  # pragma: no cover
        request_id = g.get("request_id")
        if request_id:
            response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(HTTPException)
    def _handle_http_exception(error: HTTPException):
        request_id = g.get("request_id") or str(uuid.uuid4())
        if _wants_json():
            response = error.get_response()
            payload = {
                "error": getattr(error, "name", "Error"),
                "detail": error.description,
                "request_id": request_id,
            }
            response.data = json.dumps(payload)
            response.content_type = "application/json"
        else:
            response = inertia.render(
                "errors/show",
                {
                    "status": error.code,
                    "error": getattr(error, "name", "Error"),
                    "detail": error.description,
                    "request_id": request_id,
                },
                current=resolve_current(request),
                status=error.code or 500,
                consume_flash=False,
            )
        response.headers.setdefault("X-Request-ID", request_id)
        return response

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):  # pragma: no cover
        request_id = g.get("request_id") or str(uuid.uuid4())
        app.logger.exception("Unhandled application error", exc_info=error)
        payload = {
            "error": "Internal Server Error",
            "detail": "An unexpected error occurred.",
            "request_id": request_id,
        }
        response = jsonify(payload)
        response.status_code = 500
        response.headers.setdefault("X-Request-ID", request_id)
        return response


if __name__ == "__main__":
    application = create_app()
    application.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
