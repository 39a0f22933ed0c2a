"""Registration blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, flash, request, url_for
from flask.typing import ResponseReturnValue

from extensions import auth_rate_limit, limiter
from mailers import user_mailer
from models.user import User
from utils import inertia
from utils.authentication import resolve_current, start_new_session_for
from routes.identity import VERIFICATION_NOT_SENT
from utils.errors import DeliveryFailed, ValidationFailed
from utils.request_validation import parse_form_request

users_bp = Blueprint("users", __name__)


@users_bp.route("/sign_up", methods=["GET"])
def new() -> ResponseReturnValue:
    """Show the registration form."""
    return inertia.render("users/new", current=resolve_current(request))


@users_bp.route("/sign_up", methods=["POST"])
@limiter.limit(auth_rate_limit)
def create() -> ResponseReturnValue:
    """Register an account, sign it in and send the verification email."""
    params = parse_form_request(
        request, permitted=("name", "email", "password", "password_confirmation")
    )

    user = User(name=(params.get("name") or "").strip(), email=params.get("email"))
    try:
        user.save(
            password=params.get("password") or "",
            password_confirmation=params.get("password_confirmation"),
        )
    except ValidationFailed as exc:
        return inertia.redirect_with_errors(url_for("users.new"), exc.errors)

    current_app.logger.info("Registered user %s", user.id)
    response = inertia.redirect(url_for("home.dashboard"))
    start_new_session_for(user, request, response)
    try:
        user_mailer.deliver_later(user_mailer.email_verification(user))
    except DeliveryFailed:
        current_app.logger.exception("Could not enqueue verification email for user %s", user.id)
        flash(VERIFICATION_NOT_SENT, "alert")
    return response
