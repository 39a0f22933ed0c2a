"""Sign-in and sign-out blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, flash, request, url_for
from flask.typing import ResponseReturnValue

from extensions import auth_rate_limit, limiter
from models.session import Session
from models.user import User
from utils import inertia
from utils.authentication import (
    Current,
    authenticate,
    resolve_current,
    start_new_session_for,
    terminate_session,
)
from utils.errors import AuthenticationFailed
from utils.request_validation import parse_form_request

sessions_bp = Blueprint("sessions", __name__)


def _authenticate_credentials(email: str | None, password: str | None) -> User:
    user = User.authenticate_by(email, password)
    if user is None:
        raise AuthenticationFailed("email or password did not match")
    return user


@sessions_bp.route("/sign_in", methods=["GET"])
def new() -> ResponseReturnValue:
    """Show the sign-in form."""
    return inertia.render("sessions/new", current=resolve_current(request))


@sessions_bp.route("/sign_in", methods=["POST"])
@limiter.limit(auth_rate_limit)
def create() -> ResponseReturnValue:
    """Check credentials and start a new session on success."""
    params = parse_form_request(request, permitted=("email", "password"))

    try:
        user = _authenticate_credentials(params.get("email"), params.get("password"))
    except AuthenticationFailed:
        current_app.logger.warning("Failed sign-in from %s", request.remote_addr)
        flash("That email or password is incorrect", "alert")
        return inertia.redirect(url_for("sessions.new"))

    response = inertia.redirect(url_for("home.dashboard"))
    start_new_session_for(user, request, response)
    return response


@sessions_bp.route("/sessions/<int:session_id>", methods=["DELETE"])
@authenticate
def destroy(current: Current, session_id: int) -> ResponseReturnValue:
    """Sign out one of the current user's devices."""
    session = Session.query.filter_by(
        id=session_id, user_id=current.session.user_id
    ).first_or_404()
    is_current = session.id == current.session.id

    response = inertia.redirect(url_for("settings.sessions"))
    terminate_session(session, response if is_current else None)
    flash("That session has been logged out", "notice")
    return response
