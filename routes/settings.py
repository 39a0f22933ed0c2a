"""Account settings blueprint: profile, password, email and sessions."""

from __future__ import annotations

from flask import Blueprint, current_app, flash, request, url_for
from flask.typing import ResponseReturnValue

from mailers import user_mailer
from models import db
from models.session import Session
from models.user import User, normalize_email
from routes.identity import VERIFICATION_NOT_SENT
from utils import inertia
from utils.authentication import Current, authenticate, clear_session_cookie
from utils.errors import DeliveryFailed, ValidationFailed
from utils.request_validation import parse_form_request

settings_bp = Blueprint("settings", __name__)

CHALLENGE_ERROR = {"password_challenge": "Password challenge is invalid"}


def _passes_challenge(user: User, params: dict) -> bool:
    return user.check_password(params.get("password_challenge"))


@settings_bp.route("/profile", methods=["GET"])
@authenticate
def show_profile(current: Current) -> ResponseReturnValue:
    return inertia.render("settings/profiles/show", current=current)


@settings_bp.route("/profile", methods=["PATCH", "PUT"])
@authenticate
def update_profile(current: Current) -> ResponseReturnValue:
    params = parse_form_request(request, permitted=("name",))
    user = current.user
    user.name = (params.get("name") or "").strip()
    try:
        user.save()
    except ValidationFailed as exc:
        return inertia.redirect_with_errors(url_for("settings.show_profile"), exc.errors)

    flash("Your profile has been updated", "notice")
    return inertia.redirect(url_for("settings.show_profile"))


@settings_bp.route("/profile", methods=["DELETE"])
@authenticate
def destroy_profile(current: Current) -> ResponseReturnValue:
    """Delete the account and, through the cascade, all of its sessions."""

    params = parse_form_request(request, permitted=("password_challenge",))
    user = current.user
    if not _passes_challenge(user, params):
        return inertia.redirect_with_errors(url_for("settings.show_profile"), CHALLENGE_ERROR)

    user_id = user.id
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Deleted user %s", user_id)

    response = inertia.redirect(url_for("sessions.new"))
    clear_session_cookie(response)
    flash("Your account has been deleted", "notice")
    return response


@settings_bp.route("/password", methods=["GET"])
@authenticate
def show_password(current: Current) -> ResponseReturnValue:
    return inertia.render("settings/passwords/show", current=current)


@settings_bp.route("/password", methods=["PATCH", "PUT"])
@authenticate
def update_password(current: Current) -> ResponseReturnValue:
    """Change the password after a challenge; other devices are signed out."""

    params = parse_form_request(
        request, permitted=("password_challenge", "password", "password_confirmation")
    )
    user = current.user
    if not _passes_challenge(user, params):
        return inertia.redirect_with_errors(url_for("settings.show_password"), CHALLENGE_ERROR)

    try:
        user.save(
            password=params.get("password") or "",
            password_confirmation=params.get("password_confirmation"),
            keep_session=current.session,
        )
    except ValidationFailed as exc:
        return inertia.redirect_with_errors(url_for("settings.show_password"), exc.errors)

    current_app.logger.info("Password changed for user %s", user.id)
    flash("Your password has been changed", "notice")
    return inertia.redirect(url_for("settings.show_password"))


@settings_bp.route("/email", methods=["GET"])
@authenticate
def show_email(current: Current) -> ResponseReturnValue:
    return inertia.render("settings/emails/show", current=current)


@settings_bp.route("/email", methods=["PATCH", "PUT"])
@authenticate
def update_email(current: Current) -> ResponseReturnValue:
    """Change the email after a challenge and ask for the new address to be verified."""

    params = parse_form_request(request, permitted=("email", "password_challenge"))
    user = current.user
    if not _passes_challenge(user, params):
        return inertia.redirect_with_errors(url_for("settings.show_email"), CHALLENGE_ERROR)

    changed = normalize_email(params.get("email")) != user.email
    user.email = params.get("email")
    try:
        user.save()
    except ValidationFailed as exc:
        return inertia.redirect_with_errors(url_for("settings.show_email"), exc.errors)

    if changed:
        flash("Your email has been changed", "notice")
        try:
            user_mailer.deliver_later(user_mailer.email_verification(user))
        except DeliveryFailed:
            current_app.logger.exception(
                "Could not enqueue verification email for user %s", user.id
            )
            flash(VERIFICATION_NOT_SENT, "alert")
    return inertia.redirect(url_for("settings.show_email"))


@settings_bp.route("/sessions", methods=["GET"])
@authenticate
def sessions(current: Current) -> ResponseReturnValue:
    """List every device signed in to the account, newest first."""

    rows = (
        Session.query.filter_by(user_id=current.session.user_id)
        .order_by(Session.created_at.desc(), Session.id.desc())
        .all()
    )
    return inertia.render(
        "settings/sessions/index",
        {"sessions": [row.to_dict(current_id=current.session.id) for row in rows]},
        current=current,
    )
