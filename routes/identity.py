"""Email verification and password reset blueprints."""

from __future__ import annotations

from flask import Blueprint, current_app, flash, request, url_for
from flask.typing import ResponseReturnValue

from extensions import auth_rate_limit, limiter
from mailers import user_mailer
from models import db
from models.user import User
from utils import inertia
from utils.authentication import Current, authenticate, resolve_current
from utils.errors import DeliveryFailed, TokenExpired, TokenInvalid, ValidationFailed
from utils.request_validation import parse_form_request

email_verifications_bp = Blueprint("email_verifications", __name__)
password_resets_bp = Blueprint("password_resets", __name__)

VERIFICATION_NOT_SENT = "We couldn't send the verification email. Please try again later"


def _log_rejected_token(purpose: str, error: TokenInvalid) -> None:
    reason = "expired" if isinstance(error, TokenExpired) else "invalid"
    current_app.logger.info("Rejected %s token (%s): %s", purpose, reason, error)


@email_verifications_bp.route("", methods=["GET"])
def show() -> ResponseReturnValue:
    """Mark the account verified when the link's token still matches its email."""

    try:
        user = User.find_by_token_for("email_verification", request.args.get("sid"))
    except TokenInvalid as exc:
        _log_rejected_token("email_verification", exc)
        flash("That email verification link is invalid", "alert")
        return inertia.redirect(url_for("settings.show_email"))

    user.verified = True
    db.session.commit()
    flash("Thank you for verifying your email address", "notice")
    return inertia.redirect(url_for("home.index"))


@email_verifications_bp.route("", methods=["POST"], endpoint="create")
@limiter.limit(auth_rate_limit)
@authenticate
def resend(current: Current) -> ResponseReturnValue:
    """Send a fresh verification email to the signed-in user."""

    try:
        user_mailer.deliver_later(user_mailer.email_verification(current.user))
    except DeliveryFailed:
        current_app.logger.exception(
            "Could not enqueue verification email for user %s", current.user.id
        )
        flash(VERIFICATION_NOT_SENT, "alert")
    else:
        flash("We sent a verification email to your email address", "notice")
    return inertia.redirect(url_for("home.index"))


@password_resets_bp.route("/new", methods=["GET"])
def new() -> ResponseReturnValue:
    return inertia.render("identity/password_resets/new", current=resolve_current(request))


@password_resets_bp.route("/edit", methods=["GET"])
def edit() -> ResponseReturnValue:
    sid = request.args.get("sid")
    try:
        User.find_by_token_for("password_reset", sid)
    except TokenInvalid as exc:
        _log_rejected_token("password_reset", exc)
        flash("That password reset link is invalid", "alert")
        return inertia.redirect(url_for("password_resets.new"))

    return inertia.render(
        "identity/password_resets/edit", {"sid": sid}, current=resolve_current(request)
    )


@password_resets_bp.route("", methods=["POST"])
@limiter.limit(auth_rate_limit)
def create() -> ResponseReturnValue:
    """Email reset instructions, but only to a verified address."""

    params = parse_form_request(request, permitted=("email",))
    user = User.find_by_email(params.get("email"))

    if user is None or not user.verified:
        flash("You can't reset your password until you verify your email", "alert")
        return inertia.redirect(url_for("password_resets.new"))

    try:
        user_mailer.deliver_later(user_mailer.password_reset(user))
    except DeliveryFailed:
        current_app.logger.exception("Could not enqueue password reset for user %s", user.id)
        flash("We couldn't send the password reset email. Please try again later", "alert")
        return inertia.redirect(url_for("password_resets.new"))

    flash("Check your email for reset instructions", "notice")
    return inertia.redirect(url_for("sessions.new"))


@password_resets_bp.route("", methods=["PATCH", "PUT"])
def update() -> ResponseReturnValue:
    """Set a new password; every existing session of the account is dropped."""

    params = parse_form_request(
        request, permitted=("sid", "password", "password_confirmation")
    )
    sid = params.get("sid")
    try:
        user = User.find_by_token_for("password_reset", sid)
    except TokenInvalid as exc:
        _log_rejected_token("password_reset", exc)
        flash("That password reset link is invalid", "alert")
        return inertia.redirect(url_for("password_resets.new"))

    try:
        user.save(
            password=params.get("password") or "",
            password_confirmation=params.get("password_confirmation"),
        )
    except ValidationFailed as exc:
        return inertia.redirect_with_errors(
            url_for("password_resets.edit", sid=sid), exc.errors
        )

    current_app.logger.info("Password reset for user %s", user.id)
    flash("Your password was reset successfully. Please sign in", "notice")
    return inertia.redirect(url_for("sessions.new"))
