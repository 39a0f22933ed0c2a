"""Emails sent to account holders."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional

from flask import current_app, render_template, url_for
from kombu.exceptions import OperationalError

from models.user import User
from tasks.email import send_email_task
from utils.errors import DeliveryFailed


@dataclass
class MailMessage:
    to: list[str]
    subject: str
    text_body: str
    html_body: Optional[str] = None
    from_email: Optional[str] = field(default=None)


def _build(template: str, user: User, subject: str, **context) -> MailMessage:
    """Render ``user_mailer/<template>.txt`` and ``.html`` into one message."""

    context["user"] = user
    return MailMessage(
        to=[user.email],
        subject=subject,
        text_body=render_template(f"user_mailer/{template}.txt", **context),
        html_body=render_template(f"user_mailer/{template}.html", **context),
    )


def password_reset(user: User) -> MailMessage:
    sid = user.generate_token_for("password_reset")
    link = url_for("password_resets.edit", sid=sid, _external=True)
    return _build("password_reset", user, "Reset your password", link=link)


def email_verification(user: User) -> MailMessage:
    sid = user.generate_token_for("email_verification")
    link = url_for("email_verifications.show", sid=sid, _external=True)
    return _build("email_verification", user, "Verify your email", link=link)


def deliver_later(message: MailMessage) -> None:
    """Hand the message to the background queue, raising ``DeliveryFailed`` if it is unreachable."""

    payload = asdict(message)
    payload["from_email"] = message.from_email or current_app.config.get("MAIL_FROM")
    try:
        send_email_task.delay(**payload)
    except (OperationalError, OSError) as exc:
        raise DeliveryFailed(f"Could not enqueue email {message.subject!r}") from exc
    current_app.logger.info("Enqueued email %r to %s", message.subject, message.to)
