"""Cookie-backed session resolution and the explicit per-request context."""

from __future__ import annotations

from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from flask import Request, Response, current_app, redirect, request, url_for
from itsdangerous import BadSignature, Signer

from models import db
from models.session import Session
from models.user import User

COOKIE_NAME = "session_token"
PERMANENT_MAX_AGE = 20 * 365 * 24 * 60 * 60  # 20 years


@dataclass(frozen=True)
class Current:
    """What the current request knows about who is making it."""

    session: Optional[Session]
    user_agent: Optional[str]
    ip_address: Optional[str]

    @property
    def user(self) -> Optional[User]:
        return self.session.user if self.session is not None else None

    @property
    def authenticated(self) -> bool:
        return self.session is not None


def _signer() -> Signer:
    return Signer(current_app.config["SECRET_KEY"], salt=COOKIE_NAME)


def _find_session(cookie_value: Optional[str]) -> Optional[Session]:
    if not cookie_value:
        return None
    try:
        raw_id = _signer().unsign(cookie_value).decode("utf-8")
    except BadSignature:
        current_app.logger.info("Rejected session cookie with a bad signature")
        return None
    try:
        session_id = int(raw_id)
    except ValueError:
        return None
    return db.session.get(Session, session_id)


def resolve_current(req: Request) -> Current:
    """Build the request context from the signed session cookie."""

    return Current(
        session=_find_session(req.cookies.get(COOKIE_NAME)),
        user_agent=req.user_agent.string or None,
        ip_address=req.remote_addr,
    )


def set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        COOKIE_NAME,
        _signer().sign(str(session.id)).decode("utf-8"),
        max_age=PERMANENT_MAX_AGE,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite="Lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME, httponly=True, samesite="Lax")


def start_new_session_for(user: User, req: Request, response: Response) -> Session:
    """Persist a session row for ``user`` and bind it to the response cookie."""

    session = Session(
        user=user,
        user_agent=req.user_agent.string or None,
        ip_address=req.remote_addr,
    )
    db.session.add(session)
    db.session.commit()
    set_session_cookie(response, session)
    current_app.logger.info("Started session %s for user %s", session.id, user.id)
    return session


def terminate_session(session: Session, response: Optional[Response] = None) -> None:
    """Delete ``session``; clear the cookie when ``response`` belongs to it."""

    session_id, user_id = session.id, session.user_id
    db.session.delete(session)
    db.session.commit()
    if response is not None:
        clear_session_cookie(response)
    current_app.logger.info("Terminated session %s for user %s", session_id, user_id)


def authenticate(view: Callable) -> Callable:
    """Require a signed-in session and pass the context as ``current``."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        current = resolve_current(request)
        if not current.authenticated:
            return redirect(url_for("sessions.new"))
        return view(current, *args, **kwargs)

    return wrapper
