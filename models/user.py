"""User model definition."""

import re
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import validates
from werkzeug.security import check_password_hash, generate_password_hash

from utils.errors import ValidationFailed
from utils.tokens import SignedTokenIssuer

from . import db
from .session import Session


EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+")
PASSWORD_MIN_LENGTH = 12

# Verified against for unknown emails, in place of a stored hash.
_DUMMY_PASSWORD_HASH = generate_password_hash("unused-dummy-password")

# purpose -> (lifetime, fingerprint of the state the token is bound to)
TOKEN_PURPOSES = {
    "email_verification": (timedelta(days=2), lambda user: user.email),
    "password_reset": (timedelta(minutes=20), lambda user: user.password_hash[-10:]),
}


def normalize_email(raw_email: Optional[str]) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower()


def _token_issuer(purpose: str) -> SignedTokenIssuer:
    if purpose not in TOKEN_PURPOSES:
        raise ValueError(f"Unknown token purpose: {purpose}")
    expires_in, _ = TOKEN_PURPOSES[purpose]
    return SignedTokenIssuer(current_app.config["SECRET_KEY"], purpose, expires_in)


class User(db.Model):
    """Represents a registered account."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.text("false"),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    sessions = db.relationship(
        "Session",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @validates("email")
    def _normalize_email(self, key, value):
        normalized = normalize_email(value)
        # A changed address has to be verified again.
        if self.email is not None and self.email != normalized:
            self.verified = False
        return normalized

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: Optional[str]) -> bool:
        """Verify a password against the stored hash."""

        if not password or not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @classmethod
    def find_by_email(cls, email: Optional[str]) -> Optional["User"]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return cls.query.filter(func.lower(cls.email) == normalized).first()

    @classmethod
    def authenticate_by(cls, email: Optional[str], password: Optional[str]) -> Optional["User"]:
        """Return the user owning ``email`` when ``password`` matches, else None."""

        user = cls.find_by_email(email)
        if user is None:
            check_password_hash(_DUMMY_PASSWORD_HASH, password or "")
            return None
        return user if user.check_password(password) else None

    def validation_errors(
        self,
        *,
        password: Optional[str] = None,
        password_confirmation: Optional[str] = None,
    ) -> dict[str, str]:
        """Return a mapping of field name to message for every failing rule."""

        errors: dict[str, str] = {}

        if not (self.name or "").strip():
            errors["name"] = "Name can't be blank"

        if not self.email:
            errors["email"] = "Email can't be blank"
        elif not EMAIL_PATTERN.fullmatch(self.email):
            errors["email"] = "Email is invalid"
        else:
            with db.session.no_autoflush:
                taken = User.query.filter(func.lower(User.email) == self.email)
                if self.id is not None:
                    taken = taken.filter(User.id != self.id)
                if taken.first() is not None:
                    errors["email"] = "Email has already been taken"

        if password is not None:
            if len(password) < PASSWORD_MIN_LENGTH:
                errors["password"] = (
                    f"Password is too short (minimum is {PASSWORD_MIN_LENGTH} characters)"
                )
            if password_confirmation is not None and password_confirmation != password:
                errors["password_confirmation"] = "Password confirmation doesn't match Password"
        elif not self.password_hash:
            errors["password"] = "Password can't be blank"

        return errors

    def save(
        self,
        *,
        password: Optional[str] = None,
        password_confirmation: Optional[str] = None,
        keep_session: Optional[Session] = None,
    ) -> None:
        """Validate and persist the user, raising ``ValidationFailed`` on errors.

        Setting a new password on an existing user deletes every session
        except ``keep_session``.
        """

        errors = self.validation_errors(
            password=password, password_confirmation=password_confirmation
        )
        if errors:
            db.session.rollback()
            raise ValidationFailed(errors)

        password_changed = password is not None and self.id is not None
        if password is not None:
            self.set_password(password)

        db.session.add(self)
        if password_changed:
            others = Session.query.filter(Session.user_id == self.id)
            if keep_session is not None:
                others = others.filter(Session.id != keep_session.id)
            others.delete(synchronize_session=False)
        db.session.commit()

    def generate_token_for(self, purpose: str) -> str:
        """Return a signed token bound to this user's current state for ``purpose``."""

        issuer = _token_issuer(purpose)
        _, fingerprint = TOKEN_PURPOSES[purpose]
        return issuer.issue(self.id, fingerprint(self))

    @classmethod
    def find_by_token_for(cls, purpose: str, token: Optional[str]) -> "User":
        """Resolve ``token`` to its user, raising ``TokenExpired`` or ``TokenInvalid``."""

        issuer = _token_issuer(purpose)
        _, fingerprint = TOKEN_PURPOSES[purpose]
        return issuer.resolve(token or "", lambda user_id: db.session.get(cls, user_id), fingerprint)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "verified": self.verified,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
