"""Exceptions raised by the authentication flow and recovered by the routes."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for recoverable authentication failures."""


class ValidationFailed(AuthError):
    """A submission failed validation; ``errors`` maps field name to a sentence."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(errors.values()))
        self.errors = dict(errors)


class TokenInvalid(AuthError):
    """A signed token was tampered with, malformed, or no longer matches its subject."""


class TokenExpired(TokenInvalid):
    """A signed token was well formed but is older than its purpose allows."""


class AuthenticationFailed(AuthError):
    """Email and password did not match a user."""


class DeliveryFailed(AuthError):
    """An email could not be handed to the background queue."""
