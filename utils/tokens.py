"""Purpose-scoped, expiring signed tokens.

A token carries the subject id and a fingerprint of the subject's state at the
moment it was issued. Resolving a token re-derives the fingerprint from the
subject's current state, so a token stops working as soon as the state it was
minted against changes (a new email, a new password).
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from utils.errors import TokenExpired, TokenInvalid


class SignedTokenIssuer:
    """Issue and resolve tokens for a single purpose."""

    def __init__(self, secret_key: str, purpose: str, expires_in: timedelta):
        self.purpose = purpose
        self.expires_in = expires_in
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=purpose)

    def issue(self, subject_id: Any, fingerprint: str) -> str:
        return self._serializer.dumps({"id": subject_id, "fp": fingerprint})

    def load(self, token: str) -> dict:
        """Return the verified payload or raise ``TokenExpired``/``TokenInvalid``."""

        if not token:
            raise TokenInvalid(f"missing {self.purpose} token")
        try:
            payload = self._serializer.loads(
                token, max_age=int(self.expires_in.total_seconds())
            )
        except SignatureExpired as exc:
            raise TokenExpired(f"{self.purpose} token expired") from exc
        except BadSignature as exc:
            raise TokenInvalid(f"{self.purpose} token signature mismatch") from exc

        if not isinstance(payload, dict) or "id" not in payload or "fp" not in payload:
            raise TokenInvalid(f"malformed {self.purpose} token")
        return payload

    def resolve(
        self,
        token: str,
        lookup: Callable[[Any], Optional[Any]],
        fingerprint_for: Callable[[Any], str],
    ) -> Any:
        """Load the token, fetch its subject and compare fingerprints."""

        payload = self.load(token)
        subject = lookup(payload["id"])
        if subject is None:
            raise TokenInvalid(f"{self.purpose} token subject no longer exists")
        if fingerprint_for(subject) != payload["fp"]:
            raise TokenInvalid(f"{self.purpose} token fingerprint mismatch")
        return subject
