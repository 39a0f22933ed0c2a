"""Utilities for reading submitted forms from Flask requests."""

from __future__ import annotations

from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest


def parse_form_request(
    req: Request,
    *,
    permitted: Iterable[str] | None = None,
) -> dict:
    """Return submitted fields from a JSON body (Inertia visits) or a form post.

    Only string values survive; ``permitted`` narrows the result to those keys.
    """

    if req.is_json:
        data = req.get_json(silent=True)
        if data is None:
            raise BadRequest("Request JSON body is malformed.")
        if not isinstance(data, dict):
            raise BadRequest("Request JSON payload must be an object.")
    else:
        data = req.form.to_dict()

    params = {
        key: value for key, value in data.items() if isinstance(value, str)
    }
    if permitted is not None:
        allowed = set(permitted)
        params = {key: value for key, value in params.items() if key in allowed}
    return params
