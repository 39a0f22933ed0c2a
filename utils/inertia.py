"""Server side of the Inertia protocol: pages and props instead of JSON APIs.

Every response describes a page as ``{component, props, url, version}``. XHR
visits made by the client library carry ``X-Inertia: true`` and receive that
object as JSON. First loads receive an HTML shell with the object embedded in
``data-page`` for the client to boot from.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from flask import (
    Flask,
    Response,
    current_app,
    get_flashed_messages,
    make_response,
    render_template_string,
    request,
    session,
)
from flask import redirect as flask_redirect

from utils.authentication import Current

ERRORS_KEY = "inertia_errors"

_ROOT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{{ title }}</title>
  </head>
  <body>
    <div id="app" data-page="{{ page_json }}"></div>
  </body>
</html>
"""


def is_inertia_request() -> bool:
    return request.headers.get("X-Inertia", "").lower() == "true"


def asset_version() -> str:
    return str(current_app.config.get("INERTIA_VERSION", "1"))


def store_errors(errors: Mapping[str, str]) -> None:
    """Keep field errors for the next rendered page only."""

    session[ERRORS_KEY] = dict(errors)


def _shared_props(current: Optional[Current], consume_flash: bool = True) -> dict[str, Any]:
    if consume_flash:
        pending = get_flashed_messages(with_categories=True)
        errors = session.pop(ERRORS_KEY, None)
    else:
        pending = session.get("_flashes", [])
        errors = session.get(ERRORS_KEY)

    flash = {"notice": None, "alert": None}
    for category, message in pending:
        if category in flash:
            flash[category] = message

    user = current.user if current is not None else None
    return {
        "auth": {
            "user": user.to_dict() if user is not None else None,
            "session": {"id": current.session.id} if user is not None else None,
        },
        "flash": flash,
        "errors": errors or {},
    }


def page_payload(
    component: str,
    props: Optional[Mapping[str, Any]] = None,
    current: Optional[Current] = None,
    consume_flash: bool = True,
) -> dict[str, Any]:
    merged = _shared_props(current, consume_flash)
    merged.update(props or {})
    return {
        "component": component,
        "props": merged,
        "url": request.full_path.rstrip("?"),
        "version": asset_version(),
    }


def render(
    component: str,
    props: Optional[Mapping[str, Any]] = None,
    *,
    current: Optional[Current] = None,
    status: int = 200,
    consume_flash: bool = True,
) -> Response:
    """Render ``component`` with ``props`` plus the shared auth/flash/errors props.

    With ``consume_flash=False`` pending flash messages and errors are shown
    but left for the next page.
    """

    page = page_payload(component, props, current, consume_flash)

    if is_inertia_request():
        response = make_response(json.dumps(page), status)
        response.content_type = "application/json"
        response.headers["X-Inertia"] = "true"
        response.vary.add("X-Inertia")
        return response

    html = render_template_string(
        _ROOT_TEMPLATE,
        title=current_app.config.get("INERTIA_ROOT_TITLE", ""),
        page_json=json.dumps(page),
    )
    response = make_response(html, status)
    response.vary.add("X-Inertia")
    return response


def redirect(location: str) -> Response:
    """Redirect, using 303 after PUT/PATCH/DELETE so the client follows with GET."""

    code = 303 if request.method in {"PUT", "PATCH", "DELETE"} else 302
    return flask_redirect(location, code=code)


def redirect_with_errors(location: str, errors: Mapping[str, str]) -> Response:
    store_errors(errors)
    return redirect(location)


def init_app(app: Flask) -> None:
    """Install the asset version check."""

    @app.before_request
    def _check_asset_version():
        if request.method != "GET" or not is_inertia_request():
            return None
        client_version = request.headers.get("X-Inertia-Version")
        if client_version is None or client_version == asset_version():
            return None
        response = make_response("", 409)
        response.headers["X-Inertia-Location"] = request.url
        return response
