"""Landing pages."""

from __future__ import annotations

from flask import Blueprint, request, url_for
from flask.typing import ResponseReturnValue

from utils import inertia
from utils.authentication import Current, authenticate, resolve_current

home_bp = Blueprint("home", __name__)


@home_bp.route("/", methods=["GET"])
def index() -> ResponseReturnValue:
    if resolve_current(request).authenticated:
        return inertia.redirect(url_for("home.dashboard"))
    return inertia.redirect(url_for("sessions.new"))


@home_bp.route("/dashboard", methods=["GET"])
@authenticate
def dashboard(current: Current) -> ResponseReturnValue:
    return inertia.render("dashboard/index", current=current)
