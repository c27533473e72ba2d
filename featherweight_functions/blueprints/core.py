# featherweight_functions/blueprints/core.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, g, jsonify

from ..decorators import token_required
from ..errors import FunctionsError
from ..services.families import get_family
from ..services.quota_ledger import get_ledger

bp = Blueprint("core", __name__)


@bp.route("/healthz")
def healthz():
    return jsonify(status="ok", startedAt=current_app.config.get("STARTED_AT"))


@bp.route("/quota/<family>")
@token_required()
def quota_status(family):
    """Remaining units of ``family`` for the caller. Reads only."""
    try:
        fam = get_family(family)
    except ValueError:
        raise FunctionsError("not-found", f"Unknown quota family: {family}")

    remaining = get_ledger().status(g.auth.uid, fam)
    return jsonify(family=fam.name, remaining=remaining, limits=dict(fam.limits))
