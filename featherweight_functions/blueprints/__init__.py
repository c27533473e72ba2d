# featherweight_functions/blueprints/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import request

from ..errors import FunctionsError


def json_body() -> dict:
    """The request body as a JSON object, or invalid-argument."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise FunctionsError("invalid-argument", "Request body must be a JSON object")
    return data
