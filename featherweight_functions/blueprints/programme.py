# featherweight_functions/blueprints/programme.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, g, jsonify

from . import json_body
from ..decorators import token_required
from ..errors import FunctionsError, LedgerError
from ..services.families import PARSE
from ..services.openai_client import get_openai_client
from ..services.prompts import PROGRAMME_SYSTEM_PROMPT, build_programme_prompt
from ..services.quota_ledger import get_ledger
from ..services.validation import validate_programme_request

bp = Blueprint("programme", __name__)


@bp.route("/parse-program", methods=["POST"])
@token_required(anonymous_message="Sign in required to use AI programme parsing")
def parse_program():
    data = json_body()
    uid = g.auth.uid
    raw_text = data.get("rawText")
    current_app.logger.info("parse_request user=%s text_length=%s has_maxes=%s",
                            uid, len(raw_text) if isinstance(raw_text, str) else 0, bool(data.get("userMaxes")))

    raw_text, user_maxes = validate_programme_request(data)

    try:
        quota = get_ledger().require(uid, PARSE)
        programme = get_openai_client().chat_json(
            model=current_app.config["OPENAI_PARSE_MODEL"],
            system=PROGRAMME_SYSTEM_PROMPT,
            user=build_programme_prompt(raw_text, user_maxes),
        )
    except Exception as e:
        current_app.logger.error("parse_error user=%s error=%s", uid, e)
        if isinstance(e, (FunctionsError, LedgerError)):
            raise
        raise FunctionsError("internal", "Failed to parse programme. Please try again.") from e

    weeks = programme.get("weeks") if isinstance(programme, dict) else None
    current_app.logger.info("parse_success user=%s remaining=%s programme_weeks=%s",
                            uid, quota.remaining, len(weeks) if isinstance(weeks, list) else 0)
    return jsonify(programme=programme, quota={"remaining": quota.remaining, "isAnonymous": False})
