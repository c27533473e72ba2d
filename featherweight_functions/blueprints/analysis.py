# featherweight_functions/blueprints/analysis.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json

from flask import Blueprint, current_app, g, jsonify

from . import json_body
from ..decorators import token_required
from ..errors import FunctionsError, LedgerError, RefundFailure
from ..services.families import ANALYSIS
from ..services.openai_client import get_openai_client
from ..services.prompts import analysis_system_prompt
from ..services.quota_ledger import get_ledger
from ..services.validation import validate_training_data

bp = Blueprint("analysis", __name__)


def training_summary(training_data: str) -> tuple[int, int, bool]:
    """(workout count, weeks, has deviation data) read from the payload, defaulting to (1, 1, False)."""
    try:
        data = json.loads(training_data)
    except ValueError:
        current_app.logger.warning("analysis_payload_not_json length=%s", len(training_data))
        return 1, 1, False
    if not isinstance(data, dict):
        return 1, 1, False

    period = data.get("analysis_period") or {}
    if not isinstance(period, dict):
        period = {}
    has_deviation = bool(data.get("programme_deviation_summary"))
    try:
        return int(period.get("total_workouts") or 1), int(period.get("total_weeks") or 1), has_deviation
    except (TypeError, ValueError):
        return 1, 1, has_deviation


@bp.route("/analyze-training", methods=["POST"])
@token_required(anonymous_message="Sign in required to use AI training analysis")
def analyze_training():
    data = json_body()
    uid = g.auth.uid
    training_data = validate_training_data(data)
    workouts, weeks, has_deviation = training_summary(training_data)
    current_app.logger.info("analysis_request user=%s length=%s workouts=%s weeks=%s deviation=%s",
                            uid, len(training_data), workouts, weeks, has_deviation)

    ledger = get_ledger()
    quota_consumed = False
    try:
        quota = ledger.require(uid, ANALYSIS)
        quota_consumed = True
        analysis = get_openai_client().chat_json(
            model=current_app.config["OPENAI_ANALYSIS_MODEL"],
            system=analysis_system_prompt(workouts, weeks, has_deviation),
            user=f"Training data:\n\n{training_data}",
        )
    except Exception as e:
        current_app.logger.error("analysis_error user=%s error=%s", uid, e)
        # the unit was spent on a request that produced nothing
        if quota_consumed:
            try:
                ledger.refund(uid, ANALYSIS)
                current_app.logger.info("quota_refunded user=%s", uid)
            except RefundFailure as refund_error:
                current_app.logger.error("quota_refund_failed user=%s error=%s", uid, refund_error)
        if isinstance(e, (FunctionsError, LedgerError)):
            raise
        raise FunctionsError("internal", "Failed to analyze training. Please try again.") from e

    current_app.logger.info("analysis_success user=%s remaining=%s", uid, quota.remaining)
    return jsonify(analysis=analysis, quota={"remaining": quota.remaining})
