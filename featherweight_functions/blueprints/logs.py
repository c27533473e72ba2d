# featherweight_functions/blueprints/logs.py
# -*- coding: utf-8 -*-
"""
Ingestion of client-side log batches into the server log.
"""
from __future__ import annotations
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, g, jsonify

from . import json_body
from ..decorators import token_required
from ..services.validation import validate_log_batch

bp = Blueprint("logs", __name__)

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _iso_ms(ms) -> str | None:
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _event_record(event: dict, uid: str) -> dict:
    context = event.get("context") or {}
    if not isinstance(context, dict):
        context = {}
    record = {
        "tag": event["tag"],
        "level": event["level"],
        "timestamp": _iso_ms(event["timestamp"]),
        "userId": context.get("userId") or uid,
        "installationId": context.get("installationId") or "unknown",
        "appVersion": context.get("appVersion") or "unknown",
        "deviceModel": context.get("deviceModel"),
        "androidVersion": context.get("androidVersion"),
        "screen": context.get("screen"),
    }
    throwable = event.get("throwable")
    if isinstance(throwable, dict):
        record["error"] = {"message": throwable.get("message"), "stackTrace": throwable.get("stackTrace")}
    return record


@bp.route("/log-event", methods=["POST"])
@token_required()
def log_event():
    events = validate_log_batch(json_body())
    uid = g.auth.uid
    client_log = current_app.logger.getChild("client")
    for event in events:
        record = _event_record(event, uid)
        client_log.log(LEVELS[event["level"]], "[%s] %s", event["tag"], event["message"],
                       extra={"client_event": record})
    return jsonify(success=True, eventsProcessed=len(events))
