# featherweight_functions/blueprints/voice.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, current_app, g, jsonify

from . import json_body
from ..decorators import token_required
from ..errors import FunctionsError, LedgerError
from ..services.families import VOICE
from ..services.openai_client import get_openai_client, with_retries
from ..services.prompts import VOICE_SYSTEM_PROMPT, WHISPER_PROMPT, build_voice_prompt
from ..services.quota_ledger import get_ledger
from ..services.validation import validate_audio_request, validate_voice_parse_request

bp = Blueprint("voice", __name__)

VOICE_SIGN_IN_MESSAGE = "Sign in required to use voice input"
VOICE_PARSE_MAX_TOKENS = 4000


def _retry_logger(event: str, uid: str, max_retries: int):
    def on_retry(attempt, error):
        current_app.logger.warning("%s user=%s attempt=%s/%s status=%s error=%s",
                                   event, uid, attempt, max_retries, error.status_code, error)
    return on_retry


@bp.route("/transcribe-audio", methods=["POST"])
@token_required(anonymous_message=VOICE_SIGN_IN_MESSAGE)
def transcribe_audio():
    data = json_body()
    uid = g.auth.uid
    audio, mime_type = validate_audio_request(data)
    current_app.logger.info("transcribe_request user=%s audio_bytes=%s mime=%s", uid, len(audio), mime_type)

    cfg = current_app.config
    max_retries = cfg.get("OPENAI_MAX_RETRIES", 3)
    try:
        quota = get_ledger().require(uid, VOICE)
        client = get_openai_client()
        text, attempt = with_retries(
            lambda: client.transcribe(audio=audio, mime_type=mime_type, prompt=WHISPER_PROMPT,
                                      model=cfg["OPENAI_TRANSCRIBE_MODEL"]),
            max_retries=max_retries,
            on_retry=_retry_logger("transcribe_retry", uid, max_retries),
        )
    except Exception as e:
        current_app.logger.error("transcribe_error user=%s error=%s", uid, e)
        if isinstance(e, (FunctionsError, LedgerError)):
            raise
        raise FunctionsError("internal", "Failed to transcribe audio. Please try again.") from e

    current_app.logger.info("transcribe_success user=%s text_length=%s remaining=%s attempt=%s",
                            uid, len(text), quota.remaining, attempt)
    return jsonify(text=text, quota={"remaining": quota.remaining})


@bp.route("/parse-voice-workout", methods=["POST"])
@token_required(anonymous_message=VOICE_SIGN_IN_MESSAGE)
def parse_voice_workout():
    data = json_body()
    uid = g.auth.uid
    transcription, unit = validate_voice_parse_request(data)
    current_app.logger.info("parse_voice_request user=%s length=%s unit=%s", uid, len(transcription), unit)

    cfg = current_app.config
    max_retries = cfg.get("OPENAI_MAX_RETRIES", 3)
    try:
        client = get_openai_client()
        parsed, attempt = with_retries(
            lambda: client.chat_json(
                model=cfg["OPENAI_VOICE_PARSE_MODEL"],
                system=VOICE_SYSTEM_PROMPT,
                user=build_voice_prompt(transcription, unit),
                max_completion_tokens=VOICE_PARSE_MAX_TOKENS,
            ),
            max_retries=max_retries,
            on_retry=_retry_logger("parse_voice_retry", uid, max_retries),
        )
    except Exception as e:
        current_app.logger.error("parse_voice_error user=%s error=%s", uid, e)
        if isinstance(e, FunctionsError):
            raise
        raise FunctionsError("internal", "Failed to parse workout. Please try again.") from e

    exercises = parsed.get("exercises") if isinstance(parsed, dict) else None
    current_app.logger.info("parse_voice_success user=%s exercises=%s confidence=%s attempt=%s",
                            uid, len(exercises) if isinstance(exercises, list) else 0,
                            parsed.get("overallConfidence") if isinstance(parsed, dict) else None, attempt)
    return jsonify(result=parsed)
