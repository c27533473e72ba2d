# featherweight_functions/services/validation.py
# -*- coding: utf-8 -*-
"""
Request-body validation. Everything here runs before any quota is consumed
and fails with FunctionsError("invalid-argument", ...).
"""
from __future__ import annotations
import base64
import binascii
import re
from numbers import Number

from ..errors import FunctionsError

MAX_PROGRAMME_CHARS = 50_000
MIN_TRAINING_CHARS = 50
MAX_TRAINING_CHARS = 200_000
MAX_TRANSCRIPTION_CHARS = 5_000
MAX_AUDIO_BYTES = 25 * 1024 * 1024  # Whisper upload limit
MAX_LOG_EVENTS = 100

DEFAULT_MIME_TYPE = "audio/m4a"
VALID_MIME_TYPES = ("audio/m4a", "audio/mp4", "audio/mpeg", "audio/wav", "audio/webm")
WEIGHT_UNITS = ("kg", "lbs")
LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

INJECTION_PATTERNS = [
    re.compile(r"ignore.*previous.*instructions?", re.IGNORECASE),
    re.compile(r"disregard.*above", re.IGNORECASE),
    re.compile(r"forget.*everything", re.IGNORECASE),
    re.compile(r"new\s+instructions?:", re.IGNORECASE),
    re.compile(r"system\s*:\s*", re.IGNORECASE),
    re.compile(r"\{\{.*\}\}"),
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
]


def detect_injection_attempt(text: str) -> bool:
    return any(p.search(text) for p in INJECTION_PATTERNS)


def _invalid(message: str) -> FunctionsError:
    return FunctionsError("invalid-argument", message)


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


# ---------- programme ----------
def validate_programme_request(data: dict) -> tuple[str, dict | None]:
    raw_text = data.get("rawText")
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise _invalid("Programme text is required")
    if len(raw_text) > MAX_PROGRAMME_CHARS:
        raise _invalid(f"Programme text too long (max {MAX_PROGRAMME_CHARS} characters)")
    if detect_injection_attempt(raw_text):
        raise _invalid("Invalid content detected")

    user_maxes = data.get("userMaxes")
    if user_maxes is not None:
        if not isinstance(user_maxes, dict) or not all(
            isinstance(k, str) and _is_number(v) for k, v in user_maxes.items()
        ):
            raise _invalid("userMaxes must map exercise names to numbers")
    return raw_text, user_maxes or None


# ---------- analysis ----------
def validate_training_data(data: dict) -> str:
    training_data = data.get("trainingData")
    if not isinstance(training_data, str) or not training_data:
        raise _invalid("Training data is required")
    if len(training_data) < MIN_TRAINING_CHARS:
        raise _invalid("Insufficient training data")
    if len(training_data) > MAX_TRAINING_CHARS:
        raise _invalid("Training data is too large")
    return training_data


# ---------- voice ----------
def validate_audio_request(data: dict) -> tuple[bytes, str]:
    """Returns the decoded audio and its mime type."""
    encoded = data.get("audioBase64")
    if not isinstance(encoded, str) or not encoded:
        raise _invalid("Audio data is required")
    try:
        audio = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise _invalid("Audio data is not valid base64")
    if not audio:
        raise _invalid("Audio data is required")
    if len(audio) > MAX_AUDIO_BYTES:
        raise _invalid(f"Audio file too large (max {MAX_AUDIO_BYTES // (1024 * 1024)}MB)")

    mime_type = data.get("mimeType") or DEFAULT_MIME_TYPE
    if mime_type not in VALID_MIME_TYPES:
        raise _invalid(f"Unsupported audio format: {mime_type}")
    return audio, mime_type


def validate_voice_parse_request(data: dict) -> tuple[str, str]:
    transcription = data.get("transcription")
    if not isinstance(transcription, str) or not transcription.strip():
        raise _invalid("Transcription is required")
    if len(transcription) > MAX_TRANSCRIPTION_CHARS:
        raise _invalid(f"Transcription too long (max {MAX_TRANSCRIPTION_CHARS} characters)")
    if detect_injection_attempt(transcription):
        raise _invalid("Invalid content detected")

    unit = data.get("preferredWeightUnit") or "kg"
    if unit not in WEIGHT_UNITS:
        raise _invalid("preferredWeightUnit must be 'kg' or 'lbs'")
    return transcription, unit


# ---------- client logs ----------
def validate_log_batch(data: dict) -> list[dict]:
    events = data.get("events")
    if not isinstance(events, list):
        raise _invalid("Invalid log batch format")
    if len(events) > MAX_LOG_EVENTS:
        raise _invalid(f"Batch too large (max {MAX_LOG_EVENTS} events)")
    for i, event in enumerate(events):
        if not isinstance(event, dict):
            raise _invalid(f"events[{i}] must be an object")
        if event.get("level") not in LOG_LEVELS:
            raise _invalid(f"events[{i}].level must be one of {', '.join(LOG_LEVELS)}")
        if not isinstance(event.get("tag"), str) or not isinstance(event.get("message"), str):
            raise _invalid(f"events[{i}] requires tag and message")
        if not _is_number(event.get("timestamp")):
            raise _invalid(f"events[{i}].timestamp must be milliseconds since epoch")
    return events
