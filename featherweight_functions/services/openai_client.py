# featherweight_functions/services/openai_client.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json
import time

import openai
from openai import OpenAI
from flask import current_app

from ..errors import OpenAIError

# transient upstream statuses worth another attempt
RETRYABLE_STATUS = {403, 429, 500, 502, 503}


class OpenAIClient:
    """Thin wrapper over the OpenAI SDK for the two calls the functions make.

    SDK exceptions surface as ``OpenAIError`` carrying the HTTP status, so the
    retry policy lives in ``with_retries`` and not in the SDK.
    """

    def __init__(self, api_key: str, base_url: str = "https://api.openai.com/v1", timeout: float = 120.0):
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY not configured")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = OpenAI(api_key=api_key, base_url=self.base_url, timeout=timeout, max_retries=0)

    def _call(self, create, **kwargs):
        try:
            return create(**kwargs)
        except openai.APIConnectionError as e:
            raise OpenAIError(f"OpenAI request error: {e}") from e
        except openai.APIStatusError as e:
            raise OpenAIError(f"OpenAI request failed ({e.status_code}): {e.message}", e.status_code) from e
        except openai.OpenAIError as e:
            raise OpenAIError(f"OpenAI request error: {e}") from e

    def chat_json(self, *, model: str, system: str, user: str, max_completion_tokens: int | None = None) -> dict:
        """Chat completion in JSON mode; returns the parsed JSON object."""
        params = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
        }
        if max_completion_tokens:
            params["max_completion_tokens"] = max_completion_tokens
        response = self._call(self.client.chat.completions.create, **params)

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise OpenAIError("No content in OpenAI response")
        try:
            return json.loads(content)
        except ValueError as e:
            raise OpenAIError(f"OpenAI returned invalid JSON: {e}") from e

    def transcribe(self, *, audio: bytes, mime_type: str, prompt: str, model: str = "whisper-1") -> str:
        extension = mime_type.split("/")[1] if "/" in mime_type else "m4a"
        transcription = self._call(
            self.client.audio.transcriptions.create,
            model=model,
            file=(f"audio.{extension or 'm4a'}", audio, mime_type),
            prompt=prompt,
            response_format="json",
        )
        return transcription.text or ""


def is_retryable(error: Exception) -> bool:
    return isinstance(error, OpenAIError) and error.status_code in RETRYABLE_STATUS


def with_retries(call, *, max_retries: int = 3, on_retry=None, sleep=None):
    """Run ``call`` up to ``max_retries`` times; backoff 1s, 2s, 4s on transient failures.

    ``on_retry(attempt, error)`` fires only when another attempt follows.
    Returns ``(result, attempt)``.
    """
    sleep = sleep or time.sleep
    for attempt in range(1, max_retries + 1):
        try:
            return call(), attempt
        except OpenAIError as e:
            if not is_retryable(e) or attempt == max_retries:
                raise
            if on_retry:
                on_retry(attempt, e)
            sleep(2 ** (attempt - 1))
    raise OpenAIError("OpenAI call failed after retries")


def get_openai_client() -> OpenAIClient:
    cfg = current_app.config
    return OpenAIClient(
        cfg.get("OPENAI_API_KEY", ""),
        base_url=cfg.get("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        timeout=cfg.get("OPENAI_TIMEOUT_SECONDS", 120.0),
    )
