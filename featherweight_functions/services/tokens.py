# featherweight_functions/services/tokens.py
# -*- coding: utf-8 -*-
"""
ID tokens and app-attestation tokens (HS256 JWTs).
"""
from __future__ import annotations
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt
from flask import current_app

JWT_ALGORITHM = "HS256"


def create_id_token(user_id: str, provider: str = "password", test_user: bool = False,
                    secret: str | None = None, ttl_hours: int | None = None) -> str:
    """Create an ID token for ``user_id`` (used by tests and ``flask issue-token``)."""
    secret = secret or current_app.config["AUTH_TOKEN_SECRET"]
    ttl = ttl_hours if ttl_hours is not None else current_app.config.get("AUTH_TOKEN_TTL_HOURS", 1)
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "sign_in_provider": provider,
        "iat": now,
        "exp": now + timedelta(hours=ttl),
    }
    if test_user:
        payload["test_user"] = True
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_id_token(token: str, secret: str | None = None) -> Optional[dict]:
    """Decode and validate an ID token. Returns the claims or None."""
    secret = secret or current_app.config["AUTH_TOKEN_SECRET"]
    try:
        return jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def create_app_check_token(app_id: str = "featherweight-android", secret: str | None = None) -> str:
    secret = secret or current_app.config["APP_CHECK_SECRET"]
    now = datetime.now(timezone.utc)
    return jwt.encode({"sub": app_id, "iat": now, "exp": now + timedelta(hours=1)}, secret, algorithm=JWT_ALGORITHM)


def verify_app_check_token(token: str, secret: str | None = None) -> bool:
    secret = secret or current_app.config["APP_CHECK_SECRET"]
    try:
        jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.InvalidTokenError:
        return False
    return True
