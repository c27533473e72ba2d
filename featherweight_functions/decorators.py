# featherweight_functions/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from dataclasses import dataclass
from functools import wraps
from flask import current_app, g, request

from .errors import FunctionsError
from .services.tokens import decode_id_token, verify_app_check_token


@dataclass(frozen=True)
class AuthContext:
    uid: str
    sign_in_provider: str
    test_user: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.sign_in_provider == "anonymous"


def _bearer_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[7:].strip() or None
    return None


def token_required(anonymous_message: str | None = None):
    """Require a valid ID token (and app attestation, when enforced).

    With ``anonymous_message`` set, anonymous sign-ins are rejected with it.
    The caller is available as ``g.auth``.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            claims = decode_id_token(token) if token else None

            # app attestation first; test users may skip it
            is_test_user = bool(claims and claims.get("test_user") is True)
            if current_app.config.get("APP_CHECK_ENFORCED"):
                app_token = request.headers.get("X-Firebase-AppCheck")
                if not app_token and not is_test_user:
                    current_app.logger.warning("app_check_missing path=%s", request.path)
                    raise FunctionsError("unauthenticated", "App Check verification failed")
                if app_token and not verify_app_check_token(app_token):
                    current_app.logger.warning("app_check_invalid path=%s", request.path)
                    raise FunctionsError("unauthenticated", "App Check verification failed")
                if not app_token:
                    current_app.logger.info("app_check_bypassed_test_user user=%s", claims.get("sub"))

            if not claims:
                raise FunctionsError("unauthenticated", "Authentication required")

            auth = AuthContext(
                uid=str(claims["sub"]),
                sign_in_provider=str(claims.get("sign_in_provider") or "unknown"),
                test_user=is_test_user,
            )
            if anonymous_message and auth.is_anonymous:
                raise FunctionsError("unauthenticated", anonymous_message)

            g.auth = auth
            return view_func(*args, **kwargs)
        return wrapper
    return decorator
