# featherweight_functions/errors.py
# -*- coding: utf-8 -*-
"""
Error types shared by the ledger, the OpenAI client and the HTTP handlers.

FunctionsError is what the client sees: a status code in the callable-function
vocabulary ("invalid-argument", "resource-exhausted", ...) plus a message and
optional details. Ledger errors are mapped onto it by the app error handlers.
"""
from __future__ import annotations
from datetime import datetime

from flask import jsonify

STATUS_HTTP = {
    "invalid-argument": 400,
    "unauthenticated": 401,
    "permission-denied": 403,
    "not-found": 404,
    "resource-exhausted": 429,
    "internal": 500,
    "unavailable": 503,
}


class FunctionsError(Exception):
    def __init__(self, code: str, message: str, details: dict | None = None):
        if code not in STATUS_HTTP:
            raise ValueError(f"unknown status code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details

    @property
    def http_status(self) -> int:
        return STATUS_HTTP[self.code]

    def to_dict(self) -> dict:
        body = {"status": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


# ——————————————————————————————————————————————————————————————
# Quota ledger
# ——————————————————————————————————————————————————————————————
class LedgerError(Exception):
    """Base for everything the quota ledger raises."""


class QuotaExceeded(LedgerError):
    """A tracked period is at its limit. Never refunded."""

    def __init__(self, family: str, remaining: dict[str, int], resets_at: dict[str, datetime] | None = None):
        self.family = family
        self.remaining = dict(remaining)
        self.resets_at = dict(resets_at or {})
        summary = ", ".join(f"{n} {period}" for period, n in self.remaining.items())
        super().__init__(f"{family.capitalize()} quota exceeded. Remaining: {summary}.")


class LedgerUnavailable(LedgerError):
    """The ledger transaction could not complete (storage error or retries exhausted)."""

    def __init__(self, family: str, user_id: str, attempts: int, reason: str = ""):
        self.family = family
        self.user_id = user_id
        self.attempts = attempts
        self.reason = reason
        msg = f"{family} ledger unavailable for {user_id} after {attempts} attempt(s)"
        super().__init__(f"{msg}: {reason}" if reason else msg)


class RefundFailure(LedgerError):
    """refund() could not complete. Callers log it and keep the original error."""

    def __init__(self, family: str, user_id: str):
        self.family = family
        self.user_id = user_id
        super().__init__(f"could not refund {family} quota for {user_id}")


# ——————————————————————————————————————————————————————————————
# OpenAI
# ——————————————————————————————————————————————————————————————
class OpenAIError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _iso(dt: datetime) -> str:
    return dt.isoformat() + "Z"


def register_error_handlers(app):
    @app.errorhandler(FunctionsError)
    def _functions_error(err: FunctionsError):
        return jsonify(err.to_dict()), err.http_status

    @app.errorhandler(QuotaExceeded)
    def _quota_exceeded(err: QuotaExceeded):
        app.logger.info("quota_exceeded family=%s remaining=%s", err.family, err.remaining)
        payload = FunctionsError(
            "resource-exhausted",
            str(err),
            {"remaining": err.remaining, "resetsAt": {p: _iso(t) for p, t in err.resets_at.items()}},
        )
        return jsonify(payload.to_dict()), payload.http_status

    @app.errorhandler(LedgerUnavailable)
    def _ledger_unavailable(err: LedgerUnavailable):
        app.logger.error("ledger_unavailable family=%s user=%s attempts=%s reason=%s",
                         err.family, err.user_id, err.attempts, err.reason)
        payload = FunctionsError("unavailable", "Quota service temporarily unavailable. Please retry.")
        return jsonify(payload.to_dict()), payload.http_status

    @app.errorhandler(404)
    def _not_found(_err):
        return jsonify(FunctionsError("not-found", "Not found").to_dict()), 404

    @app.errorhandler(405)
    def _method_not_allowed(_err):
        return jsonify({"error": {"status": "invalid-argument", "message": "Method Not Allowed"}}), 405

    @app.errorhandler(413)
    def _too_large(_err):
        return jsonify(FunctionsError("invalid-argument", "Request body too large").to_dict()), 413

    @app.errorhandler(500)
    def _internal(err):
        app.logger.error("unhandled_error error=%s", getattr(err, "original_exception", err))
        return jsonify(FunctionsError("internal", "Internal Server Error").to_dict()), 500
