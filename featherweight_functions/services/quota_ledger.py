# featherweight_functions/services/quota_ledger.py
# -*- coding: utf-8 -*-
"""
Per-user, per-feature quota ledger.

Each call is one read-modify-write transaction on the user's quota row.
Concurrency is optimistic: rows carry a ``version_id`` column, so a concurrent
writer turns our UPDATE into a StaleDataError, and two first requests racing
to create the row collide on the unique ``user_id``. Both cases roll back and
replay the whole transaction; once the attempts run out the caller gets
LedgerUnavailable, never a quota answer.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LedgerUnavailable, QuotaExceeded, RefundFailure
from .families import FeatureFamily
from .periods import next_reset_at, period_boundary_crossed, to_utc_naive


@dataclass(frozen=True)
class QuotaCheckResult:
    family: str
    granted: bool
    remaining: dict[str, int]


class QuotaLedger:
    def __init__(self, session, *, logger: logging.Logger | None = None, tz: str = "UTC", max_attempts: int = 5):
        self.session = session
        self.logger = logger or logging.getLogger(__name__)
        self.tz = tz
        self.max_attempts = max(1, int(max_attempts))

    # ------------------------------------------------------------------ public
    def check_and_consume(self, user_id: str, family: FeatureFamily, now: datetime | None = None) -> QuotaCheckResult:
        """Consume one unit of ``family`` for ``user_id`` if every period allows it.

        A refused check still persists the bookkeeping (exceeded count and
        last request time) but never touches a counter.
        """
        now = to_utc_naive(now)

        def work():
            record = self._load(user_id, family)
            if record is None:
                record = self._new_record(user_id, family, now)
                self.session.add(record)
            else:
                self._apply_resets(record, family, now)

            record.last_request_at = now
            if self._exceeded(record, family):
                record.quota_exceeded_count = (record.quota_exceeded_count or 0) + 1
                return QuotaCheckResult(family.name, False, self._remaining(record, family))

            for period in family.periods:
                counter, _ = family.columns[period]
                step = -1 if family.counts_down else 1
                setattr(record, counter, getattr(record, counter) + step)
            record.total_requests = (record.total_requests or 0) + 1
            if record.first_request_at is None:
                record.first_request_at = now
            if hasattr(record, "last_analysis"):
                record.last_analysis = now
            return QuotaCheckResult(family.name, True, self._remaining(record, family))

        result = self._run(user_id, family, work)
        if result.granted:
            self.logger.info("quota_granted family=%s user=%s remaining=%s", family.name, user_id, result.remaining)
        else:
            self.logger.warning("quota_refused family=%s user=%s remaining=%s", family.name, user_id, result.remaining)
        return result

    def require(self, user_id: str, family: FeatureFamily, now: datetime | None = None) -> QuotaCheckResult:
        """check_and_consume, raising QuotaExceeded when the unit is refused."""
        now = to_utc_naive(now)
        result = self.check_and_consume(user_id, family, now)
        if not result.granted:
            resets_at = {
                period: next_reset_at(period, now, self.tz)
                for period, left in result.remaining.items() if left <= 0
            }
            raise QuotaExceeded(family.name, result.remaining, resets_at)
        return result

    def refund(self, user_id: str, family: FeatureFamily, now: datetime | None = None) -> int | None:
        """Give one unit back after a failed downstream call.

        Returns the new remaining balance, or None when the user has no record.
        """
        if not family.refundable:
            raise ValueError(f"{family.name} quota is not refundable")

        def work():
            record = self._load(user_id, family)
            if record is None:
                return None
            limit = family.limits[family.periods[0]]
            counter, _ = family.columns[family.periods[0]]
            setattr(record, counter, min(limit, getattr(record, counter) + 1))
            return getattr(record, counter)

        try:
            balance = self._run(user_id, family, work)
        except LedgerUnavailable as exc:
            raise RefundFailure(family.name, user_id) from exc
        if balance is not None:
            self.logger.info("quota_refunded family=%s user=%s remaining=%s", family.name, user_id, balance)
        return balance

    def status(self, user_id: str, family: FeatureFamily, now: datetime | None = None) -> dict[str, int]:
        """Remaining units per period without consuming or persisting anything."""
        now = to_utc_naive(now)
        try:
            record = self._load(user_id, family)
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise LedgerUnavailable(family.name, user_id, 1, str(exc)) from exc
        if record is None:
            return dict(family.limits)
        remaining = {}
        for period in family.periods:
            counter, marker = family.columns[period]
            limit = family.limits[period]
            if period_boundary_crossed(getattr(record, marker), period, now, self.tz):
                remaining[period] = limit
            elif family.counts_down:
                remaining[period] = max(0, getattr(record, counter))
            else:
                remaining[period] = max(0, limit - getattr(record, counter))
        # nothing was changed, but do not keep the read transaction open
        self.session.rollback()
        return remaining

    # ----------------------------------------------------------------- helpers
    def _load(self, user_id: str, family: FeatureFamily):
        return self.session.execute(
            select(family.model).where(family.model.user_id == user_id)
        ).scalar_one_or_none()

    def _new_record(self, user_id: str, family: FeatureFamily, now: datetime):
        values = {"user_id": user_id, "total_requests": 0, "quota_exceeded_count": 0}
        for period in family.periods:
            counter, marker = family.columns[period]
            values[counter] = family.limits[period] if family.counts_down else 0
            values[marker] = now
        return family.model(**values)

    def _apply_resets(self, record, family: FeatureFamily, now: datetime) -> None:
        for period in family.periods:
            counter, marker = family.columns[period]
            if period_boundary_crossed(getattr(record, marker), period, now, self.tz):
                setattr(record, counter, family.limits[period] if family.counts_down else 0)
                setattr(record, marker, now)

    def _exceeded(self, record, family: FeatureFamily) -> bool:
        for period in family.periods:
            counter, _ = family.columns[period]
            value = getattr(record, counter)
            if family.counts_down:
                if value <= 0:
                    return True
            elif value >= family.limits[period]:
                return True
        return False

    def _remaining(self, record, family: FeatureFamily) -> dict[str, int]:
        remaining = {}
        for period in family.periods:
            counter, _ = family.columns[period]
            value = getattr(record, counter)
            if family.counts_down:
                remaining[period] = max(0, value)
            else:
                remaining[period] = max(0, family.limits[period] - value)
        return remaining

    def _run(self, user_id: str, family: FeatureFamily, work):
        reason = ""
        for attempt in range(1, self.max_attempts + 1):
            inserting = False
            try:
                result = work()
                inserting = any(isinstance(obj, family.model) for obj in self.session.new)
                self.session.commit()
                return result
            except (StaleDataError, IntegrityError) as exc:
                self.session.rollback()
                # only a racing first insert on user_id is a conflict; other violations repeat
                if isinstance(exc, IntegrityError) and not inserting:
                    raise LedgerUnavailable(family.name, user_id, attempt, str(exc)) from exc
                reason = exc.__class__.__name__
                self.logger.warning("ledger_conflict family=%s user=%s attempt=%s/%s error=%s",
                                    family.name, user_id, attempt, self.max_attempts, reason)
            except SQLAlchemyError as exc:
                self.session.rollback()
                raise LedgerUnavailable(family.name, user_id, attempt, str(exc)) from exc
        raise LedgerUnavailable(family.name, user_id, self.max_attempts, f"retries exhausted ({reason})")


def get_ledger() -> QuotaLedger:
    """Ledger bound to the request's session and the app's logger/config."""
    from ..extensions import db

    return QuotaLedger(
        db.session,
        logger=current_app.logger,
        tz=current_app.config.get("QUOTA_TIMEZONE", "UTC"),
        max_attempts=current_app.config.get("LEDGER_MAX_ATTEMPTS", 5),
    )
