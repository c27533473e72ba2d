# featherweight_functions/models/quota.py
from __future__ import annotations
from ..extensions import db


class QuotaBookkeepingMixin:
    """Columns every quota ledger carries, whatever its periods."""

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), nullable=False, unique=True, index=True)

    total_requests = db.Column(db.Integer, nullable=False, default=0)       # grants, never decremented
    quota_exceeded_count = db.Column(db.Integer, nullable=False, default=0)
    first_request_at = db.Column(db.DateTime)                                # naive UTC
    last_request_at = db.Column(db.DateTime)

    def to_dict(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns if c.name != "id"}


class ParseQuota(QuotaBookkeepingMixin, db.Model):
    __tablename__ = "parse_quotas"

    is_anonymous = db.Column(db.Boolean, nullable=False, default=False)     # only signed-in users parse

    # usage counters, 0 -> limit
    daily_count = db.Column(db.Integer, nullable=False, default=0)
    weekly_count = db.Column(db.Integer, nullable=False, default=0)
    monthly_count = db.Column(db.Integer, nullable=False, default=0)

    last_daily_reset = db.Column(db.DateTime, nullable=False)
    last_weekly_reset = db.Column(db.DateTime, nullable=False)
    last_monthly_reset = db.Column(db.DateTime, nullable=False)

    version_id = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class VoiceQuota(QuotaBookkeepingMixin, db.Model):
    __tablename__ = "voice_quotas"

    daily_count = db.Column(db.Integer, nullable=False, default=0)
    weekly_count = db.Column(db.Integer, nullable=False, default=0)
    monthly_count = db.Column(db.Integer, nullable=False, default=0)

    last_daily_reset = db.Column(db.DateTime, nullable=False)
    last_weekly_reset = db.Column(db.DateTime, nullable=False)
    last_monthly_reset = db.Column(db.DateTime, nullable=False)

    version_id = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class AnalysisQuota(QuotaBookkeepingMixin, db.Model):
    __tablename__ = "analysis_quotas"

    # remaining balance, limit -> 0 (refunds add back, capped at the limit)
    monthly_count = db.Column(db.Integer, nullable=False)
    last_reset = db.Column(db.DateTime, nullable=False)
    last_analysis = db.Column(db.DateTime)

    version_id = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}
