# featherweight_functions/services/families.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from dataclasses import dataclass, field

from ..models import ParseQuota, VoiceQuota, AnalysisQuota


@dataclass(frozen=True)
class FeatureFamily:
    """One independently quota'd capability and the table holding its ledger."""

    name: str
    model: type
    limits: dict[str, int]
    # period -> (counter column, reset marker column)
    columns: dict[str, tuple[str, str]]
    # True: the counter stores the remaining balance instead of the usage
    counts_down: bool = False
    refundable: bool = False
    label: str = field(default="")

    @property
    def periods(self) -> tuple[str, ...]:
        return tuple(self.columns)


_THREE_PERIODS = {
    "daily": ("daily_count", "last_daily_reset"),
    "weekly": ("weekly_count", "last_weekly_reset"),
    "monthly": ("monthly_count", "last_monthly_reset"),
}

PARSE = FeatureFamily(
    name="parse",
    model=ParseQuota,
    limits={"daily": 10, "weekly": 35, "monthly": 50},
    columns=_THREE_PERIODS,
    label="programme parses",
)

VOICE = FeatureFamily(
    name="voice",
    model=VoiceQuota,
    limits={"daily": 50, "weekly": 200, "monthly": 500},
    columns=_THREE_PERIODS,
    label="voice transcriptions",
)

ANALYSIS = FeatureFamily(
    name="analysis",
    model=AnalysisQuota,
    limits={"monthly": 10},
    columns={"monthly": ("monthly_count", "last_reset")},
    counts_down=True,
    refundable=True,
    label="training analyses",
)

FAMILIES = {f.name: f for f in (PARSE, VOICE, ANALYSIS)}


def get_family(name: str) -> FeatureFamily:
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValueError(f"unknown feature family: {name}") from None
