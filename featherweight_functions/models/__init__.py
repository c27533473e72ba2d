# featherweight_functions/models/__init__.py
# -*- coding: utf-8 -*-
from .quota import ParseQuota, VoiceQuota, AnalysisQuota


__all__ = [
    "ParseQuota",
    "VoiceQuota",
    "AnalysisQuota",
]
