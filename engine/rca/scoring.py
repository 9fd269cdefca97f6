"""
Confidence scoring and ordering for RCA hypotheses, combining a rule's base weight with the recency of its supporting signals and the number of independent signal kinds that back it.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Sequence, Tuple

from config import settings
from engine.incidents.models import RootCauseHypothesis
from engine.signals.models import Signal


def recency_factor(trigger_ts: float, signals: Sequence[Signal], horizon_seconds: float) -> float:
    if not signals or horizon_seconds <= 0:
        return 0.0
    newest = max(s.timestamp for s in signals)
    lag = max(0.0, trigger_ts - newest)
    return round(max(0.0, 1.0 - lag / horizon_seconds), 3)


def evidence_factor(signals: Sequence[Signal], saturation: int | None = None) -> float:
    if saturation is None:
        saturation = settings.rca_evidence_kinds_saturation
    kinds = {s.kind for s in signals}
    if not kinds:
        return 0.0
    return round(min(1.0, len(kinds) / max(1, saturation)), 3)


def confidence(base_weight: float, recency: float, evidence: float) -> float:
    raw = base_weight + settings.rca_recency_weight * recency + settings.rca_evidence_weight * evidence
    return round(max(0.0, min(settings.rca_score_cap, raw)), 3)


def rank_key(hypothesis: RootCauseHypothesis) -> Tuple[float, int, float]:
    # confidence desc, rule priority asc, newest supporting signal first
    return (-hypothesis.confidence_score, hypothesis.priority, -hypothesis.latest_support())
