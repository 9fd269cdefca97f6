"""
Diagnosis rankers. The rule-based ranker evaluates the immutable rule base over an incident's candidate signals and attaches the sorted hypotheses; the abstract interface lets another inference backend take its place.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import List, Mapping, Optional

from config import settings
from engine.enums import IncidentState
from engine.exceptions import CorrelationSuperseded, CorrelationTimeoutError
from engine.incidents.models import Incident, RootCauseHypothesis
from engine.rca.rules import RuleBase, RuleContext, default_rule_base
from engine.rca.scoring import rank_key

log = logging.getLogger(__name__)

NO_HYPOTHESIS_MESSAGE = "No automatic hypothesis - manual investigation required."


class DiagnosisRanker(ABC):
    @abstractmethod
    def diagnose(
        self,
        incident: Incident,
        deadline: float | None = None,
        cancelled: Optional[threading.Event] = None,
    ) -> List[RootCauseHypothesis]: ...


class RuleBasedRanker(DiagnosisRanker):
    def __init__(
        self,
        rule_base: Optional[RuleBase] = None,
        hops: int | None = None,
        window_seconds: float | None = None,
        deploy_window_seconds: float | None = None,
    ) -> None:
        self._rules = rule_base or default_rule_base()
        self.hops = int(settings.correlation_hops if hops is None else hops)
        self.window_seconds = float(settings.correlation_window_seconds if window_seconds is None else window_seconds)
        self.deploy_window_seconds = float(
            settings.deploy_window_seconds if deploy_window_seconds is None else deploy_window_seconds
        )

    @property
    def rule_base(self) -> RuleBase:
        return self._rules

    def replace_rules(self, rule_base: RuleBase) -> None:
        # wholesale swap; a diagnosis in flight keeps the rule base it started with
        self._rules = rule_base
        log.info("Rule base replaced: v%d with %d rule(s)", rule_base.version, len(rule_base))

    def reload_weights(self, weights: Mapping[str, float]) -> RuleBase:
        fresh = default_rule_base(weights, version=self._rules.version + 1)
        self.replace_rules(fresh)
        return fresh

    def diagnose(
        self,
        incident: Incident,
        deadline: float | None = None,
        cancelled: Optional[threading.Event] = None,
    ) -> List[RootCauseHypothesis]:
        rules = self._rules
        ctx = RuleContext(
            trigger=incident.trigger_signal,
            candidates=tuple(incident.candidate_signals),
            topology=incident.topology,
            hops=self.hops,
            window_seconds=self.window_seconds,
            deploy_window_seconds=self.deploy_window_seconds,
        )

        found: List[RootCauseHypothesis] = []
        try:
            for rule in rules.rules:
                if cancelled is not None and cancelled.is_set():
                    raise CorrelationSuperseded("diagnosis superseded by a more severe trigger")
                if deadline is not None and time.monotonic() >= deadline:
                    raise CorrelationTimeoutError(
                        f"diagnosis budget exceeded after {len(found)} hypothesis(es)", partial=found,
                    )
                hypothesis = rule.evaluate(ctx)
                if hypothesis is not None:
                    found.append(hypothesis)
        except CorrelationTimeoutError as exc:
            incident.partial = True
            incident.notes.append(str(exc))
            log.warning("Incident %s: %s", incident.id, exc)

        if cancelled is not None and cancelled.is_set():
            raise CorrelationSuperseded("diagnosis superseded by a more severe trigger")
        found.sort(key=rank_key)
        incident.ranked_causes.extend(found)
        incident.ranked_causes.sort(key=rank_key)

        if incident.state is IncidentState.open:
            incident.transition(IncidentState.diagnosed)
        if found:
            top = found[0]
            log.info(
                "Incident %s diagnosed: %s (%.3f) among %d hypothesis(es)",
                incident.id, top.rule_id, top.confidence_score, len(found),
            )
        else:
            log.info("Incident %s: %s", incident.id, NO_HYPOTHESIS_MESSAGE)
        return list(incident.ranked_causes)
