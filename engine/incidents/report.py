"""
Structured incident report and deployment correlation hint built from an incident record, for delivery to notification and code-review collaborators.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Optional, Tuple

from api.responses import DeploymentHint, HypothesisView, IncidentReport, StateChangeView
from engine.enums import DiagnosisStatus, RcaCategory, SignalKind
from engine.incidents.models import Incident, RootCauseHypothesis
from engine.rca.ranker import NO_HYPOTHESIS_MESSAGE
from engine.signals.models import Signal


def trigger_summary(signal: Signal) -> str:
    parts = [f"{signal.severity.value} alarm on {signal.service}"]
    metric = signal.metric_name()
    if metric:
        value = f"={signal.numeric_value:g}" if signal.numeric_value is not None else ""
        parts.append(f"{metric}{value}")
    alarm_id = signal.attributes.get("alarm_id")
    if alarm_id:
        parts.append(f"alarm {alarm_id}")
    return " | ".join(parts)


def _hypothesis_view(h: RootCauseHypothesis) -> HypothesisView:
    return HypothesisView(
        rule_id=h.rule_id,
        category=h.category,
        explanation=h.explanation,
        confidence=h.confidence_score,
        service=h.service,
        recommended_mitigation=h.recommended_mitigation,
        supporting_signal_ids=[s.id for s in h.supporting_signals],
        supporting_kinds=sorted({s.kind for s in h.supporting_signals}, key=lambda k: k.value),
    )


def diagnosis_status(incident: Incident) -> Tuple[DiagnosisStatus, str]:
    causes = incident.ranked_causes
    if incident.superseded_by:
        return DiagnosisStatus.degraded, (
            f"Superseded by incident {incident.superseded_by}; correlation was discarded. {NO_HYPOTHESIS_MESSAGE}"
        )
    if incident.degraded:
        return DiagnosisStatus.degraded, f"Signal correlation was unavailable. {NO_HYPOTHESIS_MESSAGE}"
    if incident.partial:
        if causes:
            return DiagnosisStatus.partial, (
                f"Partial diagnosis: the time budget ran out; {len(causes)} hypothesis(es) found so far, "
                f"top is {causes[0].rule_id}."
            )
        return DiagnosisStatus.partial, f"Partial diagnosis: the time budget ran out. {NO_HYPOTHESIS_MESSAGE}"
    if not causes:
        return DiagnosisStatus.no_hypothesis, NO_HYPOTHESIS_MESSAGE
    top = causes[0]
    return DiagnosisStatus.diagnosed, f"Top hypothesis {top.rule_id} ({top.confidence_score:.0%}): {top.explanation}"


def build_report(incident: Incident) -> IncidentReport:
    status, summary = diagnosis_status(incident)
    mitigations = list(dict.fromkeys(h.recommended_mitigation for h in incident.ranked_causes))
    return IncidentReport(
        incident_id=incident.id,
        service=incident.service,
        state=incident.state,
        priority=incident.priority,
        opened_at=incident.opened_at,
        closed_at=incident.closed_at,
        trigger_summary=trigger_summary(incident.trigger_signal),
        ranked_causes=[_hypothesis_view(h) for h in incident.ranked_causes],
        recommended_mitigations=mitigations,
        candidate_signal_count=len(incident.candidate_signals),
        diagnosis_status=status,
        diagnosis_summary=summary,
        notes=list(incident.notes),
        superseded_by=incident.superseded_by,
        topology_version=incident.topology.version if incident.topology is not None else None,
        history=[
            StateChangeView(previous=c.previous, current=c.current, at=c.at, note=c.note)
            for c in incident.history
        ],
    )


def deployment_hint(incident: Incident) -> Optional[DeploymentHint]:
    if not incident.ranked_causes:
        return None
    top = incident.ranked_causes[0]
    if top.category is not RcaCategory.deployment_regression:
        return None
    deploys = [s for s in top.supporting_signals if s.kind is SignalKind.deployment]
    if not deploys:
        return None
    latest = max(deploys, key=lambda s: (s.timestamp, s.id))
    attrs = latest.attributes
    return DeploymentHint(
        commit=attrs.get("commit") or attrs.get("version") or latest.id,
        repository=attrs.get("repository") or attrs.get("repo") or "",
        service=latest.service,
    )
