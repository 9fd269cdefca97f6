"""
Fixed rule base for root cause hypotheses. Each rule is a predicate over the incident's candidate signals; a match names its supporting signals, an explanation and a recommended mitigation, and is scored into a hypothesis.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from config import settings
from engine.baseline.compute import exceeds_threshold
from engine.enums import RcaCategory, Severity, SignalKind
from engine.exceptions import UnknownServiceError
from engine.incidents.models import RootCauseHypothesis
from engine.rca.scoring import confidence, evidence_factor, recency_factor
from engine.signals.models import Signal
from engine.topology.graph import TopologySnapshot

_CRASH_RE = re.compile(
    r"oom[ _-]?kill|out of memory|crashloopbackoff|back-off restarting|\bcrash(?:ed|ing)?\b|\bpanic\b|segfault|exit code 137",
    re.IGNORECASE,
)
_CONNECTION_RE = re.compile(
    r"connection refused|econnrefused|connection reset|no route to host|upstream connect error|dial tcp|connect timeout|\bunavailable\b",
    re.IGNORECASE,
)
_FAILURE_RE = re.compile(r"timed? ?out|\b5\d\d\b|\berror\b|\bfail(?:ed|ure)?\b|exception", re.IGNORECASE)

_ERROR_KINDS = frozenset({SignalKind.log, SignalKind.trace, SignalKind.alarm})


def _as_float(value: object) -> Optional[float]:
    try:
        if value is None or value == "":
            return None
        number = float(value)
        return number if number == number else None
    except (TypeError, ValueError):
        return None


def _by_time(signals: Sequence[Signal]) -> Tuple[Signal, ...]:
    return tuple(sorted(signals, key=lambda s: (s.timestamp, s.id)))


@dataclass(frozen=True)
class RuleContext:
    trigger: Signal
    candidates: Sequence[Signal]
    topology: Optional[TopologySnapshot]
    hops: int
    window_seconds: float
    deploy_window_seconds: float

    def dependencies(self) -> Set[str]:
        if self.topology is None:
            return set()
        return self.topology.dependencies_within(self.trigger.service, self.hops)

    def scope(self) -> Set[str]:
        return {self.trigger.service} | self.dependencies()

    def is_error(self, signal: Signal) -> bool:
        floor = Severity(settings.rca_error_severity).weight()
        return signal.kind in _ERROR_KINDS and signal.severity.weight() >= floor


@dataclass(frozen=True)
class RuleMatch:
    supporting: Tuple[Signal, ...]
    explanation: str
    mitigation: str
    service: str
    horizon_seconds: float


@dataclass(frozen=True)
class HypothesisRule:
    rule_id: str
    category: RcaCategory
    priority: int
    base_weight: float
    predicate: Callable[[RuleContext], Optional[RuleMatch]]

    def evaluate(self, ctx: RuleContext) -> Optional[RootCauseHypothesis]:
        match = self.predicate(ctx)
        if match is None:
            return None
        supporting = _by_time(match.supporting)
        recency = recency_factor(ctx.trigger.timestamp, supporting, match.horizon_seconds)
        evidence = evidence_factor(supporting)
        return RootCauseHypothesis(
            rule_id=self.rule_id,
            category=self.category,
            explanation=match.explanation,
            confidence_score=confidence(self.base_weight, recency, evidence),
            supporting_signals=supporting,
            recommended_mitigation=match.mitigation,
            service=match.service,
            priority=self.priority,
        )


@dataclass(frozen=True)
class RuleBase:
    rules: Tuple[HypothesisRule, ...]
    version: int = 1

    def __len__(self) -> int:
        return len(self.rules)

    def rule_ids(self) -> List[str]:
        return [r.rule_id for r in self.rules]


def deployment_regression(ctx: RuleContext) -> Optional[RuleMatch]:
    scope = ctx.scope()
    t = ctx.trigger.timestamp
    deploys = [
        s for s in ctx.candidates
        if s.kind is SignalKind.deployment and s.service in scope and t - ctx.deploy_window_seconds <= s.timestamp <= t
    ]
    if not deploys:
        return None

    latest = max(deploys, key=lambda s: (s.timestamp, s.id))
    errors = [
        s for s in ctx.candidates
        if ctx.is_error(s) and s.service in scope and s.timestamp >= latest.timestamp
    ]
    version = latest.attributes.get("version") or latest.attributes.get("commit") or latest.id
    minutes = (t - latest.timestamp) / 60.0
    explanation = f"Deployment {version} of {latest.service} landed {minutes:.0f} min before the {ctx.trigger.service} alert"
    if errors:
        explanation += f"; {len(errors)} error signal(s) followed it"
    return RuleMatch(
        supporting=tuple(deploys + errors),
        explanation=explanation,
        mitigation=f"Roll back {latest.service} to the release before {version} and confirm {ctx.trigger.service} recovers.",
        service=latest.service,
        horizon_seconds=ctx.deploy_window_seconds,
    )


def dependency_outage(ctx: RuleContext) -> Optional[RuleMatch]:
    deps = ctx.dependencies()
    if not deps:
        return None
    crashes = [
        s for s in ctx.candidates
        if s.service in deps and s.kind is not SignalKind.deployment and _CRASH_RE.search(s.text())
    ]
    if not crashes:
        return None
    crashed = {s.service for s in crashes}
    refused = [
        s for s in ctx.candidates
        if s.kind in _ERROR_KINDS and s.service not in crashed and _CONNECTION_RE.search(s.text())
    ]
    if not refused:
        return None

    culprit = max(crashes, key=lambda s: (s.timestamp, s.id)).service
    return RuleMatch(
        supporting=tuple(crashes + refused),
        explanation=(
            f"Dependency {culprit} crashed or ran out of memory and "
            f"{len(refused)} connection failure(s) followed in its callers"
        ),
        mitigation=f"Restore {culprit}: check restarts and memory limits, then fail over or shed load in its callers.",
        service=culprit,
        horizon_seconds=ctx.window_seconds,
    )


def organic_load(ctx: RuleContext) -> Optional[RuleMatch]:
    scope = ctx.scope()
    t = ctx.trigger.timestamp
    for s in ctx.candidates:
        if s.kind is SignalKind.deployment and s.service in scope and s.timestamp >= t - ctx.deploy_window_seconds:
            return None

    history: Dict[Tuple[str, str], List[float]] = defaultdict(list)
    breaches: List[Signal] = []
    details: List[str] = []
    for s in ctx.candidates:
        if s.kind is not SignalKind.metric or s.service not in scope or s.numeric_value is None:
            continue
        name = s.metric_name()
        key = (s.service, name)
        breached, detail = exceeds_threshold(
            float(s.numeric_value),
            history[key],
            explicit=_as_float(s.attributes.get("threshold")),
            configured=settings.metric_thresholds.get(name),
        )
        history[key].append(float(s.numeric_value))
        if breached:
            breaches.append(s)
            details.append(f"{s.service} {name or 'metric'} {detail}")
    if not breaches:
        return None

    latest = max(breaches, key=lambda s: (s.timestamp, s.id))
    errors = [s for s in ctx.candidates if ctx.is_error(s) and s.service == ctx.trigger.service]
    explanation = f"Capacity pressure with no recent deployment: {details[-1]}"
    if len(breaches) > 1:
        explanation += f" (+{len(breaches) - 1} more breach(es))"
    return RuleMatch(
        supporting=tuple(breaches + errors),
        explanation=explanation,
        mitigation=f"Scale out {latest.service} or raise its resource limits; confirm autoscaling kept up with demand.",
        service=latest.service,
        horizon_seconds=ctx.window_seconds,
    )


def error_propagation(ctx: RuleContext) -> Optional[RuleMatch]:
    deps = ctx.dependencies()
    dep_errors = [s for s in ctx.candidates if s.service in deps and ctx.is_error(s)]
    if not dep_errors:
        return None
    local_errors = [s for s in ctx.candidates if s.service == ctx.trigger.service and ctx.is_error(s)]
    first = min(dep_errors, key=lambda s: (s.timestamp, s.id))
    if local_errors and min(s.timestamp for s in local_errors) < first.timestamp:
        return None

    lead = ctx.trigger.timestamp - first.timestamp
    return RuleMatch(
        supporting=tuple(dep_errors + local_errors),
        explanation=(
            f"Errors started in dependency {first.service} {lead / 60.0:.0f} min before the alert "
            f"and propagated to {ctx.trigger.service}"
        ),
        mitigation=f"Isolate {first.service} (circuit-break or degrade calls to it) and review its recent changes.",
        service=first.service,
        horizon_seconds=ctx.window_seconds,
    )


def external_dependency(ctx: RuleContext) -> Optional[RuleMatch]:
    if ctx.topology is None:
        return None
    try:
        node = ctx.topology.node(ctx.trigger.service)
    except UnknownServiceError:
        return None
    if not node.external_dependencies:
        return None

    hits: Dict[str, List[Signal]] = defaultdict(list)
    for s in ctx.candidates:
        if s.service != ctx.trigger.service or s.kind not in _ERROR_KINDS:
            continue
        text = s.text()
        if not (ctx.is_error(s) or _CONNECTION_RE.search(text) or _FAILURE_RE.search(text)):
            continue
        for external in node.external_dependencies:
            if external.lower() in text:
                hits[external].append(s)
    if not hits:
        return None

    external = max(sorted(hits), key=lambda name: len(hits[name]))
    return RuleMatch(
        supporting=tuple(hits[external]),
        explanation=f"{len(hits[external])} error signal(s) on {ctx.trigger.service} reference external dependency {external}",
        mitigation=f"Check the status of {external}; enable fallbacks or retries with backoff for calls to it.",
        service=ctx.trigger.service,
        horizon_seconds=ctx.window_seconds,
    )


_RULE_ORDER: Tuple[Tuple[str, RcaCategory, Callable[[RuleContext], Optional[RuleMatch]]], ...] = (
    ("deployment_regression", RcaCategory.deployment_regression, deployment_regression),
    ("dependency_outage", RcaCategory.dependency_outage, dependency_outage),
    ("organic_load", RcaCategory.organic_load, organic_load),
    ("error_propagation", RcaCategory.error_propagation, error_propagation),
    ("external_dependency", RcaCategory.external_dependency, external_dependency),
)


def default_rule_base(weights: Mapping[str, float] | None = None, version: int = 1) -> RuleBase:
    if weights is None:
        weights = settings.rca_rule_weights
    rules = tuple(
        HypothesisRule(rule_id=rule_id, category=category, priority=priority, base_weight=float(weights[rule_id]), predicate=predicate)
        for priority, (rule_id, category, predicate) in enumerate(_RULE_ORDER)
        if rule_id in weights
    )
    return RuleBase(rules=rules, version=version)
