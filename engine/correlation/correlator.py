"""
Correlation of a trigger alert with the signals recorded around it, bounded by a time window and by topology hops, to assemble the candidate set that the diagnosis ranker reasons over.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

from config import settings
from engine.enums import Criticality, SignalKind
from engine.exceptions import (
    CorrelationSuperseded,
    CorrelationTimeoutError,
    UnknownServiceError,
    UpstreamUnavailableError,
)
from engine.incidents.models import Incident
from engine.signals.models import Signal
from engine.signals.store import SignalStore
from engine.topology.graph import TopologyModel, TopologySnapshot

log = logging.getLogger(__name__)


def _check(deadline: float | None, cancelled: Optional[threading.Event]) -> None:
    if cancelled is not None and cancelled.is_set():
        raise CorrelationSuperseded("correlation superseded by a more severe trigger")
    if deadline is not None and time.monotonic() >= deadline:
        raise CorrelationTimeoutError("correlation budget exceeded")


def apply_cap(signals: List[Signal], trigger_ts: float, cap: int) -> List[Signal]:
    """Keep at most ``cap`` signals, dropping the least severe and then the
    furthest from the trigger first. Result is time ordered."""
    if len(signals) <= cap:
        return signals
    ranked = sorted(
        signals,
        key=lambda s: (-s.severity.weight(), abs(trigger_ts - s.timestamp), s.id),
    )
    kept = ranked[:max(0, cap)]
    return sorted(kept, key=lambda s: (s.timestamp, s.id))


class Correlator:
    def __init__(
        self,
        store: SignalStore,
        topology: TopologyModel,
        window_seconds: float | None = None,
        hops: int | None = None,
        cap: int | None = None,
        deploy_window_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._topology = topology
        self.window_seconds = float(settings.correlation_window_seconds if window_seconds is None else window_seconds)
        self.hops = int(settings.correlation_hops if hops is None else hops)
        self.cap = int(settings.candidate_cap if cap is None else cap)
        self.deploy_window_seconds = float(
            settings.deploy_window_seconds if deploy_window_seconds is None else deploy_window_seconds
        )

    def open_incident(self, trigger: Signal) -> Incident:
        incident = Incident(trigger_signal=trigger)
        log.info("Opened incident %s for %s (trigger %s)", incident.id, trigger.service, trigger.id)
        return incident

    def run(
        self,
        trigger: Signal,
        deadline: float | None = None,
        cancelled: Optional[threading.Event] = None,
    ) -> Incident:
        return self.correlate(self.open_incident(trigger), deadline=deadline, cancelled=cancelled)

    def correlate(
        self,
        incident: Incident,
        deadline: float | None = None,
        cancelled: Optional[threading.Event] = None,
    ) -> Incident:
        trigger = incident.trigger_signal
        try:
            snapshot = self._topology.snapshot()
        except UpstreamUnavailableError as exc:
            return self._degrade(incident, exc)

        incident.topology = snapshot
        incident.priority = self._priority(snapshot, trigger.service, incident)
        scope = [trigger.service] + sorted(snapshot.neighbors(trigger.service, self.hops))

        try:
            ordinary, deployments = self._collect(scope, trigger, deadline, cancelled)
        except UpstreamUnavailableError as exc:
            return self._degrade(incident, exc)
        except CorrelationTimeoutError as exc:
            ordinary = [s for s in exc.partial if s.kind is not SignalKind.deployment]
            deployments = [s for s in exc.partial if s.kind is SignalKind.deployment]
            incident.partial = True
            incident.notes.append(f"{exc}: kept {len(exc.partial)} signal(s) gathered before the deadline")
            log.warning("Incident %s correlation hit its budget; continuing with partial candidates", incident.id)

        budget = max(0, self.cap - len(deployments))
        if len(ordinary) > budget:
            log.info(
                "Incident %s: capping %d candidate(s) to %d (plus %d deployment(s))",
                incident.id, len(ordinary), budget, len(deployments),
            )
            ordinary = apply_cap(ordinary, trigger.timestamp, budget)

        merged = sorted(ordinary + deployments, key=lambda s: (s.timestamp, s.id))
        incident.candidate_signals = merged
        _check(None, cancelled)
        log.info(
            "Incident %s correlated %d candidate(s) across %d service(s) (topology v%d)",
            incident.id, len(merged), len(scope), snapshot.version,
        )
        return incident

    def _collect(
        self,
        scope: List[str],
        trigger: Signal,
        deadline: float | None,
        cancelled: Optional[threading.Event],
    ) -> Tuple[List[Signal], List[Signal]]:
        t = trigger.timestamp
        window_start = t - self.window_seconds
        deploy_start = t - max(self.deploy_window_seconds, 0.0)
        earliest = min(window_start, deploy_start)

        ordinary: List[Signal] = []
        deployments: Dict[str, Signal] = {}
        for service in scope:
            try:
                _check(deadline, cancelled)
            except CorrelationTimeoutError as exc:
                raise CorrelationTimeoutError(str(exc), partial=ordinary + list(deployments.values())) from None
            for signal in self._store.query(service, None, earliest, t):
                if signal.id == trigger.id:
                    continue
                if signal.kind is SignalKind.deployment and signal.timestamp >= deploy_start:
                    deployments[signal.id] = signal
                elif signal.timestamp >= window_start:
                    ordinary.append(signal)
        return ordinary, list(deployments.values())

    @staticmethod
    def _priority(snapshot: TopologySnapshot, service: str, incident: Incident) -> Criticality:
        try:
            return snapshot.criticality(service)
        except UnknownServiceError as exc:
            log.info("Incident %s: %s, treating as lowest priority", incident.id, exc)
            incident.notes.append(f"{exc}; treated as lowest priority")
            return Criticality.low

    @staticmethod
    def _degrade(incident: Incident, exc: Exception) -> Incident:
        log.warning("Incident %s opened without correlation: %s", incident.id, exc)
        incident.candidate_signals = []
        incident.degraded = True
        incident.notes.append(f"correlation unavailable: {exc}")
        return incident
