"""
Incident pipeline: turns each inbound trigger into an incident, runs correlation and diagnosis on a worker
thread under a time budget, applies debounce supersession between triggers on the same service, and
publishes the resulting report.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from config import settings
from engine.correlation.correlator import Correlator
from engine.enums import IncidentState
from engine.exceptions import (
    CorrelationSuperseded,
    InvalidSignalError,
    UnknownIncidentError,
    UpstreamUnavailableError,
)
from engine.incidents.models import Incident
from engine.incidents.report import build_report, deployment_hint
from engine.rca.ranker import DiagnosisRanker, RuleBasedRanker
from engine.signals.models import Trigger
from engine.signals.store import SignalStore
from engine.topology.graph import TopologyModel
from notifiers.base import Notifier
from notifiers.exceptions import NotifierError
from notifiers.logger import LogNotifier
from store import incidents as incident_store

log = logging.getLogger(__name__)


class IncidentPipeline:
    def __init__(
        self,
        store: SignalStore,
        topology: TopologyModel,
        correlator: Optional[Correlator] = None,
        ranker: Optional[DiagnosisRanker] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], float] = time.time,
        debounce_seconds: float | None = None,
        budget_seconds: float | None = None,
        max_concurrent: int | None = None,
        incident_timeout_seconds: float | None = None,
        incident_retention_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._topology = topology
        self._correlator = correlator or Correlator(store, topology)
        self._ranker = ranker or RuleBasedRanker()
        self._notifier = notifier or LogNotifier()
        self._clock = clock
        self.debounce_seconds = float(settings.debounce_seconds if debounce_seconds is None else debounce_seconds)
        self.budget_seconds = float(
            settings.diagnosis_budget_seconds if budget_seconds is None else budget_seconds
        )
        self.incident_timeout_seconds = float(
            settings.incident_timeout_seconds if incident_timeout_seconds is None else incident_timeout_seconds
        )
        self.incident_retention_seconds = float(
            settings.incident_retention_seconds if incident_retention_seconds is None else incident_retention_seconds
        )
        self._semaphore = asyncio.Semaphore(
            max(1, int(settings.max_concurrent_incidents if max_concurrent is None else max_concurrent))
        )
        self._lock = asyncio.Lock()
        self._incidents: Dict[str, Incident] = {}
        self._in_flight: Dict[str, threading.Event] = {}

    @property
    def store(self) -> SignalStore:
        return self._store

    @property
    def topology(self) -> TopologyModel:
        return self._topology

    @property
    def ranker(self) -> DiagnosisRanker:
        return self._ranker

    async def handle_trigger(self, trigger: Trigger) -> Incident:
        deadline = time.monotonic() + self.budget_seconds
        signal = trigger.to_signal()

        notes: List[str] = []
        try:
            self._store.ingest(signal)
        except InvalidSignalError as exc:
            log.warning("Trigger signal %s rejected by the store: %s", signal.id, exc)
            notes.append(f"trigger signal not stored: {exc}")
        except UpstreamUnavailableError as exc:
            log.warning("Trigger signal %s not stored: %s", signal.id, exc)
            notes.append(f"trigger signal not stored: {exc}")

        incident = self._correlator.open_incident(signal)
        incident.opened_at = self._clock()
        incident.notes.extend(notes)
        cancelled = threading.Event()

        async with self._lock:
            self._supersede_older(incident)
            self._incidents[incident.id] = incident
            self._in_flight[incident.id] = cancelled

        try:
            async with self._semaphore:
                await asyncio.to_thread(self._work, incident, deadline, cancelled)
        except CorrelationSuperseded:
            log.info("Incident %s superseded by %s; discarding its work", incident.id, incident.superseded_by)
        except Exception as exc:
            log.exception("Incident %s diagnosis failed", incident.id)
            incident.degraded = True
            incident.notes.append(f"diagnosis failed: {exc}")
        finally:
            async with self._lock:
                self._in_flight.pop(incident.id, None)

        if incident.superseded_by and incident.state is not IncidentState.open:
            # diagnosis completed before the cancellation was observed
            log.info(
                "Incident %s finished before supersession by %s took effect",
                incident.id, incident.superseded_by,
            )
            incident.superseded_by = None

        if incident.superseded_by:
            incident.discard_work(f"superseded by incident {incident.superseded_by}")
            await incident_store.save(build_report(incident))
            return incident

        await self._publish(incident)
        return incident

    def _supersede_older(self, incident: Incident) -> None:
        newer = incident.trigger_signal
        for other_id, cancelled in self._in_flight.items():
            other = self._incidents[other_id]
            older = other.trigger_signal
            if other.service != incident.service or other.superseded_by:
                continue
            if other.state is not IncidentState.open:
                continue
            if not 0 <= newer.timestamp - older.timestamp <= self.debounce_seconds:
                continue
            if newer.severity.weight() <= older.severity.weight():
                continue
            other.superseded_by = incident.id
            cancelled.set()
            log.info(
                "Incident %s (%s) supersedes in-flight incident %s (%s) on %s",
                incident.id, newer.severity.value, other.id, older.severity.value, incident.service,
            )

    def _work(self, incident: Incident, deadline: float, cancelled: threading.Event) -> None:
        self._correlator.correlate(incident, deadline=deadline, cancelled=cancelled)
        if cancelled.is_set():
            raise CorrelationSuperseded("diagnosis superseded by a more severe trigger")
        self._ranker.diagnose(incident, deadline=deadline, cancelled=cancelled)

    async def _publish(self, incident: Incident) -> None:
        report = build_report(incident)
        await incident_store.save(report)
        try:
            await self._notifier.notify(report)
        except NotifierError as exc:
            log.warning("Incident %s report not delivered: %s", incident.id, exc)

        hint = deployment_hint(incident)
        if hint is None:
            return
        try:
            await self._notifier.send_deployment_hint(hint)
        except NotifierError as exc:
            log.warning("Incident %s deployment hint not delivered: %s", incident.id, exc)

    async def transition(self, incident_id: str, state: IncidentState, note: str = "") -> Incident:
        incident = self._require(incident_id)
        incident.transition(state, note=note, at=self._clock())
        log.info("Incident %s moved to %s", incident.id, state.value)
        await incident_store.save(build_report(incident))
        return incident

    async def close_stale(self, now: float | None = None) -> List[Incident]:
        if now is None:
            now = self._clock()
        async with self._lock:
            stale = [
                incident
                for incident in self._incidents.values()
                if not incident.is_closed
                and incident.id not in self._in_flight
                and now - incident.opened_at >= self.incident_timeout_seconds
            ]
        escalated: List[Incident] = []
        for incident in stale:
            # a responder may have closed it while an earlier save was awaited
            if not incident.can_transition(IncidentState.escalated):
                continue
            incident.transition(
                IncidentState.escalated,
                note=f"escalated: no resolution within {self.incident_timeout_seconds:.0f}s",
                at=now,
            )
            log.warning("Incident %s on %s escalated after timeout", incident.id, incident.service)
            escalated.append(incident)
            await incident_store.save(build_report(incident))
        return escalated

    async def prune_closed(self, now: float | None = None) -> int:
        """Forget closed incidents past the retention window; their persisted reports remain."""
        if now is None:
            now = self._clock()
        cutoff = now - self.incident_retention_seconds
        async with self._lock:
            expired = [
                incident_id
                for incident_id, incident in self._incidents.items()
                if incident.is_closed
                and incident.closed_at is not None
                and incident.closed_at <= cutoff
                and incident_id not in self._in_flight
            ]
            for incident_id in expired:
                del self._incidents[incident_id]
        if expired:
            log.info("Released %d closed incident(s) older than %.0fs", len(expired), self.incident_retention_seconds)
        return len(expired)

    async def sweep(self, now: float | None = None) -> Tuple[int, int, int]:
        try:
            evicted = self._store.evict_expired(now)
        except UpstreamUnavailableError as exc:
            log.warning("Signal eviction skipped: %s", exc)
            evicted = 0
        escalated = await self.close_stale(now)
        pruned = await self.prune_closed(now)
        return evicted, len(escalated), pruned

    def _require(self, incident_id: str) -> Incident:
        incident = self._incidents.get(incident_id)
        if incident is None:
            raise UnknownIncidentError(incident_id)
        return incident

    def get(self, incident_id: str) -> Optional[Incident]:
        return self._incidents.get(incident_id)

    def list(self, service: Optional[str] = None, state: Optional[IncidentState] = None) -> List[Incident]:
        return sorted(
            (
                i for i in self._incidents.values()
                if (service is None or i.service == service) and (state is None or i.state is state)
            ),
            key=lambda i: (i.opened_at, i.id),
        )

    async def aclose(self) -> None:
        await self._notifier.aclose()
