"""
Test Suite for the Incident Pipeline

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

import asyncio
import threading

import pytest

from engine.enums import DiagnosisStatus, IncidentState, RcaCategory, Severity, SignalKind
from engine.exceptions import CorrelationSuperseded, InvalidTransitionError, UnknownIncidentError
from engine.pipeline import IncidentPipeline
from engine.rca.ranker import NO_HYPOTHESIS_MESSAGE, RuleBasedRanker
from engine.rca.rules import default_rule_base
from engine.signals.models import Trigger
from engine.signals.store import SignalStore
from notifiers.base import Notifier
from notifiers.exceptions import NotifierUnavailable
from store import incidents as incident_store
from helpers import T0, correlator, shop_topology, sig, store_at

NOW = T0 + 3600


class RecordingNotifier(Notifier):
    def __init__(self):
        self.reports = []
        self.hints = []

    async def notify(self, report):
        self.reports.append(report)

    async def send_deployment_hint(self, hint):
        self.hints.append(hint)


class BrokenNotifier(Notifier):
    async def notify(self, report):
        raise NotifierUnavailable("webhook down")

    async def send_deployment_hint(self, hint):
        raise NotifierUnavailable("webhook down")


def _pipeline(store=None, topology=None, notifier=None, **kw):
    store = store if store is not None else store_at(NOW)
    topology = topology or shop_topology()
    return IncidentPipeline(
        store,
        topology,
        correlator=correlator(store, topology),
        ranker=RuleBasedRanker(default_rule_base(), hops=2, window_seconds=1800, deploy_window_seconds=3600),
        notifier=notifier or RecordingNotifier(),
        clock=lambda: NOW,
        **kw,
    )


@pytest.mark.asyncio
async def test_deployment_trigger_publishes_report_and_hint():
    notifier = RecordingNotifier()
    pipeline = _pipeline(notifier=notifier)
    pipeline.store.ingest(sig(
        "deploy-v2", "paymentservice", SignalKind.deployment, ts=T0, commit="f00d", repository="shop/payments",
    ))

    incident = await pipeline.handle_trigger(
        Trigger(service="paymentservice", timestamp=T0 + 480, severity=Severity.high, metric_name="error_rate")
    )

    assert incident.state is IncidentState.diagnosed
    assert incident.ranked_causes[0].category is RcaCategory.deployment_regression
    assert len(notifier.reports) == 1
    assert notifier.reports[0].incident_id == incident.id
    assert [h.commit for h in notifier.hints] == ["f00d"]

    stored = await incident_store.load(incident.id)
    assert stored is not None
    assert stored.diagnosis_status is DiagnosisStatus.diagnosed
    # the trigger itself is now a stored alarm signal
    assert any(s.kind is SignalKind.alarm for s in pipeline.store.query("paymentservice"))


@pytest.mark.asyncio
async def test_unavailable_store_still_produces_incident():
    store = store_at(NOW)
    store.close()
    notifier = RecordingNotifier()
    pipeline = _pipeline(store=store, notifier=notifier)

    incident = await pipeline.handle_trigger(Trigger(service="cartservice", timestamp=T0, severity=Severity.high))

    assert incident.candidate_signals == []
    assert incident.ranked_causes == []
    assert incident.degraded
    assert any("trigger signal not stored" in n for n in incident.notes)
    report = notifier.reports[0]
    assert report.diagnosis_status is DiagnosisStatus.degraded
    assert NO_HYPOTHESIS_MESSAGE in report.diagnosis_summary


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_trigger():
    pipeline = _pipeline(notifier=BrokenNotifier())
    pipeline.store.ingest(sig("deploy", "paymentservice", SignalKind.deployment, ts=T0))
    incident = await pipeline.handle_trigger(
        Trigger(service="paymentservice", timestamp=T0 + 60, severity=Severity.high)
    )
    assert incident.state is IncidentState.diagnosed
    assert await incident_store.load(incident.id) is not None


class _GatedStore(SignalStore):
    """Blocks the first query until released, so one correlation stays in flight."""

    def __init__(self, **kw):
        super().__init__(**kw)
        self.entered = threading.Event()
        self.release = threading.Event()
        self._gated = False

    def query(self, service, kinds=None, start=None, end=None):
        if not self._gated:
            self._gated = True
            self.entered.set()
            self.release.wait(5)
        return super().query(service, kinds, start, end)


@pytest.mark.asyncio
async def test_more_severe_trigger_supersedes_in_flight_incident():
    store = _GatedStore(retention_seconds=86_400, clock_skew_tolerance=60, clock=lambda: NOW)
    notifier = RecordingNotifier()
    pipeline = _pipeline(store=store, topology=shop_topology(), notifier=notifier)
    store.ingest(sig("log", "redis-cart", ts=T0 - 30, severity=Severity.high, message="error"))

    first = asyncio.create_task(
        pipeline.handle_trigger(Trigger(service="redis-cart", timestamp=T0, severity=Severity.medium))
    )
    assert await asyncio.to_thread(store.entered.wait, 5)

    second = await pipeline.handle_trigger(
        Trigger(service="redis-cart", timestamp=T0 + 20, severity=Severity.critical)
    )
    store.release.set()
    older = await first

    assert older.superseded_by == second.id
    assert older.candidate_signals == []
    assert older.ranked_causes == []
    assert any(f"superseded by incident {second.id}" in n for n in older.notes)
    assert [r.incident_id for r in notifier.reports] == [second.id]
    stored = await incident_store.load(older.id)
    assert stored.superseded_by == second.id


@pytest.mark.asyncio
async def test_less_severe_trigger_does_not_supersede():
    store = _GatedStore(retention_seconds=86_400, clock_skew_tolerance=60, clock=lambda: NOW)
    notifier = RecordingNotifier()
    pipeline = _pipeline(store=store, notifier=notifier)

    first = asyncio.create_task(
        pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0, severity=Severity.critical))
    )
    assert await asyncio.to_thread(store.entered.wait, 5)
    second = await pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0 + 5, severity=Severity.high))
    store.release.set()
    older = await first

    assert older.superseded_by is None
    assert {r.incident_id for r in notifier.reports} == {older.id, second.id}


@pytest.mark.asyncio
async def test_trigger_outside_debounce_window_does_not_supersede():
    store = _GatedStore(retention_seconds=86_400, clock_skew_tolerance=60, clock=lambda: NOW)
    pipeline = _pipeline(store=store, debounce_seconds=60)

    first = asyncio.create_task(
        pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0, severity=Severity.low))
    )
    assert await asyncio.to_thread(store.entered.wait, 5)
    await pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0 + 120, severity=Severity.critical))
    store.release.set()
    older = await first
    assert older.superseded_by is None


class _HeldRanker(RuleBasedRanker):
    """Holds the first finished diagnosis on its worker thread until released."""

    def __init__(self):
        super().__init__(default_rule_base(), hops=2, window_seconds=1800, deploy_window_seconds=3600)
        self.finished = threading.Event()
        self.release = threading.Event()
        self._held = False

    def diagnose(self, incident, deadline=None, cancelled=None):
        causes = super().diagnose(incident, deadline=deadline, cancelled=cancelled)
        if not self._held:
            self._held = True
            self.finished.set()
            self.release.wait(5)
        return causes


@pytest.mark.asyncio
async def test_completed_diagnosis_is_not_superseded():
    store = store_at(NOW)
    topology = shop_topology()
    ranker = _HeldRanker()
    notifier = RecordingNotifier()
    pipeline = IncidentPipeline(
        store, topology, correlator=correlator(store, topology), ranker=ranker, notifier=notifier,
        clock=lambda: NOW,
    )
    store.ingest(sig("deploy", "paymentservice", SignalKind.deployment, ts=T0 - 60))

    first = asyncio.create_task(
        pipeline.handle_trigger(Trigger(service="paymentservice", timestamp=T0, severity=Severity.medium))
    )
    assert await asyncio.to_thread(ranker.finished.wait, 5)
    second = await pipeline.handle_trigger(
        Trigger(service="paymentservice", timestamp=T0 + 10, severity=Severity.critical)
    )
    ranker.release.set()
    older = await first

    assert older.superseded_by is None
    assert older.state is IncidentState.diagnosed
    assert older.ranked_causes
    assert {r.incident_id for r in notifier.reports} == {older.id, second.id}


def test_ranker_stops_before_marking_diagnosed_when_cancelled():
    store = store_at()
    store.ingest(sig("deploy", "paymentservice", SignalKind.deployment, ts=T0 - 60))
    incident = correlator(store, shop_topology()).run(
        sig("alarm", "paymentservice", SignalKind.alarm, ts=T0, severity=Severity.high)
    )
    cancelled = threading.Event()
    cancelled.set()
    with pytest.raises(CorrelationSuperseded):
        RuleBasedRanker(default_rule_base()).diagnose(incident, cancelled=cancelled)
    assert incident.state is IncidentState.open
    assert incident.ranked_causes == []


@pytest.mark.asyncio
async def test_responder_transitions_and_errors():
    pipeline = _pipeline()
    incident = await pipeline.handle_trigger(Trigger(service="frontend", timestamp=T0, severity=Severity.high))

    await pipeline.transition(incident.id, IncidentState.mitigating, note="failing over")
    await pipeline.transition(incident.id, IncidentState.resolved)
    assert incident.is_closed
    stored = await incident_store.load(incident.id)
    assert stored.state is IncidentState.resolved

    with pytest.raises(InvalidTransitionError):
        await pipeline.transition(incident.id, IncidentState.open)
    with pytest.raises(UnknownIncidentError):
        await pipeline.transition("missing", IncidentState.resolved)


@pytest.mark.asyncio
async def test_close_stale_escalates_old_open_incidents():
    pipeline = _pipeline(incident_timeout_seconds=600)
    a = await pipeline.handle_trigger(Trigger(service="frontend", timestamp=T0, severity=Severity.high))
    b = await pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0, severity=Severity.high))
    await pipeline.transition(b.id, IncidentState.resolved)

    assert await pipeline.close_stale(now=NOW + 599) == []
    escalated = await pipeline.close_stale(now=NOW + 600)
    assert [i.id for i in escalated] == [a.id]
    assert a.state is IncidentState.escalated
    assert b.state is IncidentState.resolved


@pytest.mark.asyncio
async def test_sweep_evicts_and_escalates():
    store = SignalStore(retention_seconds=100, clock_skew_tolerance=60, clock=lambda: NOW)
    pipeline = _pipeline(store=store, incident_timeout_seconds=10)
    store.ingest(sig("old", "frontend", ts=NOW - 500))
    await pipeline.handle_trigger(Trigger(service="frontend", timestamp=NOW, severity=Severity.high))

    evicted, escalated, released = await pipeline.sweep(now=NOW + 50)
    assert (evicted, escalated, released) == (1, 1, 0)


@pytest.mark.asyncio
async def test_sweep_releases_closed_incidents_past_retention():
    pipeline = _pipeline(incident_retention_seconds=3600)
    pipeline.store.ingest(sig("deploy", "paymentservice", SignalKind.deployment, ts=T0))
    closed = []
    for i in range(20):
        incident = await pipeline.handle_trigger(
            Trigger(service="paymentservice", timestamp=T0 + 60 + i, severity=Severity.high)
        )
        await pipeline.transition(incident.id, IncidentState.resolved)
        closed.append(incident)
    still_open = await pipeline.handle_trigger(Trigger(service="frontend", timestamp=T0, severity=Severity.high))
    assert len(pipeline.list()) == 21

    assert await pipeline.prune_closed(now=NOW + 3599) == 0
    _, _, released = await pipeline.sweep(now=NOW + 3600)

    assert released == 20
    assert [i.id for i in pipeline.list()] == [still_open.id]
    assert pipeline.get(closed[0].id) is None
    # the persisted report outlives the in-memory record
    stored = await incident_store.load(closed[0].id)
    assert stored.state is IncidentState.resolved


@pytest.mark.asyncio
async def test_close_stale_skips_incident_resolved_during_sweep(monkeypatch):
    pipeline = _pipeline(incident_timeout_seconds=600)
    a = await pipeline.handle_trigger(Trigger(service="frontend", timestamp=T0, severity=Severity.high))
    b = await pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0, severity=Severity.high))

    original_save = incident_store.save

    async def save_then_resolve(report):
        await original_save(report)
        if report.incident_id == a.id and not b.is_closed:
            b.transition(IncidentState.resolved, note="fixed by responder", at=NOW)

    monkeypatch.setattr(incident_store, "save", save_then_resolve)
    escalated = await pipeline.close_stale(now=NOW + 600)

    assert [i.id for i in escalated] == [a.id]
    assert a.state is IncidentState.escalated
    assert b.state is IncidentState.resolved


@pytest.mark.asyncio
async def test_get_and_list_filters():
    pipeline = _pipeline()
    a = await pipeline.handle_trigger(Trigger(service="frontend", timestamp=T0, severity=Severity.high))
    b = await pipeline.handle_trigger(Trigger(service="ledger", timestamp=T0, severity=Severity.high))
    await pipeline.transition(b.id, IncidentState.escalated)

    assert pipeline.get(a.id) is a
    assert pipeline.get("nope") is None
    assert [i.id for i in pipeline.list(service="ledger")] == [b.id]
    assert [i.id for i in pipeline.list(state=IncidentState.escalated)] == [b.id]
    assert {i.id for i in pipeline.list()} == {a.id, b.id}
