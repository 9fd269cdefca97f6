"""
Shared builders for signals, topologies and engines used across the test suite.
"""

from __future__ import annotations

from engine.correlation.correlator import Correlator
from engine.enums import Criticality, Severity, SignalKind
from engine.signals.models import Signal
from engine.signals.store import SignalStore
from engine.topology.graph import ServiceNode, TopologyModel

T0 = 1_700_000_000.0


def sig(
    id: str,
    service: str,
    kind: SignalKind = SignalKind.log,
    ts: float = T0,
    severity: Severity = Severity.info,
    value: float | None = None,
    **attrs: str,
) -> Signal:
    return Signal(
        id=id,
        service=service,
        kind=kind,
        timestamp=ts,
        severity=severity,
        attributes=dict(attrs),
        numeric_value=value,
    )


def shop_topology() -> TopologyModel:
    """frontend -> checkoutservice -> paymentservice -> stripe (external)."""
    model = TopologyModel()
    model.reload([
        ServiceNode("frontend", Criticality.high, frozenset({"checkoutservice", "cartservice"})),
        ServiceNode("checkoutservice", Criticality.critical, frozenset({"paymentservice", "cartservice"})),
        ServiceNode(
            "paymentservice",
            Criticality.critical,
            frozenset({"ledger"}),
            external_dependencies=frozenset({"stripe"}),
        ),
        ServiceNode("cartservice", Criticality.medium, frozenset({"redis-cart"})),
        ServiceNode("ledger", Criticality.high),
        ServiceNode("redis-cart", Criticality.medium),
    ])
    return model


def store_at(now: float = T0 + 3600) -> SignalStore:
    return SignalStore(retention_seconds=86_400, clock_skew_tolerance=60, clock=lambda: now)


def correlator(store: SignalStore, topology: TopologyModel, **kw) -> Correlator:
    kw.setdefault("window_seconds", 1800)
    kw.setdefault("hops", 2)
    kw.setdefault("cap", 500)
    kw.setdefault("deploy_window_seconds", 3600)
    return Correlator(store, topology, **kw)
