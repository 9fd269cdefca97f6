"""
Incident record and root-cause hypothesis types, with the incident state machine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from engine.enums import Criticality, IncidentState, RcaCategory
from engine.exceptions import InvalidTransitionError
from engine.signals.models import Signal
from engine.topology.graph import TopologySnapshot


_TRANSITIONS: Dict[IncidentState, FrozenSet[IncidentState]] = {
    IncidentState.open: frozenset({IncidentState.diagnosed, IncidentState.resolved, IncidentState.escalated}),
    IncidentState.diagnosed: frozenset({IncidentState.mitigating, IncidentState.resolved, IncidentState.escalated}),
    IncidentState.mitigating: frozenset({IncidentState.resolved, IncidentState.escalated}),
    IncidentState.resolved: frozenset(),
    IncidentState.escalated: frozenset(),
}


@dataclass(frozen=True)
class RootCauseHypothesis:
    rule_id: str
    category: RcaCategory
    explanation: str
    confidence_score: float
    supporting_signals: Tuple[Signal, ...]
    recommended_mitigation: str
    service: str = ""
    priority: int = 0

    def latest_support(self) -> float:
        return max((s.timestamp for s in self.supporting_signals), default=float("-inf"))


@dataclass(frozen=True)
class StateChange:
    previous: IncidentState
    current: IncidentState
    at: float
    note: str = ""


@dataclass
class Incident:
    trigger_signal: Signal
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    opened_at: float = field(default_factory=time.time)
    state: IncidentState = IncidentState.open
    priority: Criticality = Criticality.low
    candidate_signals: List[Signal] = field(default_factory=list)
    ranked_causes: List[RootCauseHypothesis] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    degraded: bool = False
    partial: bool = False
    superseded_by: Optional[str] = None
    closed_at: Optional[float] = None
    history: List[StateChange] = field(default_factory=list)
    topology: Optional[TopologySnapshot] = field(default=None, repr=False, compare=False)

    @property
    def service(self) -> str:
        return self.trigger_signal.service

    @property
    def is_closed(self) -> bool:
        return self.state.terminal

    def can_transition(self, target: IncidentState) -> bool:
        return target in _TRANSITIONS[self.state]

    def transition(self, target: IncidentState, note: str = "", at: float | None = None) -> StateChange:
        if not self.can_transition(target):
            raise InvalidTransitionError(
                f"incident {self.id} cannot move from {self.state.value} to {target.value}"
            )
        when = time.time() if at is None else at
        change = StateChange(previous=self.state, current=target, at=when, note=note)
        self.state = target
        self.history.append(change)
        if target.terminal:
            self.closed_at = when
        if note:
            self.notes.append(note)
        return change

    def discard_work(self, note: str) -> None:
        self.candidate_signals = []
        self.ranked_causes = []
        self.notes.append(note)
