from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from engine.enums import Criticality, IncidentState, Severity, SignalKind
from engine.signals.models import Signal, Trigger


class SignalRequest(BaseModel):
    id: str = Field(min_length=1)
    service: str = Field(min_length=1)
    kind: SignalKind
    timestamp: float
    severity: Severity = Severity.info
    attributes: Dict[str, str] = Field(default_factory=dict)
    numeric_value: Optional[float] = None

    def to_signal(self) -> Signal:
        return Signal(
            id=self.id,
            service=self.service,
            kind=self.kind,
            timestamp=self.timestamp,
            severity=self.severity,
            attributes=dict(self.attributes),
            numeric_value=self.numeric_value,
        )


class SignalBatchRequest(BaseModel):
    signals: List[SignalRequest] = Field(default_factory=list, max_length=10_000)


class TriggerRequest(BaseModel):
    service: str = Field(min_length=1)
    timestamp: float
    severity: Severity = Severity.high
    metric_name: Optional[str] = None
    value: Optional[float] = None
    alarm_id: Optional[str] = None

    def to_trigger(self) -> Trigger:
        return Trigger(
            service=self.service,
            timestamp=self.timestamp,
            severity=self.severity,
            metric_name=self.metric_name,
            value=self.value,
            alarm_id=self.alarm_id,
        )


class ServiceSpec(BaseModel):
    name: str = Field(min_length=1)
    dependencies: List[str] = Field(default_factory=list)
    criticality: Criticality = Criticality.medium
    owner: str = ""
    external_dependencies: List[str] = Field(default_factory=list)
    sla: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class TopologyDocument(BaseModel):
    services: List[ServiceSpec] = Field(default_factory=list)


class TransitionRequest(BaseModel):
    state: IncidentState
    note: str = ""
