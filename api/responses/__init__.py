"""
Response models for API endpoints and for the outbound incident report.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from engine.enums import Criticality, DiagnosisStatus, IncidentState, RcaCategory, Severity, SignalKind


class SignalView(BaseModel):

    id: str
    service: str
    kind: SignalKind
    timestamp: float
    severity: Severity
    attributes: Dict[str, str] = Field(default_factory=dict)
    numeric_value: Optional[float] = None


class RejectedSignalView(BaseModel):

    signal_id: str
    reason: str


class IngestResult(BaseModel):

    accepted: int
    rejected: List[RejectedSignalView] = Field(default_factory=list)
    stored: int


class HypothesisView(BaseModel):

    rule_id: str
    category: RcaCategory
    explanation: str
    confidence: float = Field(ge=0.0, le=1.0)
    service: str
    recommended_mitigation: str
    supporting_signal_ids: List[str] = Field(default_factory=list)
    supporting_kinds: List[SignalKind] = Field(default_factory=list)


class StateChangeView(BaseModel):

    previous: IncidentState
    current: IncidentState
    at: float
    note: str = ""


class IncidentReport(BaseModel):

    incident_id: str
    service: str
    state: IncidentState
    priority: Criticality
    opened_at: float
    closed_at: Optional[float] = None
    trigger_summary: str
    ranked_causes: List[HypothesisView] = Field(default_factory=list)
    recommended_mitigations: List[str] = Field(default_factory=list)
    candidate_signal_count: int
    diagnosis_status: DiagnosisStatus
    diagnosis_summary: str
    notes: List[str] = Field(default_factory=list)
    superseded_by: Optional[str] = None
    topology_version: Optional[int] = None
    history: List[StateChangeView] = Field(default_factory=list)


class DeploymentHint(BaseModel):

    commit: str
    repository: str
    service: str


class ServiceView(BaseModel):

    name: str
    criticality: Criticality
    dependencies: List[str] = Field(default_factory=list)
    external_dependencies: List[str] = Field(default_factory=list)
    owner: str = ""
    sla: Optional[float] = None


class TopologyView(BaseModel):

    version: int
    services: List[ServiceView] = Field(default_factory=list)
    has_cycle: bool = False


class NeighborsView(BaseModel):

    service: str
    hops: int
    neighbors: List[str] = Field(default_factory=list)
    topology_version: int
