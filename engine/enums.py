"""
Enumerations for Severity, Signal Kinds, Service Criticality, Incident States and RCA Categories

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum

from config import CRITICALITY_WEIGHTS, SEVERITY_WEIGHTS


class Severity(str, Enum):
    info = "info"
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self.value]


class SignalKind(str, Enum):
    metric = "metric"
    log = "log"
    trace = "trace"
    deployment = "deployment"
    alarm = "alarm"


class Criticality(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    def weight(self) -> int:
        return CRITICALITY_WEIGHTS[self.value]


class IncidentState(str, Enum):
    open = "open"
    diagnosed = "diagnosed"
    mitigating = "mitigating"
    resolved = "resolved"
    escalated = "escalated"

    @property
    def terminal(self) -> bool:
        return self in (IncidentState.resolved, IncidentState.escalated)


class RcaCategory(str, Enum):
    deployment_regression = "deployment_regression"
    dependency_outage = "dependency_outage"
    organic_load = "organic_load"
    error_propagation = "error_propagation"
    external_dependency = "external_dependency"


class DiagnosisStatus(str, Enum):
    diagnosed = "diagnosed"
    no_hypothesis = "no_hypothesis"
    partial = "partial"
    degraded = "degraded"
