"""
Signal and trigger records exchanged between ingestion, correlation and diagnosis.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional

from engine.enums import Severity, SignalKind


@dataclass(frozen=True)
class Signal:
    id: str
    service: str
    kind: SignalKind
    timestamp: float
    severity: Severity = Severity.info
    attributes: Dict[str, str] = field(default_factory=dict)
    numeric_value: Optional[float] = None

    def text(self) -> str:
        # attribute values joined for pattern matching in the rule base
        return " ".join(str(v) for v in self.attributes.values()).lower()

    def metric_name(self) -> str:
        return self.attributes.get("metric") or self.attributes.get("name") or ""


@dataclass(frozen=True)
class Trigger:
    service: str
    timestamp: float
    severity: Severity
    metric_name: Optional[str] = None
    value: Optional[float] = None
    alarm_id: Optional[str] = None

    def to_signal(self) -> Signal:
        attributes: Dict[str, str] = {"source": "trigger"}
        if self.metric_name:
            attributes["metric"] = self.metric_name
        if self.alarm_id:
            attributes["alarm_id"] = self.alarm_id
        signal_id = f"alarm:{self.alarm_id}:{self.timestamp}" if self.alarm_id else f"trigger:{uuid.uuid4().hex}"
        return Signal(
            id=signal_id,
            service=self.service,
            kind=SignalKind.alarm,
            timestamp=float(self.timestamp),
            severity=self.severity,
            attributes=attributes,
            numeric_value=self.value,
        )
