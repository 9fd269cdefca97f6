# engine/exceptions.py

from __future__ import annotations

from typing import List, Optional


class CorrelationError(Exception):
    pass


class InvalidSignalError(CorrelationError, ValueError):
    pass


class UnknownServiceError(CorrelationError, KeyError):
    def __init__(self, service: str) -> None:
        super().__init__(service)
        self.service = service

    def __str__(self) -> str:
        return f"unknown service: {self.service}"


class UpstreamUnavailableError(CorrelationError):
    pass


class CorrelationTimeoutError(CorrelationError):
    def __init__(self, message: str, partial: Optional[List] = None) -> None:
        super().__init__(message)
        self.partial = list(partial or [])


class CorrelationSuperseded(CorrelationError):
    pass


class InvalidTransitionError(CorrelationError, ValueError):
    pass


class UnknownIncidentError(CorrelationError, KeyError):
    def __init__(self, incident_id: str) -> None:
        super().__init__(incident_id)
        self.incident_id = incident_id

    def __str__(self) -> str:
        return f"unknown incident: {self.incident_id}"
