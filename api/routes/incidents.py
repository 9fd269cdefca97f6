"""
Incident routes: list and inspect incidents, and let responders move them through their lifecycle.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from api.requests import TransitionRequest
from api.responses import IncidentReport
from api.routes.exception import handle_exceptions
from engine.enums import IncidentState
from engine.incidents.report import build_report
from services.incident_service import get_pipeline
from store import incidents as incident_store

router = APIRouter(tags=["Incidents"])


@router.get("/incidents", response_model=List[IncidentReport], summary="List incidents")
@handle_exceptions
async def list_incidents(
    service: Optional[str] = Query(default=None),
    state: Optional[IncidentState] = Query(default=None),
) -> List[IncidentReport]:
    pipeline = get_pipeline()
    reports = [build_report(i) for i in pipeline.list(service=service, state=state)]
    # released and earlier-process incidents only survive as persisted reports
    for incident_id in await incident_store.list_ids():
        if pipeline.get(incident_id) is not None:
            continue
        stored = await incident_store.load(incident_id)
        if stored is None:
            continue
        if service is not None and stored.service != service:
            continue
        if state is not None and stored.state is not state:
            continue
        reports.append(stored)
    reports.sort(key=lambda r: (r.opened_at, r.incident_id))
    return reports


@router.get("/incidents/{incident_id}", response_model=IncidentReport, summary="Incident report")
@handle_exceptions
async def get_incident(incident_id: str) -> IncidentReport:
    incident = get_pipeline().get(incident_id)
    if incident is not None:
        return build_report(incident)
    # incidents from an earlier process only survive as persisted reports
    stored = await incident_store.load(incident_id)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"unknown incident: {incident_id}")
    return stored


@router.post(
    "/incidents/{incident_id}/transition",
    response_model=IncidentReport,
    summary="Move an incident to a new lifecycle state",
)
@handle_exceptions
async def transition_incident(incident_id: str, req: TransitionRequest) -> IncidentReport:
    incident = await get_pipeline().transition(incident_id, req.state, note=req.note)
    return build_report(incident)
