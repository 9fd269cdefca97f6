from __future__ import annotations

from fastapi import APIRouter

from api.requests import TriggerRequest
from api.responses import IncidentReport
from api.routes.exception import handle_exceptions
from engine.incidents.report import build_report
from services.incident_service import get_pipeline

router = APIRouter(tags=["Triggers"])


@router.post("/triggers", response_model=IncidentReport, summary="Open and diagnose an incident from an alarm")
@handle_exceptions
async def trigger(req: TriggerRequest) -> IncidentReport:
    incident = await get_pipeline().handle_trigger(req.to_trigger())
    return build_report(incident)
