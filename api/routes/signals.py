from __future__ import annotations

import asyncio
from typing import List, Optional

from fastapi import APIRouter, Query

from api.requests import SignalBatchRequest
from api.responses import IngestResult, RejectedSignalView, SignalView
from api.routes.exception import handle_exceptions
from engine.enums import SignalKind
from services.incident_service import get_signal_store

router = APIRouter(tags=["Signals"])


@router.post("/signals", response_model=IngestResult, summary="Ingest a batch of observability signals")
@handle_exceptions
async def ingest_signals(req: SignalBatchRequest) -> IngestResult:
    store = get_signal_store()
    batch = [s.to_signal() for s in req.signals]
    accepted, rejected = await asyncio.to_thread(store.ingest_many, batch)
    return IngestResult(
        accepted=accepted,
        rejected=[RejectedSignalView(signal_id=r.signal_id, reason=r.reason) for r in rejected],
        stored=len(store),
    )


@router.get("/signals/services", response_model=List[str], summary="Services with stored signals")
@handle_exceptions
async def signal_services() -> List[str]:
    return get_signal_store().services()


@router.get("/signals", response_model=List[SignalView], summary="Query signals for one service")
@handle_exceptions
async def query_signals(
    service: str,
    kind: Optional[List[SignalKind]] = Query(default=None),
    start: Optional[float] = None,
    end: Optional[float] = None,
    limit: int = Query(default=1000, ge=1, le=10_000),
) -> List[SignalView]:
    out: List[SignalView] = []
    for signal in get_signal_store().query(service, kind, start, end):
        out.append(
            SignalView(
                id=signal.id,
                service=signal.service,
                kind=signal.kind,
                timestamp=signal.timestamp,
                severity=signal.severity,
                attributes={k: str(v) for k, v in signal.attributes.items()},
                numeric_value=signal.numeric_value,
            )
        )
        if len(out) >= limit:
            break
    return out
