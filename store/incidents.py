from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from api.responses import IncidentReport
from config import INCIDENT_TTL
from store import keys
from store.client import redis_get, redis_scan, redis_set

log = logging.getLogger(__name__)


async def save(report: IncidentReport) -> None:
    try:
        await redis_set(keys.incident(report.incident_id), report.model_dump_json(), ttl=INCIDENT_TTL)
    except Exception as exc:
        log.debug("Incident save failed %s: %s", report.incident_id, exc)


async def load(incident_id: str) -> Optional[IncidentReport]:
    try:
        raw = await redis_get(keys.incident(incident_id))
        if raw:
            return IncidentReport.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        log.warning("Discarding unreadable incident record %s: %s", incident_id, exc)
    except Exception as exc:
        log.debug("Incident load failed %s: %s", incident_id, exc)
    return None


async def list_ids() -> List[str]:
    try:
        return sorted(keys.incident_id_from_key(k) for k in await redis_scan(keys.incident_pattern()))
    except Exception as exc:
        log.debug("Incident scan failed: %s", exc)
        return []
