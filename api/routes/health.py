"""
Health check route reporting store connectivity and engine state.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from store.client import get_redis, is_using_fallback
from api.routes.exception import handle_exceptions
from services.incident_service import get_pipeline, get_signal_store, get_topology

router = APIRouter(tags=["Health"])


@router.get("/health")
@handle_exceptions
async def health() -> Dict[str, Any]:
    await get_redis()
    pipeline = get_pipeline()
    return {
        "status": "ok",
        "store": "fallback" if is_using_fallback() else "redis",
        "signals": len(get_signal_store()),
        "topology_version": get_topology().version,
        "rule_base_version": pipeline.ranker.rule_base.version,
        "rules": pipeline.ranker.rule_base.rule_ids(),
        "incidents": len(pipeline.list()),
    }
