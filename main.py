"""
Entry point for the incident correlation engine API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from api.routes import router
from config import settings
from services import incident_service
from store.client import close_redis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)


async def _sweep_loop() -> None:
    pipeline = incident_service.get_pipeline()
    while True:
        await asyncio.sleep(settings.eviction_interval_seconds)
        try:
            evicted, escalated, pruned = await pipeline.sweep()
        except Exception as exc:
            log.warning("Sweep failed: %s", exc)
            continue
        if evicted or escalated or pruned:
            log.info(
                "Sweep evicted %d signal(s), escalated %d incident(s), released %d closed incident(s)",
                evicted, escalated, pruned,
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    incident_service.load_topology_file()
    incident_service.get_pipeline()
    sweep_task = asyncio.create_task(_sweep_loop())
    try:
        yield
    finally:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task
        await incident_service.shutdown()
        await close_redis()


app = FastAPI(
    title="Incident Correlation Engine",
    description="Correlates alarms with recent signals across the service topology and ranks root-cause hypotheses.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=4322,
        log_level="info",
        access_log=True,
    )
