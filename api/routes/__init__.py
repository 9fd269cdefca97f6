"""
Routes initialization: aggregates every API router under one router mounted by the application.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from fastapi import APIRouter

from api.routes.health import router as health_router
from api.routes.signals import router as signals_router
from api.routes.triggers import router as triggers_router
from api.routes.topology import router as topology_router
from api.routes.incidents import router as incidents_router

router = APIRouter()

router.include_router(health_router)
router.include_router(signals_router)
router.include_router(triggers_router)
router.include_router(topology_router)
router.include_router(incidents_router)

__all__ = ["router"]
