"""
Process-wide wiring of the signal store, topology model and incident pipeline shared by the API routes.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""
from __future__ import annotations

import logging
from typing import Optional

from config import settings
from engine.pipeline import IncidentPipeline
from engine.rca.rules import default_rule_base
from engine.rca.ranker import RuleBasedRanker
from engine.signals.store import SignalStore
from engine.topology.graph import TopologyModel
from notifiers.factory import NotifierFactory

log = logging.getLogger(__name__)

_signal_store = SignalStore()
_topology = TopologyModel()
_pipeline: Optional[IncidentPipeline] = None


def get_signal_store() -> SignalStore:
    return _signal_store


def get_topology() -> TopologyModel:
    return _topology


def get_pipeline() -> IncidentPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = IncidentPipeline(
            _signal_store,
            _topology,
            ranker=RuleBasedRanker(default_rule_base(settings.rca_rule_weights)),
            notifier=NotifierFactory.create(settings),
        )
    return _pipeline


def load_topology_file(path: Optional[str] = None) -> bool:
    path = path or settings.topology_path
    if not path:
        return False
    try:
        snapshot = _topology.load_file(path)
    except (OSError, ValueError) as exc:
        log.error("Could not load topology from %s: %s", path, exc)
        return False
    log.info("Loaded topology v%d with %d service(s) from %s", snapshot.version, len(snapshot.services()), path)
    return True


async def shutdown() -> None:
    global _pipeline
    if _pipeline is not None:
        await _pipeline.aclose()
        _pipeline = None
