import json

import pytest

from engine.pipeline import IncidentPipeline
from services import incident_service


def test_getters_return_shared_instances():
    assert incident_service.get_signal_store() is incident_service.get_signal_store()
    assert incident_service.get_topology() is incident_service.get_topology()
    pipeline = incident_service.get_pipeline()
    assert isinstance(pipeline, IncidentPipeline)
    assert pipeline is incident_service.get_pipeline()
    assert pipeline.store is incident_service.get_signal_store()


def test_load_topology_file(tmp_path):
    path = tmp_path / "topology.json"
    path.write_text(json.dumps({"services": [{"name": "api", "dependencies": ["db"]}]}))
    before = incident_service.get_topology().version
    assert incident_service.load_topology_file(str(path)) is True
    assert incident_service.get_topology().version == before + 1
    assert "api" in incident_service.get_topology().snapshot().services()


def test_load_topology_file_errors_are_reported(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{broken")
    assert incident_service.load_topology_file(str(bad)) is False
    assert incident_service.load_topology_file(str(tmp_path / "missing.json")) is False


@pytest.mark.asyncio
async def test_shutdown_resets_pipeline():
    first = incident_service.get_pipeline()
    await incident_service.shutdown()
    assert incident_service.get_pipeline() is not first
