from __future__ import annotations

from fastapi import APIRouter, Query

from api.requests import TopologyDocument
from api.responses import NeighborsView, ServiceView, TopologyView
from api.routes.exception import handle_exceptions
from config import settings
from engine.topology.graph import ServiceNode, TopologySnapshot
from services.incident_service import get_topology

router = APIRouter(tags=["Topology"])


def _view(snapshot: TopologySnapshot) -> TopologyView:
    services = []
    for name in snapshot.services():
        node = snapshot.node(name)
        services.append(
            ServiceView(
                name=node.name,
                criticality=node.criticality,
                dependencies=sorted(node.dependencies),
                external_dependencies=sorted(node.external_dependencies),
                owner=node.owner,
                sla=node.sla,
            )
        )
    return TopologyView(version=snapshot.version, services=services, has_cycle=snapshot.has_cycle())


@router.put("/topology", response_model=TopologyView, summary="Replace the service topology")
@handle_exceptions
async def put_topology(doc: TopologyDocument) -> TopologyView:
    snapshot = get_topology().reload(
        ServiceNode(
            name=s.name,
            criticality=s.criticality,
            dependencies=frozenset(s.dependencies),
            external_dependencies=frozenset(s.external_dependencies),
            owner=s.owner,
            sla=s.sla,
        )
        for s in doc.services
    )
    return _view(snapshot)


@router.get("/topology", response_model=TopologyView, summary="Current service topology")
@handle_exceptions
async def get_topology_view() -> TopologyView:
    return _view(get_topology().snapshot())


@router.get(
    "/topology/{service}/neighbors",
    response_model=NeighborsView,
    summary="Services within a hop limit of a service",
)
@handle_exceptions
async def neighbors(service: str, hops: int | None = Query(default=None, ge=0, le=16)) -> NeighborsView:
    snapshot = get_topology().snapshot()
    if hops is None:
        hops = settings.correlation_hops
    return NeighborsView(
        service=service,
        hops=hops,
        neighbors=sorted(snapshot.neighbors(service, hops)),
        topology_version=snapshot.version,
    )
