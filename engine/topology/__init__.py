"""
Topology analysis package exports.

This package provides the service dependency graph and the hop-bounded
neighbourhood search used by the correlator to decide which services can have
contributed to an incident.
"""

from engine.topology.graph import ServiceNode, TopologyModel, TopologySnapshot

__all__ = ["ServiceNode", "TopologyModel", "TopologySnapshot"]
