"""
Graph representation of service dependencies, with neighbourhood search bounded by hop count, dependency-only traversal, cycle detection and atomically swapped snapshots.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""


from __future__ import annotations

import json
import logging
import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set

from engine.enums import Criticality
from engine.exceptions import UnknownServiceError, UpstreamUnavailableError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceNode:
    name: str
    criticality: Criticality = Criticality.medium
    dependencies: FrozenSet[str] = field(default_factory=frozenset)
    external_dependencies: FrozenSet[str] = field(default_factory=frozenset)
    owner: str = ""
    sla: Optional[float] = None


def _node_from_dict(raw: Mapping[str, Any]) -> ServiceNode:
    name = str(raw.get("name") or "").strip()
    if not name:
        raise ValueError("topology service entry requires a name")
    criticality = raw.get("criticality") or Criticality.medium
    return ServiceNode(
        name=name,
        criticality=Criticality(criticality),
        dependencies=frozenset(str(d) for d in raw.get("dependencies") or [] if d),
        external_dependencies=frozenset(str(d) for d in raw.get("external_dependencies") or [] if d),
        owner=str(raw.get("owner") or ""),
        sla=raw.get("sla"),
    )


class TopologySnapshot:
    """Immutable view of the service graph.

    Edges are kept as name references in forward (service -> dependency) and
    reverse (dependency -> dependent) adjacency maps. Dependencies that were
    never registered still take part in traversal; they just have no metadata.
    """

    __slots__ = ("version", "_nodes", "_forward", "_reverse")

    def __init__(self, nodes: Iterable[ServiceNode] = (), version: int = 0) -> None:
        forward: Dict[str, Set[str]] = defaultdict(set)
        reverse: Dict[str, Set[str]] = defaultdict(set)
        registered: Dict[str, ServiceNode] = {}
        for node in nodes:
            registered[node.name] = node
            for dep in node.dependencies:
                if dep == node.name:
                    continue
                forward[node.name].add(dep)
                reverse[dep].add(node.name)
        self.version = version
        self._nodes: Mapping[str, ServiceNode] = MappingProxyType(registered)
        self._forward: Mapping[str, FrozenSet[str]] = MappingProxyType({k: frozenset(v) for k, v in forward.items()})
        self._reverse: Mapping[str, FrozenSet[str]] = MappingProxyType({k: frozenset(v) for k, v in reverse.items()})

    def _walk(self, service: str, hops: int, directions: tuple) -> Set[str]:
        if hops <= 0:
            return set()
        seen: Set[str] = {service}
        queue: deque[tuple[str, int]] = deque([(service, 0)])
        while queue:
            node, depth = queue.popleft()
            if depth >= hops:
                continue
            for adjacency in directions:
                for neighbor in adjacency.get(node, ()):
                    if neighbor not in seen:
                        seen.add(neighbor)
                        queue.append((neighbor, depth + 1))
        seen.discard(service)
        return seen

    def neighbors(self, service: str, hops: int) -> Set[str]:
        return self._walk(service, hops, (self._forward, self._reverse))

    def dependencies_within(self, service: str, hops: int) -> Set[str]:
        return self._walk(service, hops, (self._forward,))

    def node(self, service: str) -> ServiceNode:
        try:
            return self._nodes[service]
        except KeyError:
            raise UnknownServiceError(service) from None

    def criticality(self, service: str) -> Criticality:
        return self.node(service).criticality

    def services(self) -> List[str]:
        return sorted(self._nodes)

    def all_services(self) -> Set[str]:
        return set(self._nodes) | set(self._forward) | set(self._reverse)

    def find_cycle(self) -> List[str]:
        white, grey, black = 0, 1, 2
        colour: Dict[str, int] = {name: white for name in self.all_services()}

        for start in sorted(colour):
            if colour[start] != white:
                continue
            stack: List[tuple[str, Iterable[str]]] = [(start, iter(sorted(self._forward.get(start, ()))))]
            path = [start]
            colour[start] = grey
            while stack:
                node, children = stack[-1]
                advanced = False
                for child in children:
                    if colour[child] == grey:
                        return path[path.index(child):] + [child]
                    if colour[child] == white:
                        colour[child] = grey
                        path.append(child)
                        stack.append((child, iter(sorted(self._forward.get(child, ())))))
                        advanced = True
                        break
                if not advanced:
                    colour[node] = black
                    path.pop()
                    stack.pop()
        return []

    def has_cycle(self) -> bool:
        return bool(self.find_cycle())


class TopologyModel:
    def __init__(self, snapshot: Optional[TopologySnapshot] = None) -> None:
        self._snapshot = snapshot or TopologySnapshot()
        self._reload_lock = threading.Lock()
        self._closed = False

    def snapshot(self) -> TopologySnapshot:
        if self._closed:
            raise UpstreamUnavailableError("topology model is closed")
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def reload(self, services: Iterable[ServiceNode | Mapping[str, Any]]) -> TopologySnapshot:
        nodes = [s if isinstance(s, ServiceNode) else _node_from_dict(s) for s in services]
        with self._reload_lock:
            fresh = TopologySnapshot(nodes, version=self._snapshot.version + 1)
            cycle = fresh.find_cycle()
            if cycle:
                log.warning("Topology v%d contains a dependency cycle: %s", fresh.version, " -> ".join(cycle))
            self._snapshot = fresh
        log.info("Topology reloaded: v%d with %d service(s)", fresh.version, len(nodes))
        return fresh

    def load_document(self, document: Mapping[str, Any]) -> TopologySnapshot:
        services = document.get("services")
        if not isinstance(services, list):
            raise ValueError("topology document requires a 'services' list")
        return self.reload(services)

    def load_file(self, path: str | Path) -> TopologySnapshot:
        with open(path, encoding="utf-8") as fh:
            return self.load_document(json.load(fh))

    def neighbors(self, service: str, hops: int) -> Set[str]:
        return self.snapshot().neighbors(service, hops)

    def criticality(self, service: str) -> Criticality:
        return self.snapshot().criticality(service)

    def close(self) -> None:
        self._closed = True
