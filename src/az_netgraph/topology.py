from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .ids import ResourceIdentifier, parse_resource_id
from .intents import Intent, NodeIntent, RelationshipIntent, node_intent, relationship_intent
from .logging import get_logger
from .util.errors import MalformedResourceId
from .util.serialization import get_field

LOG = get_logger(__name__)

# Network Watcher reports "Associated" or "Contains"; absent means a plain association.
DEFAULT_ASSOCIATION_TYPE = "Associated"


@dataclass(frozen=True)
class Association:
    resource_id: str
    association_type: str
    name: Optional[str] = None


@dataclass(frozen=True)
class TopologyResource:
    id: str
    name: Optional[str] = None
    associations: List[Association] = field(default_factory=list)


@dataclass(frozen=True)
class Topology:
    resources: List[TopologyResource] = field(default_factory=list)


def _load_association(data: Any) -> Association:
    if not isinstance(data, Mapping):
        raise MalformedResourceId(str(data), "association entry is not an object")
    return Association(
        resource_id=str(get_field(data, "resource_id") or ""),
        association_type=str(get_field(data, "association_type") or DEFAULT_ASSOCIATION_TYPE),
        name=get_field(data, "name"),
    )


def load_topology(data: Mapping[str, Any]) -> Topology:
    """
    Build a Topology from a Network Watcher topology document.

    Accepts the REST shape (``resourceId``/``associationType``) and the SDK
    ``as_dict()`` shape (``resource_id``/``association_type``).
    """
    resources: List[TopologyResource] = []
    for raw in get_field(data, "resources") or []:
        if not isinstance(raw, Mapping):
            raise MalformedResourceId(str(raw), "resource entry is not an object")
        rid = get_field(raw, "id")
        if not isinstance(rid, str) or not rid:
            raise MalformedResourceId(str(rid or ""), "resource has no id")
        assocs = [_load_association(a) for a in (get_field(raw, "associations") or [])]
        name = get_field(raw, "name")
        resources.append(TopologyResource(id=rid, name=str(name) if name else None, associations=assocs))
    return Topology(resources=resources)


def build_topology_intents(topology: Topology) -> List[Intent]:
    """
    Turn a resource-group topology into node and relationship upsert intents.

    Every resource id and association target is parsed before anything is
    returned, so a malformed id yields no intents at all. Node intents come
    first, then relationship intents, each in input order.
    """
    parsed: Dict[str, ResourceIdentifier] = {}
    for res in topology.resources:
        parsed[res.id] = parse_resource_id(res.id)

    nodes: List[NodeIntent] = []
    for res in topology.resources:
        ident = parsed[res.id]
        nodes.append(node_intent(ident.resource_type, res.id, res.name or ident.resource_name))

    rels: List[RelationshipIntent] = []
    for res in topology.resources:
        source = parsed[res.id]
        for assoc in res.associations:
            target = parsed.get(assoc.resource_id) or parse_resource_id(assoc.resource_id)
            rels.append(
                relationship_intent(
                    source.resource_type,
                    res.id,
                    target.resource_type,
                    assoc.resource_id,
                    assoc.association_type,
                )
            )

    LOG.debug(
        "Built topology intents",
        extra={"resources": len(topology.resources), "nodes": len(nodes), "relationships": len(rels)},
    )
    return [*nodes, *rels]


def iter_association_targets(topology: Topology) -> Iterable[str]:
    """Association targets that are not themselves listed as resources."""
    known = {r.id for r in topology.resources}
    seen = set()
    for res in topology.resources:
        for assoc in res.associations:
            if assoc.resource_id in known or assoc.resource_id in seen:
                continue
            seen.add(assoc.resource_id)
            yield assoc.resource_id
