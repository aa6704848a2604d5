from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from .classify import HopClassification, HopPatternRegistry, classify_hop, get_hop_registry, match_canonical
from .intents import CONNECTED_TO, INTERNET, Intent, NodeIntent, RelationshipIntent, node_intent, relationship_intent
from .logging import get_logger
from .util.errors import UnrecognizedDestinationHop, UnrecognizedHopResourceId
from .util.serialization import get_field

LOG = get_logger(__name__)


@dataclass(frozen=True)
class Hop:
    id: str
    resource_id: str
    next_hop_ids: List[str] = field(default_factory=list)


def load_connectivity_check(data: Mapping[str, Any]) -> List[Hop]:
    """
    Build hops from a connectivity-check document (``{"hops": [...]}``).
    """
    hops: List[Hop] = []
    for raw in get_field(data, "hops") or []:
        if not isinstance(raw, Mapping):
            raise UnrecognizedHopResourceId(str(raw))
        next_ids = get_field(raw, "next_hop_ids") or []
        hops.append(
            Hop(
                id=str(get_field(raw, "id") or ""),
                resource_id=str(get_field(raw, "resource_id") or ""),
                next_hop_ids=[str(n) for n in next_ids if n],
            )
        )
    return hops


class HopResolutionTable:
    """
    Hop id -> canonical resource id (or ``Internet``) for one connectivity check.
    """

    def __init__(self) -> None:
        self._map: Dict[str, str] = {}

    def add(self, hop_id: str, resource_id: str) -> None:
        if hop_id in self._map and self._map[hop_id] != resource_id:
            LOG.warning(
                "Duplicate hop id; later hop wins",
                extra={"hop_id": hop_id, "previous": self._map[hop_id], "current": resource_id},
            )
        self._map[hop_id] = resource_id

    def resolve(self, hop_id: str) -> Optional[str]:
        return self._map.get(hop_id)

    def __contains__(self, hop_id: object) -> bool:
        return hop_id in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[str]:
        return iter(self._map)


def _resolve_destination(
    table: HopResolutionTable,
    hop_id: str,
    registry: HopPatternRegistry,
) -> tuple[str, str]:
    resolved = table.resolve(hop_id)
    if resolved is None:
        raise UnrecognizedDestinationHop(hop_id)
    if resolved == INTERNET:
        return INTERNET, INTERNET
    found = match_canonical(resolved, registry)
    if found is None:
        raise UnrecognizedDestinationHop(resolved)
    return found.resource_type, found.resource_id


def build_connectivity_intents(
    hops: Sequence[Hop],
    *,
    registry: Optional[HopPatternRegistry] = None,
) -> List[Intent]:
    """
    Turn connectivity-check hops into node intents plus ``ConnectedTo`` links.

    The first pass classifies every hop and fills a fresh resolution table; the
    second pass links each hop whose own resource is a link source to its next
    hops. Any unclassifiable hop or unresolvable next hop aborts the build.
    """
    reg = registry or get_hop_registry()
    table = HopResolutionTable()

    nodes: List[NodeIntent] = []
    classified: List[HopClassification] = []
    for hop in hops:
        found = classify_hop(hop.resource_id, reg)
        table.add(hop.id, found.resource_id)
        classified.append(found)
        nodes.append(node_intent(found.resource_type, found.resource_id, found.name))

    rels: List[RelationshipIntent] = []
    for hop, source in zip(hops, classified):
        if not source.link_source:
            # Internet and any non-source type never originates a link.
            continue
        for next_id in hop.next_hop_ids:
            target_type, target_id = _resolve_destination(table, next_id, reg)
            rels.append(
                relationship_intent(
                    source.resource_type,
                    source.resource_id,
                    target_type,
                    target_id,
                    CONNECTED_TO,
                )
            )

    LOG.debug(
        "Built connectivity intents",
        extra={"hops": len(hops), "resolved": len(table), "relationships": len(rels)},
    )
    return [*nodes, *rels]
