from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Set, Tuple, Union

INTERNET = "Internet"
CONNECTED_TO = "ConnectedTo"

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_]")


def is_safe_identifier(value: str) -> bool:
    return bool(value) and bool(IDENTIFIER_RE.match(value))


def sanitize_identifier(value: str) -> str:
    """
    Map an arbitrary resource or association type onto ``[A-Za-z_][A-Za-z0-9_]*``.

    ``virtualNetworks/subnets`` becomes ``virtualNetworks_subnets``.
    """
    cleaned = _UNSAFE_CHARS_RE.sub("_", str(value or "").strip())
    if not cleaned:
        return "_"
    if cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


@dataclass(frozen=True)
class NodeIntent:
    label: str
    id: str
    name: str

    kind = "node"

    @property
    def properties(self) -> Dict[str, str]:
        return {"Name": self.name, "Id": self.id}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "label": self.label, "properties": self.properties}


@dataclass(frozen=True)
class RelationshipIntent:
    source_label: str
    source_id: str
    target_label: str
    target_id: str
    relationship_type: str

    kind = "relationship"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "sourceLabel": self.source_label,
            "sourceId": self.source_id,
            "targetLabel": self.target_label,
            "targetId": self.target_id,
            "relationshipType": self.relationship_type,
        }


Intent = Union[NodeIntent, RelationshipIntent]


def node_intent(label: str, resource_id: str, name: str) -> NodeIntent:
    return NodeIntent(label=sanitize_identifier(label), id=resource_id, name=name)


def relationship_intent(
    source_label: str,
    source_id: str,
    target_label: str,
    target_id: str,
    relationship_type: str,
) -> RelationshipIntent:
    return RelationshipIntent(
        source_label=sanitize_identifier(source_label),
        source_id=source_id,
        target_label=sanitize_identifier(target_label),
        target_id=target_id,
        relationship_type=sanitize_identifier(relationship_type),
    )


def split_intents(intents: Iterable[Intent]) -> Tuple[List[NodeIntent], List[RelationshipIntent]]:
    nodes: List[NodeIntent] = []
    rels: List[RelationshipIntent] = []
    for intent in intents:
        if isinstance(intent, NodeIntent):
            nodes.append(intent)
        else:
            rels.append(intent)
    return nodes, rels


def check_ordering(intents: Sequence[Intent]) -> List[RelationshipIntent]:
    """
    Return relationship intents that reference a node id whose node intent
    appears later in the sequence. An empty list means the sequence is
    safe for a single-pass, non-transactional sink.
    """
    seen: Set[str] = set()
    declared = {i.id for i in intents if isinstance(i, NodeIntent)}
    violations: List[RelationshipIntent] = []
    for intent in intents:
        if isinstance(intent, NodeIntent):
            seen.add(intent.id)
            continue
        for ref in (intent.source_id, intent.target_id):
            if ref in declared and ref not in seen:
                violations.append(intent)
                break
    return violations
