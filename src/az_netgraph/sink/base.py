from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from ..intents import Intent, NodeIntent, is_safe_identifier
from ..util.errors import SinkError, map_sink_error


@runtime_checkable
class GraphSink(Protocol):
    """
    Graph store contract. Both operations must be idempotent merges.

    merge_node keys on (label, id). merge_relationship keys on
    (source, target, relationship_type) and is a no-op when either endpoint
    node does not exist.
    """

    def merge_node(self, label: str, id: str, name: str) -> None:
        ...

    def merge_relationship(
        self,
        source_label: str,
        source_id: str,
        target_label: str,
        target_id: str,
        relationship_type: str,
    ) -> None:
        ...


def require_identifier(value: str, what: str) -> str:
    if not is_safe_identifier(value):
        raise SinkError(f"Refusing unsafe {what}: {value!r}")
    return value


@dataclass
class ApplyStats:
    nodes: int = 0
    relationships: int = 0

    @property
    def total(self) -> int:
        return self.nodes + self.relationships


def apply_intents(intents: Iterable[Intent], sink: GraphSink, progress: Optional[Any] = None) -> ApplyStats:
    """
    Apply intents in sequence order. The first failure stops application;
    whatever prefix was applied stays in place and is safe to re-run.
    """
    stats = ApplyStats()
    for intent in intents:
        try:
            if isinstance(intent, NodeIntent):
                sink.merge_node(intent.label, intent.id, intent.name)
                stats.nodes += 1
            else:
                sink.merge_relationship(
                    intent.source_label,
                    intent.source_id,
                    intent.target_label,
                    intent.target_id,
                    intent.relationship_type,
                )
                stats.relationships += 1
        except Exception as e:
            mapped = map_sink_error(e, f"Applying {intent.kind} intent failed")
            if mapped is not None and mapped is not e:
                raise mapped from e
            raise
        if progress is not None:
            progress.advance(intent.kind)
    return stats
