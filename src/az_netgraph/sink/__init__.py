from __future__ import annotations

from typing import Any

from ..util.errors import ConfigError
from .base import ApplyStats, GraphSink, apply_intents


def open_sink(cfg: Any) -> GraphSink:
    """
    Build the graph sink named by ``cfg.sink``. The jsonl kind has no sink; it
    exports intents instead of applying them.
    """
    kind = str(getattr(cfg, "sink", "") or "").lower()
    if kind == "sqlite":
        from .sqlite import SqliteGraphSink

        return SqliteGraphSink.open(cfg.db_path)
    if kind == "neo4j":
        from .neo4j import Neo4jGraphSink

        return Neo4jGraphSink.from_config(cfg)
    raise ConfigError(f"Sink '{kind}' cannot apply intents; choose one of: neo4j, sqlite")


__all__ = ["ApplyStats", "GraphSink", "apply_intents", "open_sink"]
