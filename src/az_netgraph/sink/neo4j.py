"""Neo4j graph sink.

The driver is injected by the caller (or built once by ``from_config``); this
module never holds a process-wide connection. Labels and relationship types
cannot be bound as Cypher parameters, so they are allow-listed against
``[A-Za-z_][A-Za-z0-9_]*`` and back-quoted; every value goes through
``$parameters``.
"""
from __future__ import annotations

from typing import Any, Optional

from neo4j import GraphDatabase

from ..logging import get_logger
from ..util.errors import ConfigError, map_sink_error
from .base import require_identifier

LOG = get_logger(__name__)

_MERGE_NODE = (
    "MERGE (n:`{label}` {{Id: $id}}) "
    "ON CREATE SET n.Name = $name "
    "ON MATCH SET n.Name = CASE WHEN $name IS NULL OR $name = '' THEN n.Name ELSE $name END"
)

_MERGE_RELATIONSHIP = (
    "MATCH (a:`{source_label}` {{Id: $source_id}}) "
    "MATCH (b:`{target_label}` {{Id: $target_id}}) "
    "MERGE (a)-[:`{relationship_type}`]->(b)"
)


class Neo4jGraphSink:
    def __init__(self, driver: Any, *, database: Optional[str] = None, owns_driver: bool = False) -> None:
        self._driver = driver
        self._database = database
        self._owns_driver = owns_driver
        self._closed = False

    @classmethod
    def from_config(cls, cfg: Any) -> Neo4jGraphSink:
        uri = getattr(cfg, "neo4j_uri", None)
        if not uri:
            raise ConfigError("neo4j sink requires neo4j_uri (AZ_NETGRAPH_NEO4J_URI or --neo4j-uri)")
        user = getattr(cfg, "neo4j_user", None)
        password = getattr(cfg, "neo4j_password", None)
        auth = (user, password or "") if user else None
        try:
            driver = GraphDatabase.driver(uri, auth=auth)
        except Exception as e:
            mapped = map_sink_error(e, "Creating Neo4j driver failed")
            if mapped is not None:
                raise mapped from e
            raise ConfigError(f"Invalid Neo4j configuration: {e}") from e
        LOG.info("Neo4j sink ready", extra={"uri": uri, "database": getattr(cfg, "neo4j_database", None)})
        return cls(driver, database=getattr(cfg, "neo4j_database", None), owns_driver=True)

    def _run(self, query: str, **params: Any) -> None:
        try:
            self._driver.execute_query(query, parameters_=params, database_=self._database)
        except Exception as e:
            mapped = map_sink_error(e, "Neo4j write failed")
            if mapped is not None:
                raise mapped from e
            raise

    def merge_node(self, label: str, id: str, name: str) -> None:
        query = _MERGE_NODE.format(label=require_identifier(label, "node label"))
        self._run(query, id=id, name=name)

    def merge_relationship(
        self,
        source_label: str,
        source_id: str,
        target_label: str,
        target_id: str,
        relationship_type: str,
    ) -> None:
        query = _MERGE_RELATIONSHIP.format(
            source_label=require_identifier(source_label, "source label"),
            target_label=require_identifier(target_label, "target label"),
            relationship_type=require_identifier(relationship_type, "relationship type"),
        )
        self._run(query, source_id=source_id, target_id=target_id)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_driver:
            self._driver.close()

    def __enter__(self) -> Neo4jGraphSink:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()
