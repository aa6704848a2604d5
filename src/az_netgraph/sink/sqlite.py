from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from ..util.errors import SinkError
from .base import require_identifier

Node = Dict[str, Any]
Edge = Dict[str, Any]


class SqliteGraphSink:
    """
    Local merge store for graph intents.

    Nodes are keyed on (label, id); edges on (source_id, target_id,
    relationship_type). Edges are only written when both endpoint nodes exist.
    """

    def __init__(self, conn: sqlite3.Connection, *, db_path: Optional[Path] = None) -> None:
        self._conn = conn
        self._db_path = db_path
        self._closed = False
        self._init_schema()

    @classmethod
    def open(cls, db_path: Union[str, Path]) -> SqliteGraphSink:
        if str(db_path) == ":memory:":
            return cls(sqlite3.connect(":memory:"))
        path = Path(db_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return cls(sqlite3.connect(str(path)), db_path=path)
        except (OSError, sqlite3.Error) as e:
            raise SinkError(f"Cannot open SQLite graph store {path}: {e}") from e

    def _init_schema(self) -> None:
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS nodes ("
            "label TEXT NOT NULL,"
            "id TEXT NOT NULL,"
            "name TEXT,"
            "PRIMARY KEY (label, id)"
            ")"
        )
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS edges ("
            "source_label TEXT NOT NULL,"
            "source_id TEXT NOT NULL,"
            "target_label TEXT NOT NULL,"
            "target_id TEXT NOT NULL,"
            "relationship_type TEXT NOT NULL,"
            "PRIMARY KEY (source_id, target_id, relationship_type)"
            ")"
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS edges_target_idx ON edges (target_id)")
        self._conn.commit()

    def merge_node(self, label: str, id: str, name: str) -> None:
        require_identifier(label, "node label")
        self._conn.execute(
            "INSERT INTO nodes (label, id, name) VALUES (?, ?, ?) "
            "ON CONFLICT (label, id) DO UPDATE SET name = excluded.name "
            "WHERE excluded.name IS NOT NULL AND excluded.name != '' AND excluded.name IS NOT nodes.name",
            (label, id, name),
        )

    def merge_relationship(
        self,
        source_label: str,
        source_id: str,
        target_label: str,
        target_id: str,
        relationship_type: str,
    ) -> None:
        require_identifier(source_label, "source label")
        require_identifier(target_label, "target label")
        require_identifier(relationship_type, "relationship type")
        self._conn.execute(
            "INSERT OR IGNORE INTO edges "
            "(source_label, source_id, target_label, target_id, relationship_type) "
            "SELECT ?, ?, ?, ?, ? "
            "WHERE EXISTS (SELECT 1 FROM nodes WHERE label = ? AND id = ?) "
            "AND EXISTS (SELECT 1 FROM nodes WHERE label = ? AND id = ?)",
            (
                source_label,
                source_id,
                target_label,
                target_id,
                relationship_type,
                source_label,
                source_id,
                target_label,
                target_id,
            ),
        )

    def commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            raise SinkError(f"SQLite commit failed: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.commit()
        except sqlite3.Error as e:
            raise SinkError(f"SQLite commit on close failed: {e}") from e
        finally:
            self._conn.close()

    def __enter__(self) -> SqliteGraphSink:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def node_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(1) FROM nodes").fetchone()
        return int(row[0]) if row else 0

    def edge_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(1) FROM edges").fetchone()
        return int(row[0]) if row else 0

    def iter_nodes(self) -> Iterator[Node]:
        for label, node_id, name in self._conn.execute("SELECT label, id, name FROM nodes ORDER BY label, id"):
            yield {"label": label, "Id": node_id, "Name": name}

    def iter_edges(self) -> Iterator[Edge]:
        query = (
            "SELECT source_label, source_id, target_label, target_id, relationship_type FROM edges "
            "ORDER BY source_id, relationship_type, target_id"
        )
        for src_label, src, dst_label, dst, rel in self._conn.execute(query):
            yield {
                "sourceLabel": src_label,
                "sourceId": src,
                "targetLabel": dst_label,
                "targetId": dst,
                "relationshipType": rel,
            }

    def snapshot(self) -> Tuple[list, list]:
        return list(self.iter_nodes()), list(self.iter_edges())
