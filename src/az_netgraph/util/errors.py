from __future__ import annotations

import sqlite3
from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    MALFORMED_ID = 3
    UNRECOGNIZED_RESOURCE = 4
    SINK_ERROR = 5
    RUNTIME_ERROR = 6


class NetgraphError(Exception):
    """Base error for the ingestion engine."""


class ConfigError(NetgraphError):
    """Raised for configuration or argument issues."""


class IngestError(NetgraphError):
    """Raised when input data cannot be turned into graph intents."""


class MalformedResourceId(IngestError):
    """An ARM resource id does not have the subscription/group/provider/type/name shape."""

    def __init__(self, raw_id: str, reason: str = "") -> None:
        self.raw_id = raw_id
        self.reason = reason
        message = f"Malformed resource id: {raw_id!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class UnrecognizedHopResourceId(IngestError):
    """A hop resource id matches no known classification and is not the Internet sentinel."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(f"Unrecognized hop resource id: {resource_id!r}")


class UnrecognizedDestinationHop(IngestError):
    """A next hop cannot be resolved to a known destination."""

    def __init__(self, hop_id: str) -> None:
        self.hop_id = hop_id
        super().__init__(f"Unrecognized destination hop: {hop_id!r}")


class SinkError(NetgraphError):
    """Raised when applying intents to a graph store fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, MalformedResourceId):
        return int(ExitCode.MALFORMED_ID)
    if isinstance(exc, (UnrecognizedHopResourceId, UnrecognizedDestinationHop)):
        return int(ExitCode.UNRECOGNIZED_RESOURCE)
    if isinstance(exc, SinkError):
        return int(ExitCode.SINK_ERROR)
    if isinstance(exc, NetgraphError):
        return int(ExitCode.RUNTIME_ERROR)
    return 1


def _neo4j_error_types() -> tuple[type[BaseException], ...]:
    try:
        from neo4j.exceptions import DriverError, Neo4jError
    except Exception:
        return ()
    return (Neo4jError, DriverError)


def is_neo4j_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like a Neo4j driver error.
    """
    neo4j_types = _neo4j_error_types()
    if neo4j_types and isinstance(exc, neo4j_types):
        return True
    return exc.__class__.__module__.startswith("neo4j.")


def is_sqlite_error(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.Error)


def map_sink_error(exc: BaseException, context: str) -> SinkError | None:
    """
    Wrap graph store errors (Neo4j driver or sqlite3) with SinkError for consistent exit codes.
    """
    if isinstance(exc, SinkError):
        return exc
    if not (is_neo4j_error(exc) or is_sqlite_error(exc)):
        return None
    return SinkError(f"{context}: {exc}")
