from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .util.errors import ConfigError

# --------
# Defaults
# --------
DEFAULT_SINK = "sqlite"
DEFAULT_DB_PATH = Path("netgraph.sqlite")
DEFAULT_OUT = Path("intents.jsonl")
SINK_CHOICES = ("sqlite", "neo4j", "jsonl")
COMMANDS = ("topology", "connectivity", "parse-id", "classify-hop")
ALLOWED_CONFIG_KEYS = {
    "input",
    "sink",
    "db_path",
    "out",
    "neo4j_uri",
    "neo4j_user",
    "neo4j_password",
    "neo4j_database",
    "json_logs",
    "log_level",
    "log_file",
    "progress",
}
BOOL_CONFIG_KEYS = {"json_logs", "progress"}
PATH_CONFIG_KEYS = {"input", "db_path", "out", "log_file"}
STR_CONFIG_KEYS = {"sink", "neo4j_uri", "neo4j_user", "neo4j_password", "neo4j_database", "log_level"}
REDACTED_VALUE = "<redacted>"


@dataclass(frozen=True)
class RunConfig:
    # Input / output
    input: Optional[Path] = None
    sink: str = DEFAULT_SINK
    db_path: Path = DEFAULT_DB_PATH
    out: Path = DEFAULT_OUT

    # Neo4j
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None
    neo4j_database: Optional[str] = None

    # Logging / UX
    json_logs: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    progress: bool = False

    # parse-id / classify-hop argument
    raw_id: Optional[str] = None


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"Config field '{key}' must be a boolean")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in PATH_CONFIG_KEYS:
            if not isinstance(value, (str, Path)):
                raise ConfigError(f"Config field '{key}' must be a string path")
            normalized[key] = value
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ConfigError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="az-netgraph",
        description="Ingest Azure network topology and connectivity checks into a property graph",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
        p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    def add_ingest(p: argparse.ArgumentParser) -> None:
        add_common(p)
        p.add_argument("--input", type=Path, default=None, help="Input JSON/YAML document")
        p.add_argument("--sink", default=None, choices=list(SINK_CHOICES), help=f"Graph sink (default: {DEFAULT_SINK})")
        p.add_argument("--db-path", type=Path, default=None, help=f"SQLite sink file (default: {DEFAULT_DB_PATH})")
        p.add_argument("--out", type=Path, default=None, help=f"JSONL output for --sink jsonl (default: {DEFAULT_OUT})")
        p.add_argument("--neo4j-uri", default=None, help="Neo4j URI, e.g. bolt://localhost:7687")
        p.add_argument("--neo4j-user", default=None, help="Neo4j user (password via env or config file)")
        p.add_argument("--neo4j-database", default=None, help="Neo4j database name")
        p.add_argument(
            "--progress",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Show progress bars and a summary table",
        )

    add_ingest(subparsers.add_parser("topology", help="Ingest a resource-group topology document"))
    add_ingest(subparsers.add_parser("connectivity", help="Ingest a connectivity-check document"))

    p_parse = subparsers.add_parser("parse-id", help="Decode an ARM resource id")
    add_common(p_parse)
    p_parse.add_argument("raw_id", help="ARM resource id")

    p_hop = subparsers.add_parser("classify-hop", help="Classify a connectivity-check hop resource id")
    add_common(p_hop)
    p_hop.add_argument("raw_id", help="Hop resource id or 'Internet'")
    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[List[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is one of topology|connectivity|parse-id|classify-hop
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "input": None,
        "sink": DEFAULT_SINK,
        "db_path": DEFAULT_DB_PATH,
        "out": DEFAULT_OUT,
        "json_logs": False,
        "log_level": "INFO",
        "progress": False,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "input": _env_str("AZ_NETGRAPH_INPUT"),
            "sink": _env_str("AZ_NETGRAPH_SINK"),
            "db_path": _env_str("AZ_NETGRAPH_DB_PATH"),
            "out": _env_str("AZ_NETGRAPH_OUT"),
            "neo4j_uri": _env_str("AZ_NETGRAPH_NEO4J_URI"),
            "neo4j_user": _env_str("AZ_NETGRAPH_NEO4J_USER"),
            "neo4j_password": _env_str("AZ_NETGRAPH_NEO4J_PASSWORD"),
            "neo4j_database": _env_str("AZ_NETGRAPH_NEO4J_DATABASE"),
            "json_logs": _env_bool("AZ_NETGRAPH_JSON_LOGS"),
            "log_level": _env_str("AZ_NETGRAPH_LOG_LEVEL"),
            "log_file": _env_str("AZ_NETGRAPH_LOG_FILE"),
            "progress": _env_bool("AZ_NETGRAPH_PROGRESS"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "input": getattr(ns, "input", None),
            "sink": getattr(ns, "sink", None),
            "db_path": getattr(ns, "db_path", None),
            "out": getattr(ns, "out", None),
            "neo4j_uri": getattr(ns, "neo4j_uri", None),
            "neo4j_user": getattr(ns, "neo4j_user", None),
            "neo4j_database": getattr(ns, "neo4j_database", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "log_file": getattr(ns, "log_file", None),
            "progress": getattr(ns, "progress", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    sink = str(merged.get("sink") or DEFAULT_SINK).lower()
    if sink not in SINK_CHOICES:
        raise ConfigError(f"Config field 'sink' must be one of: {', '.join(SINK_CHOICES)}")
    if command in {"topology", "connectivity"} and not merged.get("input"):
        raise ConfigError(f"'{command}' requires an input document (--input or AZ_NETGRAPH_INPUT)")

    cfg = RunConfig(
        input=Path(merged["input"]) if merged.get("input") else None,
        sink=sink,
        db_path=Path(merged.get("db_path") or DEFAULT_DB_PATH),
        out=Path(merged.get("out") or DEFAULT_OUT),
        neo4j_uri=merged.get("neo4j_uri"),
        neo4j_user=merged.get("neo4j_user"),
        neo4j_password=merged.get("neo4j_password"),
        neo4j_database=merged.get("neo4j_database"),
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
        log_file=Path(merged["log_file"]) if merged.get("log_file") else None,
        progress=bool(merged["progress"]),
        raw_id=getattr(ns, "raw_id", None),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "input": str(cfg.input) if cfg.input else None,
        "sink": cfg.sink,
        "db_path": str(cfg.db_path),
        "out": str(cfg.out),
        "neo4j_uri": cfg.neo4j_uri,
        "neo4j_user": cfg.neo4j_user,
        "neo4j_password": REDACTED_VALUE if cfg.neo4j_password else None,
        "neo4j_database": cfg.neo4j_database,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "log_file": str(cfg.log_file) if cfg.log_file else None,
        "progress": cfg.progress,
    }
