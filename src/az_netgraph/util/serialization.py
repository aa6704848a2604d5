from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .errors import ConfigError


def stable_json_dumps(obj: Any) -> str:
    """
    Dump JSON with sort_keys=True and separators to ensure stable output.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def get_field(data: Mapping[str, Any], *keys: str) -> Any:
    """
    Return the first present key, accepting camelCase and snake_case interchangeably.

    Azure REST payloads use camelCase (``resourceId``) while SDK ``as_dict()`` output
    uses snake_case (``resource_id``).
    """
    for k in keys:
        if k in data:
            return data[k]
        camel = "".join([w[:1].upper() + w[1:] if i > 0 else w for i, w in enumerate(k.split("_"))])
        snake = "".join([("_" + ch.lower()) if ch.isupper() else ch for ch in k]).lstrip("_")
        if camel in data:
            return data[camel]
        if snake in data:
            return data[snake]
    return None


def load_document(path: Path) -> Dict[str, Any]:
    """
    Load a topology or connectivity-check document (JSON, or YAML by suffix).
    """
    if not path.exists():
        raise ConfigError(f"Input file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except Exception as e:
        raise ConfigError(f"Failed to parse input file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level document in {path} must be an object")
    return data
