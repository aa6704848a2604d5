from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List

from ..intents import Intent
from ..util.serialization import stable_json_dumps


def write_intents_jsonl(intents: Iterable[Intent], path: Path) -> int:
    """
    Write intents to a JSONL file, one stable-JSON object per line, preserving
    sequence order (node intents are already ahead of relationships).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8") as f:
        for intent in intents:
            f.write(stable_json_dumps(intent.to_dict()))
            f.write("\n")
            count += 1
    return count


def read_intents_jsonl(path: Path) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                out.append(json.loads(line))
    return out
