from __future__ import annotations

import json
import sys
from dataclasses import asdict
from typing import Any, Callable, Dict, Mapping

from .classify import classify_hop
from .config import RunConfig, dump_config, load_run_config
from .export.jsonl import write_intents_jsonl
from .ids import parse_resource_id
from .ingest import IngestResult, apply_result, ingest_connectivity, ingest_topology
from .logging import LogConfig, add_run_log_file, get_logger, setup_logging
from .sink import open_sink
from .util.errors import ConfigError, as_exit_code
from .util.rich_progress import ApplyProgress, render_ingest_summary_table
from .util.serialization import load_document

LOG = get_logger("az_netgraph.cli")

Ingestor = Callable[..., IngestResult]


def _run_ingest(cfg: RunConfig, source: str, ingest: Ingestor) -> int:
    if cfg.input is None:
        raise ConfigError(f"'{source}' requires an input document")
    data = load_document(cfg.input)
    LOG.debug("Effective config", extra={"config": dump_config(cfg)})

    # Build everything before touching a store; failed builds leave no trace.
    result = ingest(data)
    if cfg.sink == "jsonl":
        count = write_intents_jsonl(result.intents, cfg.out)
        LOG.info("Wrote intents", extra={"path": str(cfg.out), "count": count})
    else:
        sink = open_sink(cfg)
        try:
            with ApplyProgress(enabled=cfg.progress) as progress:
                apply_result(result, sink, progress=progress)
        finally:
            close = getattr(sink, "close", None)
            if callable(close):
                close()

    metrics: Dict[str, Any] = {"source": str(cfg.input), "sink": cfg.sink, **result.metrics()}
    render_ingest_summary_table(enabled=cfg.progress, status="OK", metrics=metrics)
    return 0


def cmd_topology(cfg: RunConfig) -> int:
    return _run_ingest(cfg, "topology", ingest_topology)


def cmd_connectivity(cfg: RunConfig) -> int:
    return _run_ingest(cfg, "connectivity", ingest_connectivity)


def _print_json(obj: Mapping[str, Any]) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def cmd_parse_id(cfg: RunConfig) -> int:
    ident = parse_resource_id(cfg.raw_id or "")
    payload = asdict(ident)
    _print_json(payload)
    return 0


def cmd_classify_hop(cfg: RunConfig) -> int:
    _print_json(asdict(classify_hop(cfg.raw_id or "")))
    return 0


COMMANDS: Dict[str, Callable[[RunConfig], int]] = {
    "topology": cmd_topology,
    "connectivity": cmd_connectivity,
    "parse-id": cmd_parse_id,
    "classify-hop": cmd_classify_hop,
}


def main() -> None:
    try:
        command, cfg = load_run_config()
        setup_logging(LogConfig(level=cfg.log_level, json_logs=cfg.json_logs))
        if cfg.log_file is not None:
            add_run_log_file(cfg.log_file)

        handler = COMMANDS.get(command)
        if handler is None:
            raise ConfigError(f"Unknown command: {command}")
        sys.exit(handler(cfg))
    except SystemExit:
        raise
    except BrokenPipeError:
        # Common when users pipe to `head` or similar tools.
        sys.exit(0)
    except Exception as e:
        # Map to consistent exit code and log
        setup_logging(LogConfig())
        LOG.error("Execution failed: %s", e, extra={"error": str(e), "error_type": type(e).__name__})
        sys.exit(as_exit_code(e))


if __name__ == "__main__":
    main()
