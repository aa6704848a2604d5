from __future__ import annotations

import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List, Mapping, Optional

from .connectivity import build_connectivity_intents, load_connectivity_check
from .intents import Intent, check_ordering, split_intents
from .logging import get_logger
from .sink.base import ApplyStats, GraphSink, apply_intents
from .topology import build_topology_intents, iter_association_targets, load_topology
from .util.errors import NetgraphError

LOG = get_logger(__name__)


class _StepTimers:
    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}

    def start(self, key: str) -> None:
        self._starts[key] = perf_counter()

    def finish(self, key: str) -> Optional[int]:
        started = self._starts.pop(key, None)
        if started is None:
            return None
        return int((perf_counter() - started) * 1000)


def log_event(
    logger: Any,
    level: int,
    message: str,
    *,
    step: str,
    phase: str,
    timers: Optional[_StepTimers] = None,
    timer_key: Optional[str] = None,
    **extra: Any,
) -> None:
    key = timer_key or step
    duration_ms = None
    if timers is not None:
        if phase == "start":
            timers.start(key)
        elif phase in {"complete", "error"}:
            duration_ms = timers.finish(key)
    payload: Dict[str, Any] = {"step": step, "phase": phase, "event": f"{step}.{phase}"}
    if duration_ms is not None:
        payload["duration_ms"] = duration_ms
    payload.update(extra)
    logger.log(level, message, extra=payload)


@dataclass
class IngestResult:
    step: str
    intents: List[Intent]
    stats: ApplyStats = field(default_factory=ApplyStats)
    dangling_targets: int = 0

    def metrics(self) -> Dict[str, Any]:
        nodes, rels = split_intents(self.intents)
        return {
            "nodes": len(nodes),
            "relationships": len(rels),
            "applied_nodes": self.stats.nodes,
            "applied_relationships": self.stats.relationships,
            "dangling_targets": self.dangling_targets,
        }


def _build(step: str, builder: Any, timers: _StepTimers) -> List[Intent]:
    log_event(LOG, logging.INFO, "Building intents", step=step, phase="start", timers=timers, timer_key=f"{step}.build")
    try:
        intents = builder()
    except NetgraphError as e:
        log_event(
            LOG,
            logging.ERROR,
            "Building intents failed",
            step=step,
            phase="error",
            timers=timers,
            timer_key=f"{step}.build",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    violations = check_ordering(intents)
    if violations:
        raise NetgraphError(f"{step}: {len(violations)} relationship intent(s) precede their node intents")
    nodes, rels = split_intents(intents)
    log_event(
        LOG,
        logging.INFO,
        "Built intents",
        step=step,
        phase="complete",
        timers=timers,
        timer_key=f"{step}.build",
        nodes=len(nodes),
        relationships=len(rels),
    )
    return intents


def apply_result(
    result: IngestResult,
    sink: GraphSink,
    *,
    progress: Any = None,
    timers: Optional[_StepTimers] = None,
) -> ApplyStats:
    """
    Apply a built result's intents to a sink in sequence order and record the stats.
    """
    step = result.step
    timers = timers or _StepTimers()
    intents = result.intents
    log_event(LOG, logging.INFO, "Applying intents", step=step, phase="start", timers=timers, timer_key=f"{step}.apply")
    if progress is not None:
        nodes, rels = split_intents(intents)
        progress.start(nodes=len(nodes), relationships=len(rels))
    try:
        stats = apply_intents(intents, sink, progress=progress)
    except Exception as e:
        log_event(
            LOG,
            logging.ERROR,
            "Applying intents failed; graph holds the applied prefix",
            step=step,
            phase="error",
            timers=timers,
            timer_key=f"{step}.apply",
            error=str(e),
        )
        raise
    commit = getattr(sink, "commit", None)
    if callable(commit):
        commit()
    log_event(
        LOG,
        logging.INFO,
        "Applied intents",
        step=step,
        phase="complete",
        timers=timers,
        timer_key=f"{step}.apply",
        nodes=stats.nodes,
        relationships=stats.relationships,
    )
    result.stats = stats
    return stats


def ingest_topology(
    data: Mapping[str, Any],
    sink: Optional[GraphSink] = None,
    *,
    progress: Any = None,
) -> IngestResult:
    """
    Build topology intents and, when a sink is given, apply them in order.
    """
    timers = _StepTimers()
    topology = load_topology(data)
    intents = _build("topology", lambda: build_topology_intents(topology), timers)
    dangling = list(iter_association_targets(topology))
    if dangling:
        LOG.info(
            "Association targets not listed as resources; relationships to them apply only if the node exists",
            extra={"count": len(dangling)},
        )
    result = IngestResult(step="topology", intents=intents, dangling_targets=len(dangling))
    if sink is not None:
        apply_result(result, sink, progress=progress, timers=timers)
    return result


def ingest_connectivity(
    data: Mapping[str, Any],
    sink: Optional[GraphSink] = None,
    *,
    progress: Any = None,
) -> IngestResult:
    """
    Build connectivity-check intents and, when a sink is given, apply them in order.
    """
    timers = _StepTimers()
    hops = load_connectivity_check(data)
    intents = _build("connectivity", lambda: build_connectivity_intents(hops), timers)
    result = IngestResult(step="connectivity", intents=intents)
    if sink is not None:
        apply_result(result, sink, progress=progress, timers=timers)
    return result
