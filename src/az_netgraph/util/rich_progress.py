from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table


class ApplyProgress:
    """
    Progress bars for applying node and relationship intents to a sink.
    Disabled instances accept every call and render nothing.
    """

    def __init__(self, *, enabled: bool, console: Optional[Console] = None) -> None:
        self._enabled = bool(enabled)
        self._console = console or Console(stderr=True)
        self._progress: Optional[Progress] = None
        self._tasks: Dict[str, Any] = {}
        self._started = False
        if self._enabled:
            self._progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            )

    def __enter__(self) -> ApplyProgress:
        if self._enabled and self._progress and not self._started:
            self._progress.start()
            self._started = True
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        if self._enabled and self._progress and self._started:
            self._progress.stop()
            self._started = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start(self, *, nodes: int, relationships: int) -> None:
        if not self._enabled or not self._progress:
            return
        self._tasks["node"] = self._progress.add_task("Nodes", total=nodes)
        self._tasks["relationship"] = self._progress.add_task("Relationships", total=relationships)

    def advance(self, kind: str, *, count: int = 1) -> None:
        if not self._enabled or not self._progress:
            return
        task = self._tasks.get(kind)
        if task is not None:
            self._progress.update(task, advance=count)


def render_ingest_summary_table(
    *,
    enabled: bool,
    status: str,
    metrics: Dict[str, Any],
    console: Optional[Console] = None,
) -> None:
    if not enabled:
        return
    table = Table(title="Ingest Summary", show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Status", status)
    table.add_row("Source", str(metrics.get("source", "")))
    table.add_row("Sink", str(metrics.get("sink", "")))
    table.add_row("Node intents", str(metrics.get("nodes", 0)))
    table.add_row("Relationship intents", str(metrics.get("relationships", 0)))
    if metrics.get("dangling_targets"):
        table.add_row("Unlisted association targets", str(metrics["dangling_targets"]))
    (console or Console(stderr=True)).print(table)
