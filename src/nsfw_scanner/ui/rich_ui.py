#!/usr/bin/env python3
"""
rich_ui.py: Rich-based live view for nsfw-scanner.

Shows a progress bar and the confidence-sorted result table while a
ScanSession runs, refreshing from aggregator snapshots.
"""

import threading
from pathlib import Path
from typing import List, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table
from rich.text import Text

from ..config import DEFAULT_THRESHOLD
from ..core.results import ClassificationResult
from ..core.scan_engine import ScanReport
from ..core.session import ScanSession
from ..core.workers import ItemOutcome, OutcomeKind
from ..utils.log_utils import get_logger

logger = get_logger(__name__)


def confidence_text(confidence: float, threshold: float = DEFAULT_THRESHOLD) -> Text:
    """Format a confidence as a percentage, red when at or above threshold."""
    style = "bold red" if confidence >= threshold else "green"
    return Text(f"{confidence * 100:.1f}%", style=style)


def build_results_table(results: List[ClassificationResult], threshold: float = DEFAULT_THRESHOLD,
                        limit: Optional[int] = None, title: str = "NSFW Detection Results") -> Table:
    """Render results (already sorted) as a table, optionally only the top `limit` rows."""
    table = Table(title=title, expand=True)
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("File", overflow="fold")
    table.add_column("Confidence", justify="right", width=12)
    shown = results if limit is None else results[:limit]
    for i, result in enumerate(shown, 1):
        table.add_row(str(i), result.filename, confidence_text(result.confidence, threshold))
    if limit is not None and len(results) > limit:
        table.add_row("", Text(f"... {len(results) - limit} more", style="dim"), "")
    return table


def build_summary(report: ScanReport) -> Text:
    text = Text()
    text.append(f"{report.classified} classified", style="green")
    text.append(f"   {len(report.skipped)} skipped", style="yellow")
    text.append(f"   {len(report.failures)} failed", style="red")
    text.append(f"   in {report.elapsed:.1f}s", style="dim")
    return text


class RichScanView:
    """Live terminal view of a running scan."""

    def __init__(self, session: ScanSession, threshold: float = DEFAULT_THRESHOLD,
                 max_rows: int = 20, console: Optional[Console] = None):
        self.session = session
        self.threshold = threshold
        self.max_rows = max_rows
        self.console = console or Console()
        self._lock = threading.Lock()
        self._results: List[ClassificationResult] = []
        self._recent_errors: List[str] = []
        self.progress = Progress(
            SpinnerColumn("dots8"),
            TextColumn("[bold yellow]Classifying images..."),
            BarColumn(bar_width=None),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.task_id = self.progress.add_task("classify", total=None)

    def _on_results(self, snapshot: List[ClassificationResult]) -> None:
        with self._lock:
            self._results = snapshot

    def _on_item_done(self, outcome: ItemOutcome, done: int, total: int) -> None:
        self.progress.update(self.task_id, completed=done, total=total)
        if outcome.kind is OutcomeKind.FAILED:
            with self._lock:
                self._recent_errors.append(f"{outcome.filename}: {outcome.error}")
                self._recent_errors = self._recent_errors[-3:]

    def render(self) -> Group:
        with self._lock:
            results = list(self._results)
            errors = list(self._recent_errors)
        parts = [
            Panel(self.progress, title="[bold]Progress", border_style="blue"),
            build_results_table(results, self.threshold, self.max_rows),
        ]
        if errors:
            parts.append(Panel(Text("\n".join(errors), style="red"), title="[bold]Errors", border_style="red"))
        return Group(*parts)

    def run(self, directory: Path) -> ScanReport:
        """Scan `directory` while keeping the live view updated."""
        scanner = self.session.scanner
        scanner.on_item_done = self._on_item_done
        unsubscribe = None
        try:
            future = self.session.start(directory)
            unsubscribe = self.session.results.subscribe(self._on_results)
            self._on_results(self.session.snapshot())
            with Live(self.render(), console=self.console, refresh_per_second=8,
                      transient=True, get_renderable=self.render):
                report = future.result()
        finally:
            if unsubscribe is not None:
                unsubscribe()
            scanner.on_item_done = None

        self.console.print(build_results_table(self.session.snapshot(), self.threshold))
        self.console.print(build_summary(report))
        return report
