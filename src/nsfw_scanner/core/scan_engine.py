#!/usr/bin/env python3
"""
scan_engine.py: Directory scanning and classification dispatch for nsfw-scanner.

Provides BatchScanner, which snapshots the image files of a directory, sends
each through the classifier concurrently and funnels every successful result
into a ResultAggregator. Optional callbacks can be attached to monitor
progress and completion.
"""

import asyncio
import os
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..api import Classifier
from ..config import ScannerConfig
from ..utils.log_utils import get_logger
from .image_decoder import ImageDecoder
from .results import ClassificationResult, ResultAggregator
from .workers import AsyncWorkerPool, Decoder, ItemOutcome, OutcomeKind

logger = get_logger(__name__)


@dataclass(frozen=True)
class ItemFailure:
    """A reported per-item classification failure."""
    filename: str
    message: str


@dataclass
class ScanReport:
    """Summary of one finished scan."""
    directory: Path
    eligible: int = 0
    classified: int = 0
    skipped: List[str] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def completed(self) -> int:
        return self.classified + len(self.skipped) + len(self.failures)


class BatchScanner:
    """
    Scans one directory (non-recursively) and classifies its images.

    The directory listing is captured once when scan() starts. All completions
    are applied to the aggregator from the scanning event loop, and scan()
    returns only after every dispatched item has finished.
    """

    def __init__(
        self,
        classifier: Classifier,
        config: Optional[ScannerConfig] = None,
        decoder: Optional[Decoder] = None,
    ):
        self.classifier = classifier
        self.config = config or ScannerConfig()
        self.decoder = decoder or ImageDecoder(self.config.image_size)
        self.on_item_done: Optional[Callable[[ItemOutcome, int, int], None]] = None
        self.on_scan_complete: Optional[Callable[[ScanReport], None]] = None

    def snapshot_directory(self, directory: Union[str, Path]) -> List[str]:
        """
        Return the sorted names of eligible files directly under `directory`.
        An unlistable directory yields an empty list.
        """
        names = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    if entry.is_file() and self.config.accepts(entry.name):
                        names.append(entry.name)
        except OSError as e:
            logger.debug("Cannot list %s: %s", directory, e)
            return []
        return sorted(names)

    def _make_pool(self, executor: Optional[Executor] = None) -> AsyncWorkerPool:
        return AsyncWorkerPool(
            self.classifier,
            self.decoder,
            max_concurrent=self.config.max_concurrent,
            timeout=self.config.timeout,
            max_attempts=self.config.max_attempts,
            retry_backoff=self.config.retry_backoff,
            executor=executor,
        )

    async def _process_single(self, pool: AsyncWorkerPool, path: Path,
                              aggregator: ResultAggregator, report: ScanReport) -> None:
        outcome = await pool.process(path)

        if outcome.kind is OutcomeKind.CLASSIFIED:
            aggregator.insert(ClassificationResult(outcome.filename, outcome.confidence))
            report.classified += 1
        elif outcome.kind is OutcomeKind.SKIPPED:
            report.skipped.append(outcome.filename)
        else:
            report.failures.append(ItemFailure(outcome.filename, str(outcome.error)))

        if self.on_item_done:
            try:
                self.on_item_done(outcome, report.completed, report.eligible)
            except Exception:
                logger.exception("on_item_done callback failed for %s", outcome.filename)

    async def scan(self, directory: Union[str, Path], aggregator: ResultAggregator) -> ScanReport:
        """
        Classify every eligible image in `directory` into `aggregator`.

        Returns once every item has been classified, skipped, or has failed.
        """
        start_time = time.time()
        directory = Path(directory)
        names = self.snapshot_directory(directory)
        report = ScanReport(directory=directory, eligible=len(names))
        logger.info("Scanning %d image(s) in %s", len(names), directory)

        if names:
            executor = ThreadPoolExecutor(max_workers=self.config.max_concurrent,
                                          thread_name_prefix="nsfw-classify")
            pool = self._make_pool(executor)
            try:
                async with asyncio.TaskGroup() as tg:
                    for name in names:
                        tg.create_task(self._process_single(pool, directory / name, aggregator, report))
            finally:
                # calls abandoned after a timeout finish in the background
                executor.shutdown(wait=False, cancel_futures=True)

        report.elapsed = time.time() - start_time
        logger.info(
            "Scan of %s finished in %.1fs: %d classified, %d skipped, %d failed",
            directory, report.elapsed, report.classified, len(report.skipped), len(report.failures),
        )
        if self.on_scan_complete:
            try:
                self.on_scan_complete(report)
            except Exception:
                logger.exception("on_scan_complete callback failed for %s", directory)
        return report
