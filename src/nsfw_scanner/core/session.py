#!/usr/bin/env python3
"""
session.py: Busy/idle lifecycle around BatchScanner.

ScanSession runs at most one scan at a time on a background thread with its
own event loop, owns the result collection of the latest scan, and routes
caller deletes through the aggregator so the collection always matches disk.
"""

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from ..errors import ScanInProgressError
from ..utils.log_utils import get_logger
from .file_operations import delete_file, reveal_in_file_viewer
from .results import ClassificationResult, ResultAggregator
from .scan_engine import BatchScanner, ScanReport

logger = get_logger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class ScanSession:
    """
    Owns the scan state machine and the current ResultCollection.

    start() is declined with ScanInProgressError while a scan is running. The
    state returns to IDLE only once the scanner has accounted for every item
    of the directory snapshot, and before the returned future resolves.
    """

    def __init__(self, scanner: BatchScanner):
        self.scanner = scanner
        self._state = ScanState.IDLE
        self._state_lock = threading.Lock()
        self._results = ResultAggregator()
        self._directory: Optional[Path] = None
        self._last_report: Optional[ScanReport] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nsfw-scan")

    @property
    def state(self) -> ScanState:
        with self._state_lock:
            return self._state

    def is_busy(self) -> bool:
        return self.state is ScanState.SCANNING

    @property
    def results(self) -> ResultAggregator:
        """Aggregator of the current (or most recent) scan."""
        return self._results

    @property
    def directory(self) -> Optional[Path]:
        return self._directory

    @property
    def last_report(self) -> Optional[ScanReport]:
        return self._last_report

    def snapshot(self) -> List[ClassificationResult]:
        return self._results.snapshot()

    def start(self, directory: Union[str, Path]) -> "Future[ScanReport]":
        """
        Begin scanning `directory` in the background.

        Returns:
            A future that resolves to the ScanReport once every item is done.

        Raises:
            ScanInProgressError: A scan is already running on this session.
        """
        directory = Path(directory)
        with self._state_lock:
            if self._state is ScanState.SCANNING:
                raise ScanInProgressError(f"A scan of {self._directory} is already running")
            self._state = ScanState.SCANNING
            self._directory = directory
            self._results = aggregator = ResultAggregator()

        logger.info("Starting scan of %s", directory)
        try:
            return self._executor.submit(self._run, directory, aggregator)
        except RuntimeError:
            # executor already shut down
            self._set_idle()
            raise

    def _run(self, directory: Path, aggregator: ResultAggregator) -> ScanReport:
        try:
            report = asyncio.run(self.scanner.scan(directory, aggregator))
            self._last_report = report
            return report
        except Exception:
            logger.exception("Scan of %s aborted", directory)
            raise
        finally:
            self._set_idle()

    def _set_idle(self) -> None:
        with self._state_lock:
            self._state = ScanState.IDLE

    def scan(self, directory: Union[str, Path], timeout: Optional[float] = None) -> ScanReport:
        """Start a scan and block until it finishes."""
        return self.start(directory).result(timeout=timeout)

    def _path_for(self, filename: str) -> Path:
        """Resolve a listed result name to its path in the scanned directory."""
        if self._directory is None:
            raise ValueError("No directory has been scanned yet")
        if not filename or filename in (".", "..") or Path(filename).name != filename:
            raise ValueError(f"Not a plain file name: {filename!r}")
        if filename not in self._results:
            raise ValueError(f"{filename!r} is not in the scan results")
        return self._directory / filename

    def delete(self, filename: str) -> None:
        """
        Delete a scanned file from disk, then drop it from the results.

        Raises:
            ValueError: `filename` is not a listed result of the current scan.
            DeleteError: The file could not be deleted; the entry is kept.
        """
        delete_file(self._path_for(filename))
        self._results.remove(filename)

    def reveal(self, filename: str) -> None:
        """Show a scanned file in the system file viewer."""
        reveal_in_file_viewer(self._path_for(filename))

    def close(self) -> None:
        """Wait for a running scan and release the background thread."""
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "ScanSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
