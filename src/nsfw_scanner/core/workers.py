import asyncio
import contextlib
import time
from concurrent.futures import Executor
from enum import Enum
from typing import Callable, Optional, Union
from pathlib import Path
from dataclasses import dataclass

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..api import Classifier
from ..config import DEFAULT_TIMEOUT
from ..errors import (
    ClassificationError,
    ClassifierUnavailableError,
    DecodeError,
    InvalidModelOutputError,
)
from ..utils.log_utils import get_logger

logger = get_logger(__name__)

Decoder = Callable[[Union[str, Path]], str]


class OutcomeKind(Enum):
    CLASSIFIED = "classified"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ItemOutcome:
    """Result of pushing one file through decode and classification."""
    path: Path
    kind: OutcomeKind
    confidence: Optional[float] = None
    error: Optional[Exception] = None
    processing_time: float = 0.0
    attempts: int = 0

    @property
    def filename(self) -> str:
        return self.path.name


class AsyncWorkerPool:
    """
    Async worker pool that decodes and classifies images.

    Decoding and the classifier call are blocking, so both run in `executor`
    (the event loop's default thread pool when None). A semaphore caps how
    many items are in flight when max_concurrent is set; otherwise every
    submitted item proceeds at once.
    Transient classifier failures and timeouts are retried with tenacity up to
    max_attempts.
    """

    def __init__(
        self,
        classifier: Classifier,
        decoder: Decoder,
        max_concurrent: Optional[int] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_attempts: int = 1,
        retry_backoff: float = 1.0,
        executor: Optional[Executor] = None,
    ) -> None:
        self.classifier = classifier
        self.decoder = decoder
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        # None runs blocking work on the loop's default executor
        self.executor = executor

        # Semaphore for limiting concurrent work, created lazily inside the loop
        self._semaphore: Optional[asyncio.Semaphore] = None

    def _slot(self):
        if self.max_concurrent is None:
            return contextlib.nullcontext()
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    async def process(self, path: Path) -> ItemOutcome:
        """
        Decode and classify a single image. Never raises for per-item problems.

        Args:
            path: Path to the image file.

        Returns:
            ItemOutcome describing a classification, a silent skip, or a failure.
        """
        start_time = time.time()
        loop = asyncio.get_running_loop()

        async with self._slot():
            try:
                bitmap = await loop.run_in_executor(self.executor, self.decoder, path)
            except DecodeError as e:
                logger.debug("Skipping %s: %s", path.name, e.reason)
                return ItemOutcome(path, OutcomeKind.SKIPPED, error=e,
                                   processing_time=time.time() - start_time)
            except Exception as e:
                logger.warning("Skipping %s: decoder raised %r", path.name, e)
                return ItemOutcome(path, OutcomeKind.SKIPPED, error=DecodeError(path, str(e)),
                                   processing_time=time.time() - start_time)

            attempts = 0
            try:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self.max_attempts),
                    wait=wait_exponential(multiplier=self.retry_backoff, max=10),
                    retry=retry_if_exception_type((ClassifierUnavailableError, asyncio.TimeoutError)),
                    reraise=True,
                ):
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        if attempts > 1:
                            logger.info("Retrying %s (attempt %d/%d)", path.name, attempts, self.max_attempts)
                        confidence = await self._classify(bitmap)
            except asyncio.TimeoutError:
                error = ClassificationError(f"Classification timed out after {self.timeout:g}s")
                return self._failed(path, error, start_time, attempts)
            except ClassificationError as e:
                return self._failed(path, e, start_time, attempts)
            except Exception as e:
                # per-item failure, siblings keep running
                return self._failed(path, ClassificationError(str(e) or type(e).__name__), start_time, attempts)

        processing_time = time.time() - start_time
        logger.debug("Classified %s as %.3f in %.2fs", path.name, confidence, processing_time)
        return ItemOutcome(path, OutcomeKind.CLASSIFIED, confidence=confidence,
                           processing_time=processing_time, attempts=attempts)

    async def _classify(self, bitmap: str) -> float:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(self.executor, self.classifier.classify, bitmap)
        if self.timeout is not None:
            confidence = await asyncio.wait_for(call, self.timeout)
        else:
            confidence = await call
        confidence = float(confidence)
        if not 0.0 <= confidence <= 1.0:
            raise InvalidModelOutputError(f"Confidence out of range: {confidence}")
        return confidence

    def _failed(self, path: Path, error: Exception, start_time: float, attempts: int) -> ItemOutcome:
        logger.error("Detection failed for %s: %s", path.name, error)
        return ItemOutcome(path, OutcomeKind.FAILED, error=error,
                           processing_time=time.time() - start_time, attempts=attempts)
