from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from queue import Queue
from typing import Callable, Protocol

from team_scanner.utils.queueing import drain, put_latest
from team_scanner.utils.types import (
    EMPTY_PUBLISHED,
    DetectedNumber,
    DetectionBatch,
    PublishedBatch,
    TeamInfo,
)

logger = logging.getLogger("team_scanner.enrichment")

Subscriber = Callable[[PublishedBatch], None]


class TeamResolver(Protocol):
    def get_team_info(self, number: str) -> TeamInfo | None:
        ...


class EnrichmentCoordinator:
    def __init__(self, resolver: TeamResolver, lookup_workers: int = 8, batch_workers: int = 2) -> None:
        self.resolver = resolver
        self._inbox: Queue[DetectionBatch] = Queue(maxsize=1)
        self._resolved: Queue[DetectionBatch] = Queue()
        self._lookup_pool = ThreadPoolExecutor(max_workers=max(1, lookup_workers), thread_name_prefix="team-lookup")
        self._batch_pool = ThreadPoolExecutor(max_workers=max(1, batch_workers), thread_name_prefix="enrich-batch")
        self._state_lock = threading.Lock()
        self._current: PublishedBatch = EMPTY_PUBLISHED
        self._subscribers: list[Subscriber] = []
        self._in_progress = 0

    @property
    def current(self) -> PublishedBatch:
        with self._state_lock:
            return self._current

    @property
    def in_progress(self) -> int:
        with self._state_lock:
            return self._in_progress

    @property
    def idle(self) -> bool:
        with self._state_lock:
            busy = self._in_progress > 0
        return not busy and self._inbox.empty() and self._resolved.empty()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._state_lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._state_lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    # Analysis context ----------------------------------------------------

    def submit(self, batch: DetectionBatch) -> None:
        put_latest(self._inbox, batch)

    # Coordinator context -------------------------------------------------

    def pump(self, timeout: float = 0.0) -> int:
        """Start resolving delivered batches and publish finished ones.

        Returns the number of batches published during this call.
        """
        for batch in drain(self._inbox, timeout=timeout):
            self._start(batch)

        published = 0
        for resolved in drain(self._resolved):
            if self._publish(resolved):
                published += 1
        return published

    def process_batch(self, batch: DetectionBatch) -> PublishedBatch | None:
        """Resolve and publish synchronously in the caller's context."""
        resolved = self.enrich(batch)
        if self._publish(resolved):
            return self.current
        return None

    def enrich(self, batch: DetectionBatch) -> DetectionBatch:
        pending: dict[int, Future[TeamInfo | None]] = {}
        for idx, detection in enumerate(batch.detections):
            if detection.team_info is None:
                pending[idx] = self._lookup_pool.submit(self._lookup, detection.text)

        enriched: list[DetectedNumber] = []
        for idx, detection in enumerate(batch.detections):
            if idx in pending:
                detection = detection.with_team_info(pending[idx].result())
            if detection.team_info is not None:
                enriched.append(detection)

        dropped = len(batch.detections) - len(enriched)
        if dropped:
            logger.debug(
                "Dropped unresolved detections",
                extra={"event": "detections_dropped", "sequence": batch.sequence, "dropped": dropped},
            )
        return DetectionBatch(sequence=batch.sequence, frame_size=batch.frame_size, detections=tuple(enriched))

    def close(self) -> None:
        self._batch_pool.shutdown(wait=True)
        self._lookup_pool.shutdown(wait=True)

    # Internals -----------------------------------------------------------

    def _lookup(self, number: str) -> TeamInfo | None:
        try:
            return self.resolver.get_team_info(number)
        except Exception:
            logger.exception("Team resolution failed", extra={"event": "resolve_failed", "team": number})
            return None

    def _start(self, batch: DetectionBatch) -> None:
        with self._state_lock:
            self._in_progress += 1
        future = self._batch_pool.submit(self.enrich, batch)
        future.add_done_callback(self._on_resolved)

    def _on_resolved(self, future: Future[DetectionBatch]) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Batch enrichment failed",
                extra={"event": "enrich_failed", "error": str(exc)},
            )
        else:
            self._resolved.put(future.result())
        with self._state_lock:
            self._in_progress -= 1

    def _publish(self, batch: DetectionBatch) -> bool:
        with self._state_lock:
            if batch.sequence <= self._current.sequence:
                logger.debug(
                    "Discarded stale batch",
                    extra={
                        "event": "stale_batch",
                        "sequence": batch.sequence,
                        "published_sequence": self._current.sequence,
                    },
                )
                return False
            self._current = PublishedBatch(
                sequence=batch.sequence,
                frame_size=batch.frame_size,
                detections=batch.detections,
            )
            published = self._current
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(published)
            except Exception:
                logger.exception("Subscriber failed", extra={"event": "subscriber_failed"})
        return True
