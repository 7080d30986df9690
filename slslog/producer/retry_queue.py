"""Batches waiting to be sent again, ordered by their retry time."""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from typing import Optional

from .producer_batch import ProducerBatch
from .utils import get_time_ms


class RetryQueue:
    def __init__(self) -> None:
        self._heap: list[tuple[int, int, ProducerBatch]] = []
        self._lock = threading.Lock()
        self._sequence = itertools.count()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    def push(self, batch: Optional[ProducerBatch]) -> None:
        if batch is None:
            return
        with self._lock:
            heapq.heappush(self._heap, (batch.next_retry_ms, next(self._sequence), batch))

    def get_retry_batch(self, shutting_down: bool) -> list[ProducerBatch]:
        """Take the batches whose retry time has passed, or all of them when shutting down."""
        now_ms = get_time_ms(time.time_ns())
        ready: list[ProducerBatch] = []
        with self._lock:
            while self._heap and (shutting_down or self._heap[0][0] < now_ms):
                ready.append(heapq.heappop(self._heap)[2])
        return ready