"""Moves lingering batches and due retries to the thread pool."""

from __future__ import annotations

import logging
import threading
import time

from .io_thread_pool import IoThreadPool
from .io_worker import IoWorker
from .log_accumulator import LogAccumulator
from .producer_batch import ProducerBatch
from .retry_queue import RetryQueue
from .utils import get_time_ms


def _now_ms() -> int:
    return get_time_ms(time.time_ns())


class Mover:
    """Sends batches older than the linger time, and retries whose time has come."""

    def __init__(
        self,
        log_accumulator: LogAccumulator,
        retry_queue: RetryQueue,
        io_worker: IoWorker,
        logger: logging.Logger,
        thread_pool: IoThreadPool,
        config,
    ):
        self.log_accumulator = log_accumulator
        self.retry_queue = retry_queue
        self.io_worker = io_worker
        self.logger = logger
        self.thread_pool = thread_pool
        self.config = config
        self._shutdown = threading.Event()

    def shutdown(self) -> None:
        self._shutdown.set()

    def _send_expired(self, key: str, batch: ProducerBatch) -> None:
        current = self.log_accumulator.batches.get(key)
        if current is None or _now_ms() - current.create_time_ms < self.config.linger_ms:
            return
        self.thread_pool.add_task(batch)
        del self.log_accumulator.batches[key]

    def run(self) -> None:
        """Loop until shut down, then hand every remaining batch to the thread pool."""
        linger_ms = self.config.linger_ms
        accumulator = self.log_accumulator
        while not self._shutdown.is_set():
            sleep_ms = linger_ms
            now_ms = _now_ms()
            with accumulator.lock:
                batch_count = len(accumulator.batches)
                for key, batch in list(accumulator.batches.items()):
                    remaining = batch.create_time_ms + linger_ms - now_ms
                    if remaining <= 0:
                        self.logger.debug("mover sends producerBatch to IoWorker")
                        self._send_expired(key, batch)
                    else:
                        sleep_ms = min(sleep_ms, remaining)
            if batch_count == 0:
                sleep_ms = linger_ms
            retries = self.retry_queue.get_retry_batch(self._shutdown.is_set())
            if retries:
                for batch in retries:
                    self.thread_pool.add_task(batch)
            else:
                self._shutdown.wait(sleep_ms / 1000)

        with accumulator.lock:
            for batch in accumulator.batches.values():
                self.thread_pool.add_task(batch)
            accumulator.batches = {}
        for batch in self.retry_queue.get_retry_batch(self._shutdown.is_set()):
            self.thread_pool.add_task(batch)
        self.logger.info("mover thread closure complete")