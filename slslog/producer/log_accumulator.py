"""Collects logs into batches keyed by their destination."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Sequence, Union

from .io_thread_pool import IoThreadPool
from .io_worker import IoWorker, SizeCounter
from .producer_batch import ProducerBatch
from .producer_config import DELIMITER
from .utils import Log, get_log_list_size, get_log_size_calculate

_MAX_SEND_SIZE = 5242880


class ProducerClosedError(RuntimeError):
    """Raised when logs are added after the producer began shutting down."""


def make_key(project: str, logstore: str, topic: str, shard_hash: str, source: str) -> str:
    return DELIMITER.join((project, logstore, topic, shard_hash, source))


def _data_size(log_data: Any) -> int:
    if isinstance(log_data, Log):
        return get_log_size_calculate(log_data)
    if isinstance(log_data, (list, tuple)) and all(isinstance(item, Log) for item in log_data):
        return get_log_list_size(log_data)
    raise TypeError("Invalid logType")


class LogAccumulator:
    """Groups logs per destination and hands full batches to the thread pool."""

    def __init__(
        self,
        config,
        io_worker: IoWorker,
        logger: logging.Logger,
        thread_pool: IoThreadPool,
        size_counter: SizeCounter,
    ):
        self.config = config
        self.io_worker = io_worker
        self.logger = logger
        self.thread_pool = thread_pool
        self.size_counter = size_counter
        self.lock = threading.RLock()
        self.batches: dict[str, ProducerBatch] = {}
        self._shutdown = threading.Event()

    @property
    def is_shut_down(self) -> bool:
        return self._shutdown.is_set()

    def shutdown(self) -> None:
        self._shutdown.set()

    def add_log(
        self,
        project: str,
        logstore: str,
        shard_hash: str,
        topic: str,
        source: str,
        log_data: Union[Log, Sequence[Log]],
        callback: Optional[Any] = None,
    ) -> None:
        """Add one log or a list of logs to the batch for their destination."""
        if self._shutdown.is_set():
            self.logger.warning("Producer has started and shut down and cannot write to new logs")
            raise ProducerClosedError(
                "Producer has started and shut down and cannot write to new logs"
            )
        try:
            size = _data_size(log_data)
        except TypeError:
            self.logger.error("Invalid logType")
            raise
        key = make_key(project, logstore, topic, shard_hash, source)
        with self.lock:
            batch = self.batches.get(key)
            if batch is None:
                self._create_batch(log_data, callback, key, project, logstore, topic, source, shard_hash)
                return
            with batch.lock:
                batch.total_data_size += size
            self.size_counter.add(size)
            self._add_or_send(key, project, logstore, topic, source, shard_hash, batch, log_data, callback)

    def _add_or_send(
        self,
        key: str,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
        batch: ProducerBatch,
        log_data: Any,
        callback: Optional[Any],
    ) -> None:
        total_count = batch.log_count() + 1
        max_size = self.config.max_batch_size
        fits_count = total_count <= self.config.max_batch_count
        if batch.total_data_size > max_size and batch.total_data_size < _MAX_SEND_SIZE and fits_count:
            batch.add_logs(log_data)
            if callback is not None:
                batch.add_callback(callback)
            self._send(key, batch)
        elif batch.total_data_size <= max_size and fits_count:
            batch.add_logs(log_data)
            if callback is not None:
                batch.add_callback(callback)
        else:
            self._send(key, batch)
            self._create_batch(log_data, callback, key, project, logstore, topic, source, shard_hash)

    def _create_batch(
        self,
        log_data: Any,
        callback: Optional[Any],
        key: str,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
    ) -> None:
        self.logger.debug("Create a new ProducerBatch")
        self.batches[key] = ProducerBatch(
            log_data, callback, project, logstore, topic, source, shard_hash, self.config
        )

    def _send(self, key: str, batch: ProducerBatch) -> None:
        self.logger.debug("Send producerBatch to IoWorker from logAccumulator")
        self.thread_pool.add_task(batch)
        self.batches.pop(key, None)