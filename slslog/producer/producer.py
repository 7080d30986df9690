"""Producer that batches logs and sends them to the log service in the background."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Optional, Sequence

from .adjusthash import adjust_hash
from .io_thread_pool import IoThreadPool
from .io_worker import CallBack, IoWorker, LogClient, SizeCounter
from .log_accumulator import LogAccumulator
from .logger import log_config
from .mover import Mover
from .producer_config import ProducerConfig
from .retry_queue import RetryQueue
from .utils import Log

TIMEOUT_EXCEPTION = "TimeoutExecption"
ILLEGAL_STATE_EXCEPTION = "IllegalStateException"

_CLOSE_POLL = 0.1


class ProducerTimeoutError(TimeoutError):
    """Raised when the producer cannot accept logs or close within its time limit."""

    def __init__(self) -> None:
        super().__init__(TIMEOUT_EXCEPTION)


def validate_producer_config(config: ProducerConfig) -> ProducerConfig:
    """Reset out-of-range settings in ``config`` to their defaults and return it."""
    logger = log_config(config)
    if config.max_reserved_attempts <= 0:
        logger.warning(
            "This MaxReservedAttempts parameter must be greater than zero,"
            "program auto correction to default value"
        )
        config.max_reserved_attempts = 11
    if config.max_batch_count > 40960 or config.max_batch_count <= 0:
        logger.warning(
            "The parameter MaxBatchCount exceeds the set maximum and has been reset "
            "to the set maximum of 40960."
        )
        config.max_batch_count = 40960
    if config.max_batch_size > 1024 * 1024 * 5 or config.max_batch_size <= 0:
        logger.warning(
            "The parameter MaxBatchSize exceeds the settable maximum and has reset a "
            "single logGroup memory size of up to 5M."
        )
        config.max_batch_size = 1024 * 1024 * 5
    if config.max_io_worker_count <= 0:
        logger.warning(
            "The MaxIoWorkerCount parameter cannot be less than zero and has been "
            "reset to the default value of 50"
        )
        config.max_io_worker_count = 50
    if config.base_retry_backoff_ms <= 0:
        logger.warning(
            "The BaseRetryBackoffMs parameter cannot be less than zero and has been "
            "reset to the default value of 100 milliseconds"
        )
        config.base_retry_backoff_ms = 100
    if config.total_size_ln_bytes <= 0:
        logger.warning(
            "The TotalSizeLnBytes parameter cannot be less than zero and has been "
            "reset to the default value of 100M"
        )
        config.total_size_ln_bytes = 100 * 1024 * 1024
    if config.linger_ms < 100:
        logger.warning(
            "The LingerMs parameter cannot be less than 100 milliseconds and has been "
            "reset to the default value of 2000 milliseconds"
        )
        config.linger_ms = 2000
    return config


class Producer:
    """Accepts logs, groups them into batches and sends them through ``client``."""

    def __init__(
        self,
        config: ProducerConfig,
        client: LogClient,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger if logger is not None else log_config(config)
        self.config = validate_producer_config(config)
        self.buckets = self.config.buckets
        self.size_counter = SizeCounter()
        self.retry_queue = RetryQueue()
        self.io_worker = IoWorker(
            client,
            self.retry_queue,
            self.logger,
            self.config.max_io_worker_count,
            self.config.no_retry_status_code_list,
            self.size_counter,
            self.config.compress_type,
        )
        self.thread_pool = IoThreadPool(self.io_worker, self.logger)
        self.log_accumulator = LogAccumulator(
            self.config, self.io_worker, self.logger, self.thread_pool, self.size_counter
        )
        self.mover = Mover(
            self.log_accumulator,
            self.retry_queue,
            self.io_worker,
            self.logger,
            self.thread_pool,
            self.config,
        )
        self._mover_thread: Optional[threading.Thread] = None

    def _wait_time(self) -> None:
        """Block while too much data is held, within the configured limit."""
        limit = self.config.total_size_ln_bytes
        block_sec = self.config.max_block_sec
        if block_sec > 0:
            for _ in range(block_sec):
                if self.size_counter.value() <= limit:
                    return
                time.sleep(1)
            self.logger.error("Over producer set maximum blocking time")
            raise ProducerTimeoutError()
        if block_sec == 0:
            if self.size_counter.value() > limit:
                self.logger.error("Over producer set maximum blocking time")
                raise ProducerTimeoutError()
            return
        while self.size_counter.value() > limit:
            time.sleep(1)

    def _adjusted(self, shard_hash: str) -> str:
        if self.config.adjust_shard_hash:
            return adjust_hash(shard_hash, self.buckets)
        return shard_hash

    def send_log(
        self,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        log: Log,
        callback: Optional[CallBack] = None,
    ) -> None:
        self._wait_time()
        self.log_accumulator.add_log(project, logstore, "", topic, source, log, callback)

    def send_log_list(
        self,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        log_list: Sequence[Log],
        callback: Optional[CallBack] = None,
    ) -> None:
        self._wait_time()
        self.log_accumulator.add_log(project, logstore, "", topic, source, log_list, callback)

    def hash_send_log(
        self,
        project: str,
        logstore: str,
        shard_hash: str,
        topic: str,
        source: str,
        log: Log,
        callback: Optional[CallBack] = None,
    ) -> None:
        self._wait_time()
        shard_hash = self._adjusted(shard_hash)
        self.log_accumulator.add_log(project, logstore, shard_hash, topic, source, log, callback)

    def hash_send_log_list(
        self,
        project: str,
        logstore: str,
        shard_hash: str,
        topic: str,
        source: str,
        log_list: Sequence[Log],
        callback: Optional[CallBack] = None,
    ) -> None:
        self._wait_time()
        shard_hash = self._adjusted(shard_hash)
        self.log_accumulator.add_log(
            project, logstore, shard_hash, topic, source, log_list, callback
        )

    def start(self) -> None:
        """Start the mover and the sending threads."""
        self.logger.info("producer mover start")
        self._mover_thread = threading.Thread(
            target=self.mover.run, name="slslog-mover", daemon=True
        )
        self._mover_thread.start()
        self.thread_pool.start()

    def close(self, timeout_ms: int) -> None:
        """Close, waiting at most ``timeout_ms`` for pending batches to be sent."""
        started = time.monotonic()
        self._send_close_signal()
        self._join_mover()
        self.thread_pool.shutdown()
        while True:
            if self.io_worker.task_count == 0 and not self.thread_pool.has_task():
                self.logger.info("All groutines of producer have been shutdown")
                return
            if (time.monotonic() - started) * 1000 > timeout_ms:
                self.logger.warning(
                    "The producer timeout closes, and some of the cached data may not be sent properly"
                )
                raise ProducerTimeoutError()
            time.sleep(_CLOSE_POLL)

    def safe_close(self) -> None:
        """Close after every pending batch has been sent or has failed."""
        self._send_close_signal()
        self._join_mover()
        self.thread_pool.shutdown()
        self.thread_pool.join()
        self.io_worker.wait_idle()
        self.logger.info("Producer close finish")

    def _join_mover(self) -> None:
        if self._mover_thread is not None:
            self._mover_thread.join()

    def _send_close_signal(self) -> None:
        self.logger.info("producer start closing")
        self._close_sts_token()
        self.mover.shutdown()
        self.log_accumulator.shutdown()
        self.io_worker.retry_queue_shutdown.set()

    def _close_sts_token(self) -> None:
        event: Any = self.config.sts_token_shutdown
        if event is not None:
            event.set()
            self.logger.info("producer closed ststoken")