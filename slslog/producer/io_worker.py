"""Sends batches to the log service and handles their outcome."""

from __future__ import annotations

import abc
import logging
import threading
import time
from typing import Iterable, Optional, Protocol

from .producer_batch import ProducerBatch
from .result import Attempt
from .retry_queue import RetryQueue
from .utils import LogGroup, get_time_ms


def _now_ms() -> int:
    return get_time_ms(time.time_ns())


class CallBack(abc.ABC):
    """Receives the result of a batch once it has been sent or has failed for good."""

    @abc.abstractmethod
    def success(self, result) -> None:
        """Called after the batch holding the log was written."""

    @abc.abstractmethod
    def fail(self, result) -> None:
        """Called after the batch holding the log could not be written."""


class LogServiceError(Exception):
    """Error reported by the log service for a request."""

    def __init__(self, http_code: int = 0, code: str = "", message: str = "", request_id: str = ""):
        self.http_code = http_code
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(f"{code}: {message}" if code else message)


class LogClient(Protocol):
    """What the worker needs from a client of the log service."""

    def post_log_store_logs(
        self,
        project: str,
        logstore: str,
        log_group: LogGroup,
        hash_key: Optional[str] = None,
        compress_type: int = 0,
    ) -> None: ...

    def put_logs_with_metric_store_url(self, project: str, logstore: str, log_group: LogGroup) -> None: ...


class SizeCounter:
    """Thread-safe running total of bytes held by the producer."""

    def __init__(self, initial: int = 0):
        self._lock = threading.Lock()
        self._value = initial

    def add(self, delta: int) -> int:
        with self._lock:
            self._value += delta
            return self._value

    def value(self) -> int:
        with self._lock:
            return self._value


class IoWorker:
    """Delivers batches, records attempts, and queues failed batches for retry."""

    def __init__(
        self,
        client: LogClient,
        retry_queue: RetryQueue,
        logger: logging.Logger,
        max_io_worker_count: int,
        no_retry_status_codes: Iterable[int],
        size_counter: SizeCounter,
        compress_type: int = 0,
    ):
        self.client = client
        self.retry_queue = retry_queue
        self.logger = logger
        self.no_retry_status_codes = frozenset(int(code) for code in no_retry_status_codes)
        self.size_counter = size_counter
        self.compress_type = compress_type
        self.retry_queue_shutdown = threading.Event()
        self._slots = threading.Semaphore(max_io_worker_count)
        self._tasks = threading.Condition()
        self._task_count = 0

    @property
    def task_count(self) -> int:
        with self._tasks:
            return self._task_count

    def start_send_task(self) -> None:
        """Register a send task, blocking while all worker slots are in use."""
        with self._tasks:
            self._task_count += 1
        self._slots.acquire()

    def close_send_task(self) -> None:
        self._slots.release()
        with self._tasks:
            self._task_count -= 1
            self._tasks.notify_all()

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait until no send task is running; return False on timeout."""
        with self._tasks:
            return self._tasks.wait_for(lambda: self._task_count == 0, timeout)

    def _deliver(self, batch: ProducerBatch) -> None:
        with batch.lock:
            project, logstore = batch.project, batch.logstore
            shard_hash, metric = batch.shard_hash, batch.use_metric_store_url
        if metric:
            self.client.put_logs_with_metric_store_url(project, logstore, batch.log_group)
        else:
            self.client.post_log_store_logs(
                project, logstore, batch.log_group, shard_hash, self.compress_type
            )

    def send_to_server(self, batch: ProducerBatch) -> None:
        self.logger.debug("ioworker send data to server")
        begin_ms = _now_ms()
        try:
            self._deliver(batch)
        except Exception as exc:  # any failure of the client counts as a failed attempt
            self._handle_failure(batch, exc, begin_ms)
            return
        self.logger.debug("sendToServer succeeded, executing success callbacks")
        if batch.attempt_count < batch.max_reserved_attempts:
            now_ms = _now_ms()
            batch.result.attempts.append(
                Attempt(True, "", "", "", now_ms, now_ms - begin_ms)
            )
        batch.result.successful = True
        self.size_counter.add(-batch.total_data_size)
        for callback in list(batch.callbacks):
            callback.success(batch.result)

    def _handle_failure(self, batch: ProducerBatch, error: Exception, begin_ms: int) -> None:
        if self.retry_queue_shutdown.is_set():
            for callback in list(batch.callbacks):
                self._record_failure(batch, error, False, begin_ms)
                callback.fail(batch.result)
            return
        self.logger.info("sendToServer failed", extra={"fields": {"error": str(error)}})
        if isinstance(error, LogServiceError) and error.http_code in self.no_retry_status_codes:
            self._record_failure(batch, error, False, begin_ms)
            self._fail(batch)
            return
        if batch.attempt_count < batch.max_retry_times:
            self._record_failure(batch, error, True, begin_ms)
            wait_ms = batch.base_retry_backoff_ms * int(2 ** (batch.attempt_count - 1))
            batch.next_retry_ms = _now_ms() + min(wait_ms, batch.max_retry_interval_ms)
            self.logger.debug("Submit to the retry queue after meeting the retry criteria")
            self.retry_queue.push(batch)
        else:
            self._fail(batch)

    def _record_failure(
        self, batch: ProducerBatch, error: Exception, retrying: bool, begin_ms: int
    ) -> None:
        if batch.attempt_count < batch.max_reserved_attempts:
            request_id = getattr(error, "request_id", "")
            code = getattr(error, "code", "")
            message = getattr(error, "message", None) or str(error)
            if retrying:
                self.logger.info(
                    "sendToServer failed,start retrying",
                    extra={
                        "fields": {
                            "retry times": batch.attempt_count,
                            "requestId": request_id,
                            "error code": code,
                            "error message": message,
                        }
                    },
                )
            now_ms = _now_ms()
            batch.result.attempts.append(
                Attempt(False, request_id, code, message, now_ms, now_ms - begin_ms)
            )
        batch.result.successful = False
        batch.attempt_count += 1

    def _fail(self, batch: ProducerBatch) -> None:
        self.logger.info("sendToServer failed,Execute failed callback function")
        self.size_counter.add(-batch.total_data_size)
        for callback in list(batch.callbacks):
            callback.fail(batch.result)