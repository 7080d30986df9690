"""Queue of batches handed to worker threads for sending."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Optional

from .io_worker import IoWorker
from .producer_batch import ProducerBatch

_IDLE_WAIT = 0.1


class IoThreadPool:
    """Feeds queued batches to the worker, one thread per send."""

    def __init__(self, io_worker: IoWorker, logger: logging.Logger):
        self.io_worker = io_worker
        self.logger = logger
        self._queue: deque[ProducerBatch] = deque()
        self._lock = threading.Lock()
        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def add_task(self, batch: ProducerBatch) -> None:
        with self._lock:
            self._queue.append(batch)

    def pop_task(self) -> Optional[ProducerBatch]:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def has_task(self) -> bool:
        with self._lock:
            return bool(self._queue)

    def start(self) -> None:
        """Start dispatching queued batches in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("thread pool is already running")
        self._thread = threading.Thread(target=self._run, name="slslog-io-pool", daemon=True)
        self._thread.start()

    def shutdown(self) -> None:
        """Stop once every queued batch has been handed out."""
        self._shutdown.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the dispatch thread to end; return False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        while True:
            task = self.pop_task()
            if task is not None:
                self.io_worker.start_send_task()
                threading.Thread(target=self._send, args=(task,), daemon=True).start()
            elif self._shutdown.is_set():
                self.logger.info("All cache tasks in the thread pool have been successfully sent")
                break
            else:
                self._shutdown.wait(_IDLE_WAIT)

    def _send(self, batch: ProducerBatch) -> None:
        try:
            self.io_worker.send_to_server(batch)
        finally:
            self.io_worker.close_send_task()