"""A batch of logs bound for one project, log store, topic, source and shard."""

from __future__ import annotations

import datetime
import threading
import time
from typing import TYPE_CHECKING, Any, Optional, Sequence, Union

from .adjusthash import to_md5
from .result import Result
from .utils import Log, LogGroup, LogTag, get_time_ms

if TYPE_CHECKING:
    from .producer_config import ProducerConfig

PACK_ID_KEY = "__pack_id__"


def generate_pack_id(source: str) -> str:
    """Return 16 hex digits derived from ``source`` and the current time."""
    return to_md5(source + str(datetime.datetime.now()))[:16]


def _as_logs(log_data: Union[Log, Sequence[Log]]) -> list[Log]:
    if isinstance(log_data, Log):
        return [log_data]
    if isinstance(log_data, (list, tuple)) and all(isinstance(item, Log) for item in log_data):
        return list(log_data)
    raise TypeError("Invalid logType")


class ProducerBatch:
    """Logs collected for one destination, with their retry state and callbacks."""

    def __init__(
        self,
        log_data: Union[Log, Sequence[Log]],
        callback: Any,
        project: str,
        logstore: str,
        topic: str,
        source: str,
        shard_hash: str,
        config: "ProducerConfig",
    ):
        tags = list(config.log_tags)
        if config.generate_pack_id:
            tags.append(LogTag(key=PACK_ID_KEY, value=config.next_pack_id(source)))
        self.lock = threading.RLock()
        self.log_group = LogGroup(logs=_as_logs(log_data), topic=topic, source=source, log_tags=tags)
        self.attempt_count = 0
        self.base_retry_backoff_ms = config.base_retry_backoff_ms
        self.next_retry_ms = 0
        self.max_retry_interval_ms = config.max_retry_backoff_ms
        self.callbacks: list[Any] = [] if callback is None else [callback]
        self.create_time_ms = get_time_ms(time.time_ns())
        self.max_retry_times = config.retries
        self.project = project
        self.logstore = logstore
        self.shard_hash: Optional[str] = shard_hash or None
        self.result = Result()
        self.max_reserved_attempts = config.max_reserved_attempts
        self.use_metric_store_url = config.use_metric_store_url
        self.total_data_size = self.log_group.size()

    def log_count(self) -> int:
        with self.lock:
            return len(self.log_group.logs)

    def add_logs(self, logs: Union[Log, Sequence[Log]]) -> None:
        items = _as_logs(logs)
        with self.lock:
            self.log_group.logs.extend(items)

    def add_callback(self, callback: Any) -> None:
        with self.lock:
            self.callbacks.append(callback)