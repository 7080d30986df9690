"""Producer configuration and its defaults."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .producer_batch import generate_pack_id as _new_pack_prefix
from .utils import LogTag

DELIMITER = "|"
COMPRESS_LZ4 = 0


@dataclass
class ProducerConfig:
    total_size_ln_bytes: int = 0
    max_io_worker_count: int = 0
    max_block_sec: int = 0
    max_batch_size: int = 0
    max_batch_count: int = 0
    linger_ms: int = 0
    retries: int = 0
    max_reserved_attempts: int = 0
    base_retry_backoff_ms: int = 0
    max_retry_backoff_ms: int = 0
    adjust_shard_hash: bool = False
    buckets: int = 0
    allow_log_level: str = ""
    log_file_name: str = ""
    is_json_type: bool = False
    log_max_size: int = 0
    log_max_backups: int = 0
    log_compress: bool = False
    endpoint: str = ""
    no_retry_status_code_list: list[int] = field(default_factory=list)
    http_client: Any = None
    user_agent: str = ""
    log_tags: list[LogTag] = field(default_factory=list)
    generate_pack_id: bool = False
    credentials_provider: Any = None
    use_metric_store_url: bool = False
    update_sts_token: Optional[Callable[[], Any]] = None
    sts_token_shutdown: Optional[threading.Event] = None
    access_key_id: str = ""
    access_key_secret: str = ""
    region: str = ""
    auth_version: str = ""
    compress_type: int = 0
    _pack_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )
    _pack_prefix: str = field(default="", init=False, repr=False, compare=False)
    _pack_number: int = field(default=0, init=False, repr=False, compare=False)

    def next_pack_id(self, source: str) -> str:
        """Return the next pack id: a fixed random prefix and a hex sequence number."""
        with self._pack_lock:
            if not self._pack_prefix:
                self._pack_prefix = _new_pack_prefix(source).upper() + "-"
            pack_id = f"{self._pack_prefix}{self._pack_number:X}"
            self._pack_number += 1
            return pack_id


def get_default_producer_config() -> ProducerConfig:
    return ProducerConfig(
        total_size_ln_bytes=100 * 1024 * 1024,
        max_io_worker_count=50,
        max_block_sec=60,
        max_batch_size=512 * 1024,
        linger_ms=2000,
        retries=10,
        max_reserved_attempts=11,
        base_retry_backoff_ms=100,
        max_retry_backoff_ms=50 * 1000,
        adjust_shard_hash=True,
        buckets=64,
        max_batch_count=4096,
        no_retry_status_code_list=[400, 404],
        compress_type=COMPRESS_LZ4,
    )