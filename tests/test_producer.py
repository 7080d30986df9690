import threading

import pytest

from slslog.producer.io_worker import CallBack, LogServiceError
from slslog.producer.log_accumulator import ProducerClosedError
from slslog.producer.producer import (
    Producer,
    ProducerTimeoutError,
    TIMEOUT_EXCEPTION,
    validate_producer_config,
)
from slslog.producer.producer_config import ProducerConfig, get_default_producer_config
from slslog.producer.utils import generate_log


class FakeClient:
    def __init__(self, error=None, gate=None):
        self.calls = []
        self.metric_calls = []
        self.error = error
        self.gate = gate
        self.lock = threading.Lock()

    def post_log_store_logs(self, project, logstore, log_group, hash_key=None, compress_type=0):
        if self.gate is not None:
            self.gate.wait(5)
        with self.lock:
            self.calls.append((project, logstore, log_group, hash_key, compress_type))
        if self.error is not None:
            raise self.error

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        with self.lock:
            self.metric_calls.append((project, logstore, log_group))


class RecordingCallBack(CallBack):
    def __init__(self):
        self.successes = []
        self.failures = []

    def success(self, result):
        self.successes.append(result)

    def fail(self, result):
        self.failures.append(result)


def _log(i=0):
    return generate_log(1554880724, {"content": "test", "content2": str(i)})


def test_validate_resets_invalid_values():
    config = ProducerConfig(linger_ms=50, max_batch_count=50000, max_batch_size=-1)
    result = validate_producer_config(config)
    assert result is config
    assert config.max_reserved_attempts == 11
    assert config.max_batch_count == 40960
    assert config.max_batch_size == 1024 * 1024 * 5
    assert config.max_io_worker_count == 50
    assert config.base_retry_backoff_ms == 100
    assert config.total_size_ln_bytes == 100 * 1024 * 1024
    assert config.linger_ms == 2000


def test_validate_keeps_valid_values():
    config = get_default_producer_config()
    validate_producer_config(config)
    assert config.max_batch_count == 4096
    assert config.max_batch_size == 512 * 1024
    assert config.linger_ms == 2000
    assert config.max_io_worker_count == 50


def test_send_log_delivered_on_safe_close():
    client = FakeClient()
    producer = Producer(get_default_producer_config(), client)
    callback = RecordingCallBack()
    producer.start()
    for i in range(10):
        producer.send_log("project", "logstore", "topic", "127.0.0.1", _log(i), callback)
    producer.safe_close()
    assert len(client.calls) == 1
    project, logstore, group, hash_key, _ = client.calls[0]
    assert (project, logstore, hash_key) == ("project", "logstore", None)
    assert len(group.logs) == 10
    assert group.topic == "topic"
    assert group.source == "127.0.0.1"
    assert len(callback.successes) == 10
    assert all(result.is_successful() for result in callback.successes)


def test_send_log_list_delivers_all_logs():
    client = FakeClient()
    producer = Producer(get_default_producer_config(), client)
    producer.start()
    producer.send_log_list("p", "l", "t", "s", [_log(i) for i in range(5)])
    producer.close(5000)
    producer.thread_pool.join(5)
    assert sum(len(call[2].logs) for call in client.calls) == 5


def test_hash_send_log_adjusts_hash():
    client = FakeClient()
    producer = Producer(get_default_producer_config(), client)
    producer.start()
    producer.hash_send_log("p", "l", "127.0.0.1", "t", "s", _log())
    producer.safe_close()
    assert client.calls[0][3] == "f4000000000000000000000000000000"


def test_hash_send_log_list_without_adjust_keeps_hash():
    client = FakeClient()
    config = get_default_producer_config()
    config.adjust_shard_hash = False
    producer = Producer(config, client)
    producer.start()
    producer.hash_send_log_list("p", "l", "myhash", "t", "s", [_log(1), _log(2)])
    producer.safe_close()
    assert client.calls[0][3] == "myhash"
    assert len(client.calls[0][2].logs) == 2


def test_no_retry_status_fails_callback():
    error = LogServiceError(http_code=400, code="InvalidParam", message="bad", request_id="rid")
    client = FakeClient(error=error)
    producer = Producer(get_default_producer_config(), client)
    callback = RecordingCallBack()
    producer.start()
    producer.send_log("p", "l", "t", "s", _log(), callback)
    producer.safe_close()
    assert callback.successes == []
    assert len(callback.failures) == 1
    result = callback.failures[0]
    assert result.is_successful() is False
    assert result.error_code() == "InvalidParam"
    assert result.error_message() == "bad"
    assert result.request_id() == "rid"


def test_send_after_close_raises():
    producer = Producer(get_default_producer_config(), FakeClient())
    producer.start()
    producer.safe_close()
    with pytest.raises(ProducerClosedError):
        producer.send_log("p", "l", "t", "s", _log())


def test_wait_time_raises_when_over_limit_without_blocking():
    config = get_default_producer_config()
    config.max_block_sec = 0
    config.total_size_ln_bytes = 1
    producer = Producer(config, FakeClient())
    producer.send_log("p", "l", "t", "s", _log(1))
    producer.send_log("p", "l", "t", "s", _log(2))
    assert producer.size_counter.value() > 1
    with pytest.raises(ProducerTimeoutError) as info:
        producer.send_log("p", "l", "t", "s", _log(3))
    assert str(info.value) == TIMEOUT_EXCEPTION


def test_close_times_out_while_send_blocked():
    gate = threading.Event()
    client = FakeClient(gate=gate)
    producer = Producer(get_default_producer_config(), client)
    producer.start()
    producer.send_log("p", "l", "t", "s", _log())
    try:
        with pytest.raises(ProducerTimeoutError):
            producer.close(300)
    finally:
        gate.set()
    assert producer.io_worker.wait_idle(5) is True
    assert len(client.calls) == 1


def test_close_sets_sts_token_shutdown_and_pack_id():
    event = threading.Event()
    config = get_default_producer_config()
    config.sts_token_shutdown = event
    config.generate_pack_id = True
    client = FakeClient()
    producer = Producer(config, client)
    producer.start()
    producer.send_log("p", "l", "t", "s", _log())
    producer.safe_close()
    assert event.is_set()
    tags = {tag.key: tag.value for tag in client.calls[0][2].log_tags}
    assert tags["__pack_id__"].endswith("-0")


def test_metric_store_url_uses_metric_endpoint():
    config = get_default_producer_config()
    config.use_metric_store_url = True
    client = FakeClient()
    producer = Producer(config, client)
    producer.start()
    producer.send_log("p", "metrics", "t", "s", _log())
    producer.safe_close()
    assert client.calls == []
    assert client.metric_calls[0][:2] == ("p", "metrics")