import logging
import time

from slslog.producer.io_worker import CallBack, IoWorker, LogServiceError, SizeCounter
from slslog.producer.producer_batch import ProducerBatch
from slslog.producer.producer_config import get_default_producer_config
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.utils import generate_log, get_time_ms

LOGGER = logging.getLogger("tests.io_worker")


class FakeClient:
    def __init__(self, error=None):
        self.error = error
        self.posted = []
        self.metric = []

    def post_log_store_logs(self, project, logstore, log_group, hash_key=None, compress_type=0):
        self.posted.append((project, logstore, log_group, hash_key, compress_type))
        if self.error is not None:
            raise self.error

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        self.metric.append((project, logstore, log_group))
        if self.error is not None:
            raise self.error


class RecordingCallback(CallBack):
    def __init__(self):
        self.successes = []
        self.failures = []

    def success(self, result):
        self.successes.append(result)

    def fail(self, result):
        self.failures.append(result)


def make_batch(config, callback=None, shard_hash=""):
    log = generate_log(1, {"k": "v"})
    return ProducerBatch(log, callback, "proj", "store", "topic", "src", shard_hash, config)


def make_worker(client, config, counter=None):
    return IoWorker(
        client,
        RetryQueue(),
        LOGGER,
        4,
        config.no_retry_status_code_list,
        counter or SizeCounter(),
        config.compress_type,
    )


def test_success_runs_callback_and_releases_size():
    config = get_default_producer_config()
    callback = RecordingCallback()
    batch = make_batch(config, callback)
    counter = SizeCounter(batch.total_data_size)
    client = FakeClient()
    worker = make_worker(client, config, counter)
    worker.send_to_server(batch)
    assert counter.value() == 0
    assert client.posted[0][:2] == ("proj", "store")
    assert client.posted[0][3] is None
    assert client.posted[0][4] == config.compress_type
    assert callback.successes == [batch.result]
    assert batch.result.is_successful()
    assert [a.success for a in batch.result.reserved_attempts()] == [True]


def test_shard_hash_is_passed_to_client():
    config = get_default_producer_config()
    client = FakeClient()
    make_worker(client, config).send_to_server(make_batch(config, shard_hash="abc"))
    assert client.posted[0][3] == "abc"


def test_metric_store_url_uses_metric_endpoint():
    config = get_default_producer_config()
    config.use_metric_store_url = True
    client = FakeClient()
    make_worker(client, config).send_to_server(make_batch(config))
    assert len(client.metric) == 1
    assert client.posted == []


def test_no_retry_status_fails_immediately():
    config = get_default_producer_config()
    callback = RecordingCallback()
    batch = make_batch(config, callback)
    counter = SizeCounter(batch.total_data_size)
    error = LogServiceError(400, "InvalidParam", "bad request", "rid-1")
    worker = make_worker(FakeClient(error), config, counter)
    worker.send_to_server(batch)
    assert callback.failures == [batch.result]
    assert batch.result.error_code() == "InvalidParam"
    assert batch.result.error_message() == "bad request"
    assert batch.result.request_id() == "rid-1"
    assert not batch.result.is_successful()
    assert len(worker.retry_queue) == 0
    assert counter.value() == 0


def test_server_error_goes_to_retry_queue():
    config = get_default_producer_config()
    callback = RecordingCallback()
    batch = make_batch(config, callback)
    worker = make_worker(FakeClient(LogServiceError(500, "ServerBusy", "busy")), config)
    before = get_time_ms(time.time_ns())
    worker.send_to_server(batch)
    after = get_time_ms(time.time_ns())
    assert batch.attempt_count == 1
    assert len(worker.retry_queue) == 1
    assert before + config.base_retry_backoff_ms <= batch.next_retry_ms
    assert batch.next_retry_ms <= after + config.base_retry_backoff_ms
    assert callback.failures == [] and callback.successes == []


def test_retry_wait_is_capped_by_max_interval():
    config = get_default_producer_config()
    config.max_retry_backoff_ms = 50
    batch = make_batch(config)
    worker = make_worker(FakeClient(LogServiceError(503, "Busy", "busy")), config)
    worker.send_to_server(batch)
    after = get_time_ms(time.time_ns())
    assert batch.next_retry_ms <= after + config.max_retry_backoff_ms


def test_exhausted_retries_fail_without_new_attempt():
    config = get_default_producer_config()
    config.retries = 0
    callback = RecordingCallback()
    batch = make_batch(config, callback)
    worker = make_worker(FakeClient(LogServiceError(500, "Busy", "busy")), config)
    worker.send_to_server(batch)
    assert callback.failures == [batch.result]
    assert batch.result.reserved_attempts() == []
    assert len(worker.retry_queue) == 0


def test_reserved_attempts_are_limited():
    config = get_default_producer_config()
    config.max_reserved_attempts = 1
    batch = make_batch(config)
    worker = make_worker(FakeClient(LogServiceError(500, "Busy", "busy")), config)
    worker.send_to_server(batch)
    worker.send_to_server(batch)
    assert batch.attempt_count == 2
    assert len(batch.result.reserved_attempts()) == 1


def test_failure_after_shutdown_fails_each_callback():
    config = get_default_producer_config()
    first, second = RecordingCallback(), RecordingCallback()
    batch = make_batch(config, first)
    batch.add_callback(second)
    worker = make_worker(FakeClient(LogServiceError(500, "Busy", "busy")), config)
    worker.retry_queue_shutdown.set()
    worker.send_to_server(batch)
    assert first.failures == [batch.result]
    assert second.failures == [batch.result]
    assert batch.attempt_count == 2
    assert len(worker.retry_queue) == 0


def test_send_task_counting():
    config = get_default_producer_config()
    worker = make_worker(FakeClient(), config)
    worker.start_send_task()
    assert worker.task_count == 1
    assert worker.wait_idle(0.01) is False
    worker.close_send_task()
    assert worker.task_count == 0
    assert worker.wait_idle(0.01) is True


def test_size_counter_adds():
    counter = SizeCounter(10)
    assert counter.add(5) == 15
    assert counter.add(-15) == 0
    assert counter.value() == 0