# slslog

Data models for a log service API, retry helpers with exponential backoff, and
a background producer that gathers logs into batches, hands them to worker
threads for sending and retries failed sends.

## Installation

```
pip install slslog
```

To run the tests:

```
pip install "slslog[test]"
pytest
```

## What the package does not do

The package has no HTTP client for the log service: it does not sign
requests, compress bodies or talk to an endpoint. The producer sends every
batch through a client object that you pass in, and the models only convert
to and from plain dictionaries and JSON. There is no command-line program.

## Building logs

```python
from slslog.producer.utils import generate_log, get_log_size_calculate

log = generate_log(1554880724, {"name": "sls"})
print(get_log_size_calculate(log))   # 4 + bytes of every key and value
```

`slslog.producer.utils` also holds `LogContent`, `LogTag`, `Log` and
`LogGroup`; `LogGroup.size()` gives the length of the group's
protocol-buffer encoding.

## Sending logs with the producer

The client given to `Producer` needs two methods:
`post_log_store_logs(project, logstore, log_group, hash_key=None, compress_type=0)`
and `put_logs_with_metric_store_url(project, logstore, log_group)`. A send
counts as failed when the method raises; raise
`slslog.producer.io_worker.LogServiceError` with an `http_code` to let the
producer decide whether to retry.

```python
from slslog.producer.io_worker import CallBack
from slslog.producer.producer import Producer
from slslog.producer.producer_config import get_default_producer_config
from slslog.producer.utils import generate_log


class PrintingClient:
    def post_log_store_logs(self, project, logstore, log_group, hash_key=None, compress_type=0):
        print("post", project, logstore, len(log_group.logs), hash_key)

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        print("metric", project, logstore, len(log_group.logs))


class Printer(CallBack):
    def success(self, result):
        print("sent after", len(result.reserved_attempts()), "attempt(s)")

    def fail(self, result):
        print("failed", result.error_code(), result.error_message())


config = get_default_producer_config()
producer = Producer(config, PrintingClient())
producer.start()
producer.send_log("project", "logstore", "topic", "127.0.0.1",
                  generate_log(1554880724, {"content": "hello"}), Printer())
producer.safe_close()
```

Logs that share a project, logstore, topic, shard hash and source are gathered
into one batch. A batch is handed out when it grows past `max_batch_size` or
`max_batch_count`, or once it has waited `linger_ms`. A failed send is put on
a retry queue with exponential backoff (from `base_retry_backoff_ms`, capped
at `max_retry_backoff_ms`) up to `retries` times, unless the error's status
code is in `no_retry_status_code_list`. Each callback gets a `Result` whose
accessors (`is_successful`, `error_code`, `error_message`, `request_id`,
`timestamp_ms`, `last_attempt_cost_ms`) report on the last attempt.

`Producer` checks its configuration with `validate_producer_config`, which
resets out-of-range settings to their defaults. When more than
`total_size_ln_bytes` is held, sending blocks for up to `max_block_sec`
seconds and then raises `ProducerTimeoutError`; adding logs after closing has
begun raises `ProducerClosedError`.

`close(timeout_ms)` waits at most `timeout_ms` for pending sends and raises
`ProducerTimeoutError` if they are not done; `safe_close()` waits until every
batch has been sent or has failed.

`hash_send_log` and `hash_send_log_list` route a batch by a shard hash. With
`adjust_shard_hash` set, the hash is mapped onto `buckets` buckets by
`slslog.producer.adjusthash.adjust_hash`:

```python
from slslog.producer.adjusthash import adjust_hash

adjust_hash("127.0.0.1", 64)   # 'f4000000000000000000000000000000'
```

With `generate_pack_id` set, every batch gets a `__pack_id__` tag from
`ProducerConfig.next_pack_id`.

## Models

`slslog.model` holds request and response types for queries and indexes,
such as `GetLogRequest`, `PullLogRequest`, `GetLogsV3Response` and `Index`:

```python
from slslog.model import create_default_index

print(create_default_index().to_json())
```

Other modules:

- `slslog.sub_store`: sorted sub stores; `new_sub_store` raises `ValueError`
  for an invalid definition.
- `slslog.machine_group`: machine groups and machine lists.
- `slslog.oss_shipper`: shipper configuration with JSON round trips
  (`Shipper.to_json`, `Shipper.from_json`).
- `slslog.retry`: `retry`, `retry_with_backoff`, `retry_with_condition` and
  `retry_with_attempt`, using `ExponentialBackOff`; `RetryStopped` is raised
  when a timeout passes first.
- `slslog.logger`: `generate_inner_logger`, and `init_default_logger`, which
  reads `SLS_SDK_LOG_FILE_NAME`, `SLS_SDK_IS_JSON_TYPE`,
  `SLS_SDK_LOG_MAX_SIZE`, `SLS_SDK_LOG_FILE_BACKUP_COUNT` and
  `SLS_SDK_ALLOW_LOG_LEVEL`.
- `slslog.producer.logger`: `log_config`, the producer's logger built from
  its configuration (stdout, or a rotating file when `log_file_name` is set).