import logging
import threading
import time

from slslog.producer.io_thread_pool import IoThreadPool
from slslog.producer.io_worker import IoWorker, SizeCounter
from slslog.producer.log_accumulator import LogAccumulator
from slslog.producer.mover import Mover
from slslog.producer.producer_batch import ProducerBatch
from slslog.producer.producer_config import get_default_producer_config
from slslog.producer.retry_queue import RetryQueue
from slslog.producer.utils import generate_log

LOGGER = logging.getLogger("tests.mover")


class NullClient:
    def post_log_store_logs(self, project, logstore, log_group, hash_key=None, compress_type=0):
        self.last = log_group

    def put_logs_with_metric_store_url(self, project, logstore, log_group):
        self.last = log_group


def make_mover(linger_ms):
    config = get_default_producer_config()
    config.linger_ms = linger_ms
    counter = SizeCounter()
    queue = RetryQueue()
    worker = IoWorker(NullClient(), queue, LOGGER, 2, [], counter)
    pool = IoThreadPool(worker, LOGGER)
    acc = LogAccumulator(config, worker, LOGGER, pool, counter)
    return Mover(acc, queue, worker, LOGGER, pool, config), acc, pool, queue, config


def drain(pool):
    tasks = []
    while (task := pool.pop_task()) is not None:
        tasks.append(task)
    return tasks


def wait_for(predicate, timeout=3.0):
    end = time.monotonic() + timeout
    while time.monotonic() < end:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_shutdown_flushes_batches_and_retries():
    mover, acc, pool, queue, config = make_mover(100)
    acc.add_log("p", "s", "", "t", "src", generate_log(1, {"a": "1"}))
    pending = next(iter(acc.batches.values()))
    retry = ProducerBatch(generate_log(2, {"b": "2"}), None, "p", "s", "t", "src", "", config)
    retry.next_retry_ms = 2**62
    queue.push(retry)
    mover.shutdown()
    mover.run()
    tasks = drain(pool)
    assert {id(t) for t in tasks} == {id(pending), id(retry)}
    assert acc.batches == {}
    assert len(queue) == 0


def test_expired_batch_is_sent_while_running():
    mover, acc, pool, _, _ = make_mover(100)
    acc.add_log("p", "s", "", "t", "src", generate_log(1, {"a": "1"}))
    batch = next(iter(acc.batches.values()))
    batch.create_time_ms -= 1000
    thread = threading.Thread(target=mover.run)
    thread.start()
    try:
        assert wait_for(pool.has_task)
    finally:
        mover.shutdown()
        thread.join(5)
    assert not thread.is_alive()
    assert drain(pool) == [batch]


def test_due_retry_is_sent_while_running():
    mover, _, pool, queue, config = make_mover(100)
    retry = ProducerBatch(generate_log(1, {"a": "1"}), None, "p", "s", "t", "src", "", config)
    retry.next_retry_ms = 0
    queue.push(retry)
    thread = threading.Thread(target=mover.run)
    thread.start()
    try:
        assert wait_for(pool.has_task)
    finally:
        mover.shutdown()
        thread.join(5)
    assert drain(pool) == [retry]


def test_fresh_batch_waits_for_linger():
    mover, acc, pool, _, _ = make_mover(60000)
    acc.add_log("p", "s", "", "t", "src", generate_log(1, {"a": "1"}))
    batch = next(iter(acc.batches.values()))
    thread = threading.Thread(target=mover.run)
    thread.start()
    time.sleep(0.3)
    held_back = not pool.has_task()
    mover.shutdown()
    thread.join(5)
    assert held_back
    assert not thread.is_alive()
    assert drain(pool) == [batch]