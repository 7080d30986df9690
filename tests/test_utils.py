import time

import pytest

from slslog.producer.utils import (
    Log,
    LogContent,
    LogGroup,
    LogTag,
    generate_log,
    get_log_list_size,
    get_log_size_calculate,
    get_time_ms,
)


@pytest.mark.parametrize(
    "nanos, want",
    [
        (1554880287052203000, 1554880287052),
        (1554880322922250000, 1554880322922),
        (1554880363658257000, 1554880363658),
    ],
)
def test_get_time_ms(nanos, want):
    assert get_time_ms(nanos) == want


def test_get_time_ms_truncates_toward_zero():
    assert get_time_ms(-1_500_000) == -1


def test_generate_log():
    want = Log(time=1554880724, contents=[LogContent(key="name", value="sls")])
    assert generate_log(1554880724, {"name": "sls"}) == want


def test_get_log_size_calculate():
    log = generate_log(int(time.time()), {"content_1": "logtest", "contena_2": "logtest"})
    assert get_log_size_calculate(log) == 36


def test_get_log_list_size_sums():
    log = generate_log(int(time.time()), {"content_1": "logtest", "contena_2": "logtest"})
    assert get_log_list_size([log, log]) == 72
    assert get_log_list_size([]) == 0


def test_empty_group_size():
    assert LogGroup().size() == 0


def test_group_size_of_one_log():
    group = LogGroup(logs=[generate_log(1554880724, {"name": "sls"})])
    assert group.size() == 21


def test_group_size_with_empty_topic():
    group = LogGroup(logs=[generate_log(1554880724, {"name": "sls"})], topic="")
    assert group.size() == 23


def test_group_size_grows_with_tags():
    group = LogGroup(logs=[generate_log(1, {"a": "b"})])
    before = group.size()
    group.log_tags.append(LogTag(key="k", value="v"))
    assert group.size() > before