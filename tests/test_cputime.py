import gc
import math
import time
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from lsotel.aggregation import InstrumentKind
from lsotel.cputime import (
    ATTRIBUTE_CPU_TIME_SYSTEM,
    ATTRIBUTE_CPU_TIME_USER,
    CPUTime,
    ProcessTimes,
)


def get_metric(observations, name, attributes=None):
    for obs in observations:
        if obs.instrument.name != name:
            continue
        if attributes and dict(obs.attributes) != attributes:
            continue
        return obs.value
    raise LookupError(f"could not locate {name} in output")


def test_process_cpu_in_range():
    c = CPUTime()
    start = time.monotonic()
    while time.monotonic() - start < 0.3:
        c.process_times()

    before = c.process_times()
    observations = c.collect()
    user = get_metric(observations, "process.cpu.time", ATTRIBUTE_CPU_TIME_USER)
    system = get_metric(observations, "process.cpu.time", ATTRIBUTE_CPU_TIME_SYSTEM)
    after = c.process_times()

    assert before.user <= user <= after.user
    assert before.system <= system <= after.system


def test_process_uptime_since_y2k():
    y2k = datetime(2000, 1, 1, tzinfo=timezone.utc).timestamp()
    expect = time.time() - y2k
    c = CPUTime(start_time=y2k)
    uptime = get_metric(c.collect(), "process.uptime")
    assert expect <= uptime


def test_gc_time_bounded_by_cpu_time():
    c = CPUTime()
    initial = c.collect()
    initial_user = get_metric(initial, "process.cpu.time", ATTRIBUTE_CPU_TIME_USER)
    initial_system = get_metric(initial, "process.cpu.time", ATTRIBUTE_CPU_TIME_SYSTEM)
    initial_gc = get_metric(initial, "process.runtime.python.gc.cpu.time")

    for _ in range(2):
        garbage = []
        start = time.monotonic()
        while time.monotonic() - start < 1 / 16:
            node = {}
            node["self"] = node
            garbage.append(node)
        assert len(garbage) > 0
        del garbage
        gc.collect()

        obs = c.collect()
        user = get_metric(obs, "process.cpu.time", ATTRIBUTE_CPU_TIME_USER) - initial_user
        system = get_metric(obs, "process.cpu.time", ATTRIBUTE_CPU_TIME_SYSTEM) - initial_system
        gc_time = get_metric(obs, "process.runtime.python.gc.cpu.time") - initial_gc
        assert 0.0 <= gc_time <= user + system


def test_fixed_sources():
    c = CPUTime(
        times=lambda: SimpleNamespace(user=1.5, system=0.25),
        start_time=time.time() - 100.0,
        gc_time=lambda: 0.125,
    )
    result = c.process_times()
    assert result.user == 1.5
    assert result.system == 0.25
    assert result.gc == 0.125
    assert result.uptime >= 100.0


def test_collect_order_and_attributes():
    c = CPUTime(
        times=lambda: SimpleNamespace(user=2.0, system=3.0),
        gc_time=lambda: 0.5,
    )
    obs = c.collect()
    assert [o.instrument.name for o in obs] == [
        "process.uptime",
        "process.cpu.time",
        "process.cpu.time",
        "process.runtime.python.gc.cpu.time",
    ]
    assert [dict(o.attributes) for o in obs] == [
        {},
        {"state": "user"},
        {"state": "system"},
        {},
    ]
    assert [o.value for o in obs[1:]] == [2.0, 3.0, 0.5]


def test_instruments():
    c = CPUTime()
    kinds = {i.name: (i.kind, i.unit) for i in c.instruments()}
    assert kinds == {
        "process.cpu.time": (InstrumentKind.ASYNC_COUNTER, "s"),
        "process.uptime": (InstrumentKind.ASYNC_UP_DOWN_COUNTER, "s"),
        "process.runtime.python.gc.cpu.time": (InstrumentKind.ASYNC_UP_DOWN_COUNTER, "s"),
    }


def test_construction_fails_when_source_fails():
    def broken():
        raise OSError("no such process")

    with pytest.raises(OSError):
        CPUTime(times=broken)


def test_read_error_gives_nan():
    calls = {"n": 0}

    def flaky():
        calls["n"] += 1
        if calls["n"] > 1:
            raise OSError("gone")
        return SimpleNamespace(user=1.0, system=1.0)

    c = CPUTime(times=flaky, gc_time=lambda: 0.0)
    result = c.process_times()
    assert isinstance(result, ProcessTimes)
    assert math.isnan(result.user)
    assert math.isnan(result.system)
    assert result.gc == 0.0