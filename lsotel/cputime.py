"""Process CPU time metrics, as observed by the process itself.

Metrics produced, with attribute dimensions:

    process.cpu.time                   state=user|system
    process.uptime
    process.runtime.python.gc.cpu.time

User and system time together make up all of the process's CPU time.
Garbage-collection time is a separate value of the same kind, so
``process.runtime.python.gc.cpu.time <= sum(process.cpu.time)``.
"""

from __future__ import annotations

import gc
import logging
import math
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from .aggregation import InstrumentKind
from .runtime import Instrument, Observation

logger = logging.getLogger(__name__)

METER_NAME = "lsotel/cputime"

# Taken when this module is first imported, ideally before the first collection.
PROCESS_START_TIME = time.time()

ATTRIBUTE_CPU_TIME_USER = {"state": "user"}
ATTRIBUTE_CPU_TIME_SYSTEM = {"state": "system"}

PROCESS_CPU_TIME = Instrument(
    "process.cpu.time",
    InstrumentKind.ASYNC_COUNTER,
    float,
    "s",
    "Accumulated CPU time spent by this process attributed by state (User, System, ...)",
)
PROCESS_UPTIME = Instrument(
    "process.uptime",
    InstrumentKind.ASYNC_UP_DOWN_COUNTER,
    float,
    "s",
    "Seconds since application was initialized",
)
PROCESS_GC_CPU_TIME = Instrument(
    "process.runtime.python.gc.cpu.time",
    InstrumentKind.ASYNC_UP_DOWN_COUNTER,
    float,
    "s",
    "Seconds of garbage collection since application was initialized",
)


class _GCTimer:
    """Accumulates the CPU time spent inside garbage collections.

    Collections never run concurrently, and each one starts and stops on
    the same thread, so thread CPU time measures it exactly.
    """

    def __init__(self) -> None:
        self.total = 0.0
        self._start: float | None = None
        self._installed = False
        self._install_lock = threading.Lock()

    def install(self) -> None:
        with self._install_lock:
            if not self._installed:
                gc.callbacks.append(self._callback)
                self._installed = True

    def _callback(self, phase: str, info: dict) -> None:
        if phase == "start":
            self._start = time.thread_time()
        elif phase == "stop" and self._start is not None:
            self.total += time.thread_time() - self._start
            self._start = None


_gc_timer = _GCTimer()


@dataclass(frozen=True)
class ProcessTimes:
    """CPU, garbage-collection and wall-clock seconds for this process."""

    user: float
    system: float
    gc: float
    uptime: float


class CPUTime:
    """Reports process CPU time, uptime and garbage-collection time.

    ``times`` returns an object with ``user`` and ``system`` seconds and
    defaults to ``os.times``; ``start_time`` is the process start as
    seconds since the epoch.  Construction fails with OSError when the
    CPU time source cannot be read.
    """

    def __init__(
        self,
        times: Callable[[], Any] | None = None,
        start_time: float | None = None,
        gc_time: Callable[[], float] | None = None,
    ) -> None:
        self._times = times or os.times
        self._start_time = PROCESS_START_TIME if start_time is None else start_time
        if gc_time is None:
            _gc_timer.install()
            gc_time = lambda: _gc_timer.total  # noqa: E731
        self._gc_time = gc_time
        self.meter_name = METER_NAME
        try:
            self._times()
        except OSError as err:
            raise OSError(f"cannot read process CPU times: {err}") from err

    def process_times(self) -> ProcessTimes:
        """Return current process times; user and system are NaN on a read error."""
        uptime = time.time() - self._start_time
        gc_seconds = float(self._gc_time())
        try:
            times = self._times()
        except OSError as err:
            logger.error("could not read process CPU times: %s", err)
            return ProcessTimes(math.nan, math.nan, gc_seconds, uptime)
        return ProcessTimes(float(times.user), float(times.system), gc_seconds, uptime)

    def instruments(self) -> list[Instrument]:
        """Return the instruments this reporter observes."""
        return [PROCESS_CPU_TIME, PROCESS_UPTIME, PROCESS_GC_CPU_TIME]

    def collect(self) -> list[Observation]:
        """Return one round of observations."""
        current = self.process_times()
        return [
            Observation(PROCESS_UPTIME, current.uptime, {}),
            Observation(PROCESS_CPU_TIME, current.user, dict(ATTRIBUTE_CPU_TIME_USER)),
            Observation(PROCESS_CPU_TIME, current.system, dict(ATTRIBUTE_CPU_TIME_SYSTEM)),
            Observation(PROCESS_GC_CPU_TIME, current.gc, {}),
        ]