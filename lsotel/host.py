"""Conventional host metrics, observed without an agent.

Metrics produced, with attribute dimensions:

    system.cpu.time            state=user|system|other|idle
    system.memory.usage        state=used|available
    system.memory.utilization  state=used|available
    system.network.io          direction=transmit|receive
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import psutil

from .aggregation import InstrumentKind
from .runtime import Instrument, Observation

logger = logging.getLogger(__name__)

ATTRIBUTE_CPU_TIME_USER = {"state": "user"}
ATTRIBUTE_CPU_TIME_SYSTEM = {"state": "system"}
ATTRIBUTE_CPU_TIME_OTHER = {"state": "other"}
ATTRIBUTE_CPU_TIME_IDLE = {"state": "idle"}

ATTRIBUTE_MEMORY_AVAILABLE = {"state": "available"}
ATTRIBUTE_MEMORY_USED = {"state": "used"}

ATTRIBUTE_NETWORK_TRANSMIT = {"direction": "transmit"}
ATTRIBUTE_NETWORK_RECEIVE = {"direction": "receive"}

_OTHER_CPU_STATES = ("nice", "iowait", "irq", "softirq", "steal", "guest", "guest_nice")

CPU_TIME = Instrument(
    "system.cpu.time",
    InstrumentKind.ASYNC_COUNTER,
    float,
    "s",
    "Accumulated CPU time spent by this process host attributed by state "
    "(User, System, Other, Idle)",
)
MEMORY_USAGE = Instrument(
    "system.memory.usage",
    InstrumentKind.ASYNC_UP_DOWN_COUNTER,
    int,
    "By",
    "Memory usage of this process host attributed by memory state (Used, Available)",
)
MEMORY_UTILIZATION = Instrument(
    "system.memory.utilization",
    InstrumentKind.ASYNC_GAUGE,
    float,
    "",
    "Memory utilization of this process host attributed by memory state (Used, Available)",
)
NETWORK_IO = Instrument(
    "system.network.io",
    InstrumentKind.ASYNC_COUNTER,
    int,
    "By",
    "Bytes transferred attributed by direction (Transmit, Receive)",
)


class HostMetrics:
    """Observes host CPU, memory and network totals.

    The data sources default to psutil and may be replaced, for example
    to observe a recorded snapshot.
    """

    def __init__(
        self,
        cpu_times: Callable[[], Any] | None = None,
        virtual_memory: Callable[[], Any] | None = None,
        net_io_counters: Callable[[], Any] | None = None,
    ) -> None:
        self._cpu_times = cpu_times or (lambda: psutil.cpu_times(percpu=False))
        self._virtual_memory = virtual_memory or psutil.virtual_memory
        self._net_io_counters = net_io_counters or (lambda: psutil.net_io_counters(pernic=False))
        self._lock = threading.Lock()

    def instruments(self) -> list[Instrument]:
        """Return the instruments this reporter observes."""
        return [CPU_TIME, MEMORY_USAGE, MEMORY_UTILIZATION, NETWORK_IO]

    def collect(self) -> list[Observation]:
        """Return one round of observations; on a source error, log it and return none."""
        with self._lock:
            try:
                host_time = self._cpu_times()
                vm_stats = self._virtual_memory()
                io_stats = self._net_io_counters()
            except (OSError, RuntimeError, psutil.Error) as err:
                logger.error("host metrics: %s", err)
                return []
            if host_time is None:
                logger.error("host CPU usage: incorrect summary count")
                return []
            if io_stats is None:
                logger.error("host network usage: incorrect summary count")
                return []

            other = sum(getattr(host_time, state, 0.0) for state in _OTHER_CPU_STATES)
            total = float(vm_stats.total)

            return [
                Observation(CPU_TIME, float(host_time.user), dict(ATTRIBUTE_CPU_TIME_USER)),
                Observation(CPU_TIME, float(host_time.system), dict(ATTRIBUTE_CPU_TIME_SYSTEM)),
                Observation(CPU_TIME, float(other), dict(ATTRIBUTE_CPU_TIME_OTHER)),
                Observation(CPU_TIME, float(host_time.idle), dict(ATTRIBUTE_CPU_TIME_IDLE)),
                Observation(MEMORY_USAGE, int(vm_stats.used), dict(ATTRIBUTE_MEMORY_USED)),
                Observation(
                    MEMORY_USAGE, int(vm_stats.available), dict(ATTRIBUTE_MEMORY_AVAILABLE)
                ),
                Observation(
                    MEMORY_UTILIZATION, vm_stats.used / total, dict(ATTRIBUTE_MEMORY_USED)
                ),
                Observation(
                    MEMORY_UTILIZATION,
                    vm_stats.available / total,
                    dict(ATTRIBUTE_MEMORY_AVAILABLE),
                ),
                Observation(
                    NETWORK_IO, int(io_stats.bytes_sent), dict(ATTRIBUTE_NETWORK_TRANSMIT)
                ),
                Observation(
                    NETWORK_IO, int(io_stats.bytes_recv), dict(ATTRIBUTE_NETWORK_RECEIVE)
                ),
            ]