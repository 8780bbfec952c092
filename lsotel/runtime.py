"""Runtime metrics built from a flat catalogue of named samples.

Each source metric is named like ``/gc/heap/allocs:bytes``: a path and a
unit.  Two policies shape the output:

1. When two metrics share a path but differ in units, the only known
   case is "objects" and "bytes".  The objects metric gets an
   ``.objects`` suffix and ``{objects}`` unit; the bytes metric keeps
   the bare name.
2. When several metrics share a prefix and one of them is
   ``prefix.total``, the total is skipped and the others become one
   instrument with an attribute telling them apart.  The supported
   attributes are ``class`` and ``cycle``.

Histogram-valued metrics are not reported.
"""

from __future__ import annotations

import enum
import gc
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from .aggregation import InstrumentKind

logger = logging.getLogger(__name__)

LIBRARY_NAME = "lsotel/runtime"
DEFAULT_PREFIX = "process.runtime.python"


class ValueKind(enum.Enum):
    """The kind of value a source metric produces."""

    BAD = 0
    UINT64 = 1
    FLOAT64 = 2
    FLOAT64_HISTOGRAM = 3


@dataclass(frozen=True)
class MetricDescription:
    """One metric offered by a runtime metric source."""

    name: str
    description: str
    kind: ValueKind
    cumulative: bool


@dataclass(frozen=True)
class Instrument:
    """An asynchronous instrument that observations are reported against."""

    name: str
    kind: InstrumentKind
    value_type: type
    unit: str = ""
    description: str = ""


@dataclass(frozen=True)
class Observation:
    """One value observed for an instrument, with its attributes."""

    instrument: Instrument
    value: int | float
    attributes: Mapping[str, str] = field(default_factory=dict)


def totalized_attribute_name(name: str) -> str:
    """Return the attribute name for a totalized metric name.

    Raises ValueError for a name that is not a known plural.
    """
    last = name.split(".")[-1]
    if last == "cycles":
        return "cycle"
    if last == "usage":
        return "class"
    raise ValueError(f"unrecognized attribute name: {name}")


def totalized_metric_name(name: str, unit: str) -> str:
    """Return the output metric name for a totalized prefix ``name``.

    A ``.classes`` suffix becomes ``.usage`` for bytes and ``.time`` for
    cpu-seconds; other names are returned unchanged.
    """
    if not name.endswith(".classes"):
        return name
    stem = name[: -len("classes")]
    if unit == "bytes":
        return stem + "usage"
    if unit == "cpu-seconds":
        return stem + "time"
    raise ValueError("unrecognized metric suffix")


@dataclass(frozen=True)
class _Entry:
    source_name: str
    instrument: Instrument
    attributes: Mapping[str, str]


_PYTHON_METRICS = (
    MetricDescription(
        "/gc/cycles/gen0:gc-cycles",
        "Count of generation 0 garbage collections",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/gc/cycles/gen1:gc-cycles",
        "Count of generation 1 garbage collections",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/gc/cycles/gen2:gc-cycles",
        "Count of generation 2 garbage collections",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/gc/cycles/total:gc-cycles",
        "Count of all garbage collections",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/gc/collected:objects",
        "Count of objects collected by the garbage collector",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/gc/uncollectable:objects",
        "Count of objects found uncollectable by the garbage collector",
        ValueKind.UINT64,
        True,
    ),
    MetricDescription(
        "/sched/threads:threads",
        "Count of live threads",
        ValueKind.UINT64,
        False,
    ),
)


def _python_all() -> list[MetricDescription]:
    return list(_PYTHON_METRICS)


def _python_read(names: Sequence[str]) -> list[int]:
    stats = gc.get_stats()
    values = {
        "/gc/cycles/total:gc-cycles": sum(s["collections"] for s in stats),
        "/gc/collected:objects": sum(s["collected"] for s in stats),
        "/gc/uncollectable:objects": sum(s["uncollectable"] for s in stats),
        "/sched/threads:threads": threading.active_count(),
    }
    for generation, stat in enumerate(stats):
        values[f"/gc/cycles/gen{generation}:gc-cycles"] = stat["collections"]
    return [values[name] for name in names]


class BuiltinRuntime:
    """Turns a runtime metric source into instruments and observations.

    ``all_func`` lists the available metrics; ``read_func`` takes a
    sequence of source names and returns their current values in order.
    Both default to a source describing the Python interpreter.
    """

    def __init__(
        self,
        all_func: Callable[[], Iterable[MetricDescription]] | None = None,
        read_func: Callable[[Sequence[str]], Sequence[Any]] | None = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self._all_func = all_func or _python_all
        self._read_func = read_func or _python_read
        self._prefix = prefix
        self._entries: list[_Entry] | None = None
        self._lock = threading.Lock()

    def _to_name(self, source_name: str) -> tuple[str, str]:
        path, _, units = source_name.partition(":")
        return self._prefix + path.replace("/", "."), units

    def register(self) -> list[Instrument]:
        """Build the instruments for the source's metrics and return them."""
        descriptions = list(self._all_func())
        totals: set[str] = set()
        counts: Counter[str] = Counter()
        for desc in descriptions:
            name, _ = self._to_name(desc.name)
            if name.endswith(".total"):
                totals.add(name[: -len("total")])
            counts[name] += 1

        entries: list[_Entry] = []
        for desc in descriptions:
            name, stated_units = self._to_name(desc.name)
            if name.endswith(".total"):
                continue

            unit = stated_units if stated_units in ("bytes", "seconds") else f"{{{stated_units}}}"

            total_attr_value = ""
            for total_prefix in sorted(totals):
                if name.startswith(total_prefix):
                    total_attr_value = name[len(total_prefix):]
                    name = totalized_metric_name(total_prefix[:-1], unit)
                    break

            if counts[name] > 1:
                if total_attr_value:
                    raise ValueError("special case collision")
                if stated_units == "objects":
                    name += ".objects"
                    unit = "{objects}"
                elif stated_units != "bytes":
                    raise ValueError(
                        f"unrecognized duplicate metrics names, attention required: {name}"
                    )

            instrument_kind, value_type = _instrument_choice(desc)
            if instrument_kind is None:
                continue

            attributes = (
                {totalized_attribute_name(name): total_attr_value} if total_attr_value else {}
            )
            instrument = Instrument(name, instrument_kind, value_type, unit, desc.description)
            entries.append(_Entry(desc.name, instrument, attributes))

        with self._lock:
            self._entries = entries
        return list(dict.fromkeys(entry.instrument for entry in entries))

    def collect(self) -> list[Observation]:
        """Read the source once and return an observation per registered metric."""
        with self._lock:
            entries = self._entries
        if entries is None:
            raise RuntimeError("register() must be called before collect()")

        values = self._read_func([entry.source_name for entry in entries])
        observations = []
        for entry, value in zip(entries, values):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.error("invalid runtime metrics value kind: %r", value)
                continue
            observations.append(
                Observation(
                    entry.instrument,
                    entry.instrument.value_type(value),
                    dict(entry.attributes),
                )
            )
        return observations


def _instrument_choice(desc: MetricDescription) -> tuple[InstrumentKind | None, type]:
    if desc.kind is ValueKind.UINT64:
        if desc.cumulative:
            return InstrumentKind.ASYNC_COUNTER, int
        return InstrumentKind.ASYNC_UP_DOWN_COUNTER, int
    if desc.kind is ValueKind.FLOAT64:
        if desc.cumulative:
            return InstrumentKind.ASYNC_COUNTER, float
        return InstrumentKind.ASYNC_GAUGE, float
    return None, float