# lsotel

Metric instrumentation for a running Python process and the host it runs
on. Each reporter describes its instruments and, when asked, returns a list
of observations.

## Instruments and observations

`lsotel.runtime.Instrument` describes an asynchronous instrument: its
`name`, its `kind` (an `InstrumentKind`), its `value_type` (`int` or
`float`), its `unit` and its `description`. `lsotel.runtime.Observation`
holds one `value` for an `instrument`, together with its `attributes` as a
dict of strings.

## Reporters

### Process CPU time

`lsotel.cputime.CPUTime` reports:

    process.cpu.time                    state=user|system   (s, counter)
    process.uptime                                          (s, up-down counter)
    process.runtime.python.gc.cpu.time                      (s, up-down counter)

```python
from lsotel.cputime import CPUTime

reporter = CPUTime()
for obs in reporter.collect():
    print(obs.instrument.name, obs.attributes, obs.value)
```

`process_times()` returns a `ProcessTimes` with `user`, `system`, `gc` and
`uptime` seconds. User and system time come from `os.times` by default. If
they cannot be read, they are NaN and the error is logged. Construction
raises `OSError` when the CPU time source cannot be read at all. Uptime is
counted from `PROCESS_START_TIME`, which is taken when the module is first
imported. Garbage-collection time is the thread CPU time spent between the
start and stop callbacks of each collection. The callback is installed in
`gc.callbacks` the first time a `CPUTime` is built with no `gc_time`
argument.

You can pass other sources: `times` (anything returning an object with
`user` and `system`), `start_time` (seconds since the epoch) and `gc_time`.

### Host

`lsotel.host.HostMetrics` reads its values through psutil and reports:

    system.cpu.time            state=user|system|other|idle   (s, counter)
    system.memory.usage        state=used|available           (By, up-down counter)
    system.memory.utilization  state=used|available           (gauge)
    system.network.io          direction=transmit|receive     (By, counter)

"other" is the sum of the nice, iowait, irq, softirq, steal, guest and
guest_nice CPU times, counting only the states the platform reports.
Utilization is the used or available memory divided by the total. If a
source fails, `collect()` logs the error and returns an empty list. You can
replace the `cpu_times`, `virtual_memory` and `net_io_counters` callables.

### Runtime

`lsotel.runtime.BuiltinRuntime` turns a catalogue of named metrics into
instruments. Each source name looks like `/gc/heap/allocs:bytes` and is
reported as `<prefix>.gc.heap.allocs`. The default prefix is
`process.runtime.python`. The unit is `bytes` or `seconds` as stated, or
`{unit}` for anything else. Integer metrics become counters, or up-down
counters when they are not cumulative. Float metrics become counters or
gauges. Histogram-valued metrics are skipped.

Two naming rules apply:

1. If two metrics share a path, one stated in objects and one in bytes, the
   objects metric gets an `.objects` suffix and the `{objects}` unit. The
   bytes metric keeps the bare name. Any other duplicate raises
   `ValueError`.
2. If a group of metrics has a `.total` member, the total is skipped. The
   other members become one instrument with a `cycle` or `class` attribute
   that tells them apart. See `totalized_attribute_name` and
   `totalized_metric_name`.

By default, the source describes the interpreter. It reports garbage
collections per generation, grouped into `process.runtime.python.gc.cycles`
with a `cycle` attribute. It also reports the counts of collected and
uncollectable objects and the number of live threads.

```python
from lsotel.runtime import BuiltinRuntime

rt = BuiltinRuntime()
instruments = rt.register()
observations = rt.collect()
```

`register()` must be called before `collect()`, or `collect()` raises
`RuntimeError`. To supply your own metrics, pass `all_func` (returning
`MetricDescription` items, each with a `ValueKind`) and `read_func`
(taking a sequence of source names and returning their values in order).

## Aggregation kinds

`lsotel.aggregation` defines the `InstrumentKind`, `Kind`, `Category` and
`Temporality` enumerations.

- `Kind.category(instrument_kind)` gives the semantic category of a kind.
  For `Kind.ANY_SUM`, the category depends on the instrument: monotonic for
  counters and histograms, non-monotonic for up-down counters.
- `parse_kind(text)` maps a name to a `Kind`, ignoring case. The accepted
  names are `drop`, `sum`, `monotonic_sum`, `nonmonotonic_sum`, `gauge`,
  `histogram`, `exponential_histogram` and `minmaxsumcount`. Any other name
  raises `ValueError`.

## What this package does not do

The reporters only return observations. Nothing in the package aggregates
observations over time, keeps sums or last values, or sends data to a
collector or backend. That work is left to whatever pipeline calls
`collect()`.

## Tests

```
pip install -e .[test]
pytest
```