"""Aggregation kinds, categories and temporality for metric data."""

from __future__ import annotations

import enum


class InstrumentKind(enum.IntEnum):
    """The kinds of metric instrument an SDK can create."""

    SYNC_COUNTER = 0
    SYNC_UP_DOWN_COUNTER = 1
    SYNC_HISTOGRAM = 2
    ASYNC_COUNTER = 3
    ASYNC_UP_DOWN_COUNTER = 4
    ASYNC_GAUGE = 5


class Category(enum.IntEnum):
    """Semantic kind of an aggregation.

    The histogram category has several implementations; use Kind to
    tell them apart, and to recognise Drop.
    """

    UNDEFINED = 0
    MONOTONIC_SUM = 1
    NON_MONOTONIC_SUM = 2
    GAUGE = 3
    HISTOGRAM = 4


class Kind(enum.IntEnum):
    """A specific aggregation behaviour."""

    UNDEFINED = 0
    DROP = 1
    ANY_SUM = 2
    MONOTONIC_SUM = 3
    NON_MONOTONIC_SUM = 4
    GAUGE = 5
    HISTOGRAM = 6
    MIN_MAX_SUM_COUNT = 7

    def category(self, instrument_kind: InstrumentKind) -> Category:
        """Return the semantic category of this kind for an instrument kind."""
        if self is Kind.ANY_SUM:
            if instrument_kind in _MONOTONIC_INSTRUMENTS:
                return Category.MONOTONIC_SUM
            if instrument_kind in _NON_MONOTONIC_INSTRUMENTS:
                return Category.NON_MONOTONIC_SUM
            return Category.UNDEFINED
        return _FIXED_CATEGORIES.get(self, Category.UNDEFINED)

    def valid(self) -> bool:
        """Return True when this is one of the enumerated kinds."""
        return self in _ALL_KINDS


class Temporality(enum.IntEnum):
    """How an exporter expects aggregations to be reported over time."""

    UNDEFINED = 0
    CUMULATIVE = 1
    DELTA = 2

    def valid(self) -> bool:
        """Return True when this is one of the enumerated temporalities."""
        return self in (Temporality.UNDEFINED, Temporality.DELTA, Temporality.CUMULATIVE)


_MONOTONIC_INSTRUMENTS = frozenset(
    {
        InstrumentKind.SYNC_HISTOGRAM,
        InstrumentKind.SYNC_COUNTER,
        InstrumentKind.ASYNC_COUNTER,
    }
)

_NON_MONOTONIC_INSTRUMENTS = frozenset(
    {
        InstrumentKind.SYNC_UP_DOWN_COUNTER,
        InstrumentKind.ASYNC_UP_DOWN_COUNTER,
    }
)

_FIXED_CATEGORIES = {
    Kind.MONOTONIC_SUM: Category.MONOTONIC_SUM,
    Kind.NON_MONOTONIC_SUM: Category.NON_MONOTONIC_SUM,
    Kind.GAUGE: Category.GAUGE,
    Kind.HISTOGRAM: Category.HISTOGRAM,
    Kind.MIN_MAX_SUM_COUNT: Category.HISTOGRAM,
}

_ALL_KINDS = frozenset(Kind)

_KIND_NAMES = {
    "drop": Kind.DROP,
    "sum": Kind.ANY_SUM,
    "monotonic_sum": Kind.MONOTONIC_SUM,
    "nonmonotonic_sum": Kind.NON_MONOTONIC_SUM,
    "gauge": Kind.GAUGE,
    "histogram": Kind.HISTOGRAM,
    "exponential_histogram": Kind.HISTOGRAM,
    "minmaxsumcount": Kind.MIN_MAX_SUM_COUNT,
}


def parse_kind(text: str) -> Kind:
    """Return the aggregation kind named by ``text``, ignoring case.

    Raises ValueError when the name is not a known aggregation kind.
    """
    try:
        return _KIND_NAMES[text.lower()]
    except KeyError:
        raise ValueError(f"unrecognized aggregation kind: {text!r}") from None