"""Process, host and runtime metric instrumentation, with aggregation kinds."""

__version__ = "1.11.1"