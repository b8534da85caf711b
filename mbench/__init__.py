"""mbench: throughput and accuracy benchmarks for elementary math functions."""

__version__ = "0.1.0"
