"""mbench JSON API — dict-in, dict-out interface to the benchmark pipeline."""

from mbench.api.dispatch import dispatch

__all__ = ["dispatch"]
