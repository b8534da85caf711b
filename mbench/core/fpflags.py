"""Floating-point exception flags — sticky register, captures and canonical labels.

The process-wide ``FlagRegister`` plays the role of the FPU status word. It is
fed by numpy's floating-point error reporting: every ufunc loop run inside
``recording()`` reports the status bits it raised (divide-by-zero, overflow,
underflow, invalid) and they are OR-ed into the register, where they stay until
explicitly cleared. numpy never reports *inexact*; that flag only appears when
raised with ``FlagRegister.raise_flags``.

Callers never touch the register directly. ``ExceptionTracker`` hands out
``FlagCapture`` snapshots and does all mutation of the live register inside
clear-then-capture or restore-then-test steps.

Usage:
    tracker = ExceptionTracker()
    tracker.clear()
    with recording(get_register()):
        np.log(np.zeros(4))
    capture = tracker.store(FE_ALL_EXCEPT & ~FPFlag.INEXACT)
    tracker.to_canonical_string(capture)   # "divide-by-zero"
"""

from __future__ import annotations

import functools
import itertools
import operator
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import IntFlag
from typing import Iterator

import numpy as np


# ---------------------------------------------------------------------------
# Flag vocabularies
# ---------------------------------------------------------------------------

class FPFlag(IntFlag):
    DIVBYZERO = 1
    INEXACT = 2
    INVALID = 4
    OVERFLOW = 8
    UNDERFLOW = 16


class MPFRFlag(IntFlag):
    DIVBYZERO = 1
    INEXACT = 2
    INVALID = 4  # MPFR "NaN" flag
    OVERFLOW = 8
    UNDERFLOW = 16
    RANGE = 32


FE_ALL_EXCEPT = FPFlag(31)
MPFR_ALL_FLAGS = MPFRFlag(63)

# Canonical priority order, also the order of names inside compound labels.
FP_ORDER: tuple[FPFlag, ...] = (
    FPFlag.DIVBYZERO, FPFlag.INEXACT, FPFlag.INVALID, FPFlag.OVERFLOW, FPFlag.UNDERFLOW,
)
MPFR_ORDER: tuple[MPFRFlag, ...] = (
    MPFRFlag.DIVBYZERO, MPFRFlag.INEXACT, MPFRFlag.INVALID,
    MPFRFlag.OVERFLOW, MPFRFlag.UNDERFLOW, MPFRFlag.RANGE,
)

FLAG_NAMES: dict[str, str] = {
    "DIVBYZERO": "divide-by-zero",
    "INEXACT": "inexact",
    "INVALID": "invalid",
    "OVERFLOW": "overflow",
    "UNDERFLOW": "underflow",
    "RANGE": "range",
}


def flag_name(flag: FPFlag | MPFRFlag) -> str:
    return FLAG_NAMES[flag.name]


def parse_flags(names: list[str], *, mpfr: bool = False) -> FPFlag | MPFRFlag:
    """Build a flag set from label names such as ``["invalid", "overflow"]``."""
    cls = MPFRFlag if mpfr else FPFlag
    by_label = {label: key for key, label in FLAG_NAMES.items()}
    flags = cls(0)
    for name in names:
        key = by_label.get(name)
        if key is None or key not in cls.__members__:
            raise ValueError(f"Unknown exception flag: {name!r}")
        flags |= cls[key]
    return flags


# ---------------------------------------------------------------------------
# Classification rules
# ---------------------------------------------------------------------------

def _build_rules(order: tuple) -> tuple[tuple[int, str], ...]:
    """Ordered (mask, label) rules: every single flag, then pairs, triples, ..."""
    rules: list[tuple[int, str]] = []
    for k in range(1, len(order) + 1):
        for combo in itertools.combinations(order, k):
            mask = functools.reduce(operator.or_, combo)
            rules.append((int(mask), ",".join(flag_name(f) for f in combo)))
    return tuple(rules)


FP_RULES = _build_rules(FP_ORDER)
MPFR_RULES = _build_rules(MPFR_ORDER)


def _first_match(flags: int, rules: tuple[tuple[int, str], ...], conjunctive: bool) -> str:
    # Single-flag rules come first, so a compound rule never gets to match.
    for mask, label in rules:
        hit = (flags & mask) == mask if conjunctive else (flags & mask) != 0
        if hit:
            return label
    return "none"


def fp_label(flags: FPFlag) -> str:
    """Priority label of hardware flags (disjunctive membership test)."""
    return _first_match(int(flags), FP_RULES, conjunctive=False)


def mpfr_label(flags: MPFRFlag) -> str:
    """Priority label of MPFR flags (conjunctive membership test)."""
    return _first_match(int(flags), MPFR_RULES, conjunctive=True)


def full_label(flags: FPFlag | MPFRFlag) -> str:
    """Every set flag, comma-joined in canonical order."""
    order = MPFR_ORDER if isinstance(flags, MPFRFlag) else FP_ORDER
    names = [flag_name(f) for f in order if flags & f]
    return ",".join(names) if names else "none"


# ---------------------------------------------------------------------------
# FlagRegister — process-wide sticky flags
# ---------------------------------------------------------------------------

class FlagRegister:
    """Sticky exception flags shared by every thread of the process."""

    def __init__(self) -> None:
        self._flags = FPFlag(0)
        self._lock = threading.Lock()

    def clear(self, mask: FPFlag = FE_ALL_EXCEPT) -> None:
        with self._lock:
            self._flags &= ~mask

    def raise_flags(self, flags: FPFlag) -> None:
        with self._lock:
            self._flags |= flags & FE_ALL_EXCEPT

    def get(self, mask: FPFlag = FE_ALL_EXCEPT) -> FPFlag:
        with self._lock:
            return FPFlag(self._flags & mask)

    def set(self, flags: FPFlag, mask: FPFlag = FE_ALL_EXCEPT) -> None:
        """Set the bits under ``mask`` to their values in ``flags``."""
        with self._lock:
            self._flags = FPFlag((self._flags & ~mask) | (flags & mask))

    def test(self, mask: FPFlag = FE_ALL_EXCEPT) -> bool:
        return bool(self.get(mask))


_register = FlagRegister()


def get_register() -> FlagRegister:
    """Return the process-wide flag register."""
    return _register


# ---------------------------------------------------------------------------
# numpy error reporting → flags
# ---------------------------------------------------------------------------

# numpy's floating-point status bits (UFUNC_FPE_*).
_NUMPY_STATUS: tuple[tuple[int, FPFlag], ...] = (
    (1, FPFlag.DIVBYZERO),
    (2, FPFlag.OVERFLOW),
    (4, FPFlag.UNDERFLOW),
    (8, FPFlag.INVALID),
)


def from_numpy_status(status: int) -> FPFlag:
    flags = FPFlag(0)
    for bit, flag in _NUMPY_STATUS:
        if status & bit:
            flags |= flag
    return flags


class FlagSink:
    """``numpy.errstate`` callback collecting the flags raised in this thread."""

    def __init__(self) -> None:
        self.flags = FPFlag(0)

    def __call__(self, errtype: str, status: int) -> None:
        self.flags |= from_numpy_status(status)

    def raise_flags(self, flags: FPFlag) -> None:
        self.flags |= flags & FE_ALL_EXCEPT


@contextmanager
def recording(register: FlagRegister | None = None) -> Iterator[FlagSink]:
    """Collect ufunc floating-point errors raised in the current thread.

    numpy error state is per thread, so every worker enters its own block.
    On exit the collected flags are OR-ed into ``register`` (if given).
    """
    sink = FlagSink()
    try:
        with np.errstate(all="call", call=sink):
            yield sink
    finally:
        if register is not None:
            register.raise_flags(sink.flags)


# ---------------------------------------------------------------------------
# FlagCapture / ExceptionTracker
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FlagCapture:
    """Value snapshot of the register restricted to ``mask``."""

    flags: FPFlag = FPFlag(0)
    mask: FPFlag = FE_ALL_EXCEPT
    enabled: bool = True

    def __str__(self) -> str:
        if not self.enabled:
            return "disabled"
        return fp_label(self.flags)


class ExceptionTracker:
    """Capture, restore and classify the sticky floating-point flags.

    A disabled tracker models a platform without exception tracking: every
    operation is a no-op, ``test`` is always False and every label is
    ``"disabled"``.
    """

    def __init__(self, enabled: bool = True, register: FlagRegister | None = None) -> None:
        self.enabled = enabled
        self.register = register or get_register()

    def clear(self) -> FlagCapture:
        if not self.enabled:
            return FlagCapture(enabled=False)
        self.register.clear(FE_ALL_EXCEPT)
        return FlagCapture(flags=self.register.get(FE_ALL_EXCEPT))

    def store(self, mask: FPFlag = FE_ALL_EXCEPT) -> FlagCapture:
        if not self.enabled:
            return FlagCapture(mask=mask, enabled=False)
        return FlagCapture(flags=self.register.get(mask), mask=mask)

    def restore(self, capture: FlagCapture, mask: FPFlag = FE_ALL_EXCEPT) -> None:
        if not self.enabled or not capture.enabled:
            return
        self.register.set(capture.flags, mask)

    def test(self, capture: FlagCapture, mask: FPFlag = FE_ALL_EXCEPT) -> bool:
        if not self.enabled or not capture.enabled:
            return False
        self.register.clear(FE_ALL_EXCEPT)
        self.register.set(capture.flags, mask)
        return self.register.test(mask)

    def to_canonical_string(self, capture: FlagCapture, *, full: bool = False) -> str:
        if not self.enabled or not capture.enabled:
            return "disabled"
        self.restore(capture)
        flags = self.register.get(FE_ALL_EXCEPT)
        return full_label(flags) if full else fp_label(flags)
