"""Tests for mbench.core.fpflags — flag register, tracker and canonical labels."""

import threading

import numpy as np
import pytest

import mbench.core
from mbench.core import fpflags
from mbench.core.fpflags import (
    FE_ALL_EXCEPT,
    FP_RULES,
    MPFR_RULES,
    ExceptionTracker,
    FlagCapture,
    FlagRegister,
    FPFlag,
    MPFRFlag,
    fp_label,
    from_numpy_status,
    full_label,
    mpfr_label,
    parse_flags,
    recording,
)


@pytest.fixture
def tracker():
    return ExceptionTracker(register=FlagRegister())


# ═══════════════════════════════════════════════════════════════════════════
# FlagRegister
# ═══════════════════════════════════════════════════════════════════════════

class TestFlagRegister:
    def test_sticky(self):
        reg = FlagRegister()
        reg.raise_flags(FPFlag.OVERFLOW)
        reg.raise_flags(FPFlag.INEXACT)
        assert reg.get() == FPFlag.OVERFLOW | FPFlag.INEXACT

    def test_clear_mask(self):
        reg = FlagRegister()
        reg.raise_flags(FPFlag.OVERFLOW | FPFlag.INVALID)
        reg.clear(FPFlag.OVERFLOW)
        assert reg.get() == FPFlag.INVALID

    def test_set_under_mask(self):
        reg = FlagRegister()
        reg.raise_flags(FPFlag.UNDERFLOW)
        reg.set(FPFlag.INVALID, FPFlag.INVALID | FPFlag.OVERFLOW)
        assert reg.get() == FPFlag.UNDERFLOW | FPFlag.INVALID

    def test_test(self):
        reg = FlagRegister()
        assert not reg.test()
        reg.raise_flags(FPFlag.DIVBYZERO)
        assert reg.test(FPFlag.DIVBYZERO)
        assert not reg.test(FPFlag.INVALID)

    def test_single_all_exceptions_mask(self):
        every = FPFlag.DIVBYZERO | FPFlag.INEXACT | FPFlag.INVALID | FPFlag.OVERFLOW | FPFlag.UNDERFLOW
        assert FE_ALL_EXCEPT == every
        assert not hasattr(fpflags, "ALL_EXCEPT")
        assert "ALL_EXCEPT" not in mbench.core.__all__


# ═══════════════════════════════════════════════════════════════════════════
# numpy error reporting
# ═══════════════════════════════════════════════════════════════════════════

class TestRecording:
    def test_status_bits(self):
        assert from_numpy_status(0) == FPFlag(0)
        assert from_numpy_status(1 | 8) == FPFlag.DIVBYZERO | FPFlag.INVALID
        assert from_numpy_status(2 | 4) == FPFlag.OVERFLOW | FPFlag.UNDERFLOW

    def test_divide_by_zero(self):
        reg = FlagRegister()
        with recording(reg) as sink:
            np.log(np.zeros(4))
        assert sink.flags == FPFlag.DIVBYZERO
        assert reg.get() == FPFlag.DIVBYZERO

    def test_invalid(self):
        reg = FlagRegister()
        with recording(reg):
            np.sqrt(np.array([-1.0]))
        assert reg.get() & FPFlag.INVALID

    def test_overflow(self):
        reg = FlagRegister()
        with recording(reg):
            np.exp(np.array([1000.0]))
        assert reg.get() & FPFlag.OVERFLOW

    def test_clean_operation(self):
        reg = FlagRegister()
        with recording(reg) as sink:
            np.sqrt(np.array([4.0, 9.0]))
        assert sink.flags == FPFlag(0)
        assert reg.get() == FPFlag(0)

    def test_no_warning_emitted(self, recwarn):
        with recording(FlagRegister()):
            np.log(np.zeros(1))
        assert len(recwarn) == 0

    def test_threads_accumulate(self):
        reg = FlagRegister()

        def worker(values):
            with recording(reg):
                np.log(values)

        threads = [
            threading.Thread(target=worker, args=(np.zeros(2),)),
            threading.Thread(target=worker, args=(np.array([-1.0]),)),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert reg.get() == FPFlag.DIVBYZERO | FPFlag.INVALID

    def test_sink_raise_flags(self):
        reg = FlagRegister()
        with recording(reg) as sink:
            sink.raise_flags(FPFlag.UNDERFLOW)
        assert sink.flags == FPFlag.UNDERFLOW
        assert reg.get() == FPFlag.UNDERFLOW


# ═══════════════════════════════════════════════════════════════════════════
# ExceptionTracker
# ═══════════════════════════════════════════════════════════════════════════

class TestExceptionTracker:
    def test_clear_gives_none(self, tracker):
        tracker.register.raise_flags(FPFlag.INVALID)
        capture = tracker.clear()
        assert capture.flags == FPFlag(0)
        assert tracker.to_canonical_string(capture) == "none"

    def test_store_mask(self, tracker):
        tracker.register.raise_flags(FPFlag.INEXACT | FPFlag.UNDERFLOW)
        capture = tracker.store(FE_ALL_EXCEPT & ~FPFlag.INEXACT)
        assert capture.flags == FPFlag.UNDERFLOW
        assert tracker.to_canonical_string(capture) == "underflow"

    def test_single_flag(self, tracker):
        tracker.register.raise_flags(FPFlag.OVERFLOW)
        assert tracker.to_canonical_string(tracker.store()) == "overflow"

    def test_precedence(self, tracker):
        tracker.register.raise_flags(FPFlag.INVALID | FPFlag.OVERFLOW)
        capture = tracker.store()
        assert tracker.to_canonical_string(capture) == "invalid"
        assert tracker.to_canonical_string(capture, full=True) == "invalid,overflow"

    def test_divide_by_zero_wins(self, tracker):
        tracker.register.raise_flags(FPFlag.UNDERFLOW | FPFlag.DIVBYZERO)
        assert tracker.to_canonical_string(tracker.store()) == "divide-by-zero"

    def test_restore_replaces_register(self, tracker):
        capture = FlagCapture(flags=FPFlag.UNDERFLOW)
        tracker.register.raise_flags(FPFlag.INVALID)
        assert tracker.to_canonical_string(capture) == "underflow"
        assert tracker.register.get() == FPFlag.UNDERFLOW

    def test_test(self, tracker):
        capture = FlagCapture(flags=FPFlag.OVERFLOW)
        assert tracker.test(capture, FPFlag.OVERFLOW)
        assert not tracker.test(capture, FPFlag.INVALID)

    def test_disabled(self):
        reg = FlagRegister()
        tracker = ExceptionTracker(enabled=False, register=reg)
        reg.raise_flags(FPFlag.INVALID)
        capture = tracker.clear()
        assert reg.get() == FPFlag.INVALID  # untouched
        assert tracker.to_canonical_string(capture) == "disabled"
        assert tracker.to_canonical_string(tracker.store()) == "disabled"
        assert not tracker.test(capture)
        assert str(capture) == "disabled"


# ═══════════════════════════════════════════════════════════════════════════
# Classification rules
# ═══════════════════════════════════════════════════════════════════════════

class TestLabels:
    def test_rule_tables(self):
        assert len(FP_RULES) == 31
        assert len(MPFR_RULES) == 63
        assert [label for _, label in FP_RULES[:5]] == [
            "divide-by-zero", "inexact", "invalid", "overflow", "underflow",
        ]
        assert FP_RULES[5][1] == "divide-by-zero,inexact"
        assert FP_RULES[-1][1] == "divide-by-zero,inexact,invalid,overflow,underflow"

    def test_fp_label(self):
        assert fp_label(FPFlag(0)) == "none"
        assert fp_label(FPFlag.INEXACT | FPFlag.UNDERFLOW) == "inexact"
        assert fp_label(FE_ALL_EXCEPT) == "divide-by-zero"

    def test_mpfr_label(self):
        assert mpfr_label(MPFRFlag(0)) == "none"
        assert mpfr_label(MPFRFlag.RANGE) == "range"
        assert mpfr_label(MPFRFlag.INEXACT | MPFRFlag.RANGE) == "inexact"
        assert mpfr_label(MPFRFlag.INVALID | MPFRFlag.UNDERFLOW) == "invalid"

    def test_full_label(self):
        assert full_label(FPFlag(0)) == "none"
        assert full_label(FPFlag.UNDERFLOW | FPFlag.DIVBYZERO) == "divide-by-zero,underflow"
        assert full_label(MPFRFlag.RANGE | MPFRFlag.INEXACT) == "inexact,range"

    def test_parse_flags(self):
        assert parse_flags(["invalid", "overflow"]) == FPFlag.INVALID | FPFlag.OVERFLOW
        assert parse_flags(["range"], mpfr=True) == MPFRFlag.RANGE
        assert parse_flags([]) == FPFlag(0)

    def test_parse_flags_unknown(self):
        with pytest.raises(ValueError, match="Unknown exception flag"):
            parse_flags(["range"])
        with pytest.raises(ValueError, match="Unknown exception flag"):
            parse_flags(["bogus"], mpfr=True)
