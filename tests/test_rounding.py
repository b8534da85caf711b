"""Tests for mbench.core.rounding — hardware rounding direction per thread."""

import math

import numpy as np
import pytest

from mbench.config import BenchConfig
from mbench.core import rounding as rounding_module
from mbench.core.bench import BenchmarkLoop
from mbench.core.errors import UnsupportedError
from mbench.core.fpflags import ExceptionTracker, FlagRegister
from mbench.core.operations import get_catalog
from mbench.core.rounding import hardware_rounding_available, rounding
from mbench.core.types import ElementType, InputBuffer, ResultBuffer, RoundMode
from mbench.runner import run_benchmark

needs_fenv = pytest.mark.skipif(not hardware_rounding_available(), reason="fesetround not reachable")

# sqrt(2) = 1.41421356237309504880..., the nearest double lies above it.
SQRT2_UP = math.sqrt(2.0)
SQRT2_DOWN = float(np.nextafter(SQRT2_UP, -np.inf))


def _sqrt(values, round_mode):
    op = get_catalog().resolve("sqrt")
    inp = InputBuffer.from_values(values, ElementType.WIDE)
    res = ResultBuffer.allocate(ElementType.WIDE, inp.size)
    get_catalog().apply_range(op, inp, res, 0, inp.size, register=FlagRegister(), round_mode=round_mode)
    return res.to_list()


def _tiny_sum():
    return float(np.add(np.ones(1), 2.0 ** -60)[0])


# ═══════════════════════════════════════════════════════════════════════════
# Directed rounding of benchmarked results
# ═══════════════════════════════════════════════════════════════════════════

@needs_fenv
class TestDirectedRounding:
    def test_sqrt_upward_and_downward_one_ulp_apart(self):
        up = _sqrt([2.0], RoundMode.UPWARD)[0]
        down = _sqrt([2.0], RoundMode.DOWNWARD)[0]
        assert up == float(np.nextafter(down, np.inf))
        assert down == SQRT2_DOWN
        assert up == SQRT2_UP

    def test_towardzero_and_nearest(self):
        assert _sqrt([2.0], RoundMode.TOWARDZERO) == [SQRT2_DOWN]
        assert _sqrt([2.0], RoundMode.TONEAREST) == [SQRT2_UP]

    def test_exact_results_unaffected(self):
        assert _sqrt([4.0, 9.0], RoundMode.UPWARD) == [2.0, 3.0]

    def test_previous_mode_restored(self):
        with rounding(RoundMode.UPWARD):
            assert _tiny_sum() > 1.0
        assert _tiny_sum() == 1.0

    def test_restored_after_error(self):
        with pytest.raises(RuntimeError):
            with rounding(RoundMode.UPWARD):
                raise RuntimeError("boom")
        assert _tiny_sum() == 1.0

    def test_nested(self):
        with rounding(RoundMode.UPWARD):
            with rounding(RoundMode.TONEAREST):
                assert _tiny_sum() == 1.0
            assert _tiny_sum() > 1.0


# ── benchmark loop and pipeline ────────────────────────────────────────────

@needs_fenv
class TestLoopRounding:
    def test_every_member_rounds(self):
        inp = InputBuffer.from_values([2.0] * 8, ElementType.WIDE)
        res = ResultBuffer.allocate(ElementType.WIDE, inp.size)
        loop = BenchmarkLoop(
            tracker=ExceptionTracker(register=FlagRegister()),
            threads=4,
            round_mode=RoundMode.DOWNWARD,
        )
        loop.run("sqrt", inp, res, repeat=2)
        assert res.to_list() == [SQRT2_DOWN] * 8
        assert _tiny_sum() == 1.0

    def test_runner_uses_configured_mode(self):
        inp = InputBuffer.from_values([2.0], ElementType.WIDE)
        up = run_benchmark(BenchConfig(op="sqrt", round_mode="upward", threads=1), inp)
        down = run_benchmark(BenchConfig(op="sqrt", round_mode="downward", threads=1), inp)
        assert up.result.to_list() == [SQRT2_UP]
        assert down.result.to_list() == [SQRT2_DOWN]
        assert up.exceptions == "none"


# ═══════════════════════════════════════════════════════════════════════════
# Capability
# ═══════════════════════════════════════════════════════════════════════════

class TestUnavailable:
    def test_nearest_always_accepted(self, monkeypatch):
        monkeypatch.setattr(rounding_module, "_fenv", lambda: None)
        with rounding(RoundMode.TONEAREST):
            assert _tiny_sum() == 1.0
        assert not rounding_module.hardware_rounding_available()

    def test_directed_mode_unsupported(self, monkeypatch):
        monkeypatch.setattr(rounding_module, "_fenv", lambda: None)
        with pytest.raises(UnsupportedError, match="upward"):
            with rounding(RoundMode.UPWARD):
                pass
