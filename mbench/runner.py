"""mbench pipeline — resolve, benchmark, evaluate error, report."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mbench.config import BenchConfig
from mbench.core.accuracy import ErrorMetrics, evaluate_error
from mbench.core.bench import BenchmarkLoop, BenchmarkResult
from mbench.core.errors import UnsupportedError
from mbench.core.fpflags import ExceptionTracker
from mbench.core.operations import Operation, get_catalog
from mbench.core.types import InputBuffer, ResultBuffer

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkReport:
    """Everything one run produced. ``error`` is None when unsupported."""

    op: Operation
    benchmark: BenchmarkResult
    exceptions: str
    result: ResultBuffer
    error: ErrorMetrics | None = None
    error_status: str = "ok"  # "ok" | "unsupported"

    def summary(self) -> str:
        b = self.benchmark
        text = (
            f"{b.elapsed:.6f} seconds {b.repetitions} repetitions "
            f"{b.operations} ops {b.mops:.6f} Mops/s exceptions: {self.exceptions}"
        )
        if self.error is not None:
            text += (
                f" absolute error: {self.error.max_abs_error:e}"
                f" relative error: {self.error.max_rel_error:e}"
                f" (exceptions: {self.error.exceptions})"
            )
        return text

    def to_dict(self) -> dict:
        return {
            "op": self.op.name,
            "element_type": str(self.op.element_type),
            **self.benchmark.to_dict(),
            "exceptions": self.exceptions,
            "error_status": self.error_status,
            "error": self.error.to_dict() if self.error is not None else None,
        }


def run_benchmark(config: BenchConfig, input: InputBuffer) -> BenchmarkReport:
    """Benchmark ``config.op`` over ``input`` and evaluate its accuracy."""
    config.validate()
    op = get_catalog().resolve(config.op)
    result = ResultBuffer.allocate(op.element_type, input.size, config.alignment)
    tracker = ExceptionTracker(enabled=config.track_exceptions)

    loop = BenchmarkLoop(
        tracker=tracker,
        threads=config.threads,
        math_errno=config.math_errno,
        round_mode=config.rounding,
    )
    bench = loop.run(op, input, result, repeat=config.repeat, min_ops=config.min_ops)
    exceptions = tracker.to_canonical_string(result.fexcept, full=config.full_labels)

    report = BenchmarkReport(op=op, benchmark=bench, exceptions=exceptions, result=result)
    try:
        report.error = evaluate_error(
            op, input, result,
            round_mode=config.rounding,
            precision=config.error_precision,
            full_labels=config.full_labels,
        )
    except UnsupportedError as e:
        logger.info("%s: error evaluation unavailable: %s", op.name, e)
        report.error_status = "unsupported"
    return report
