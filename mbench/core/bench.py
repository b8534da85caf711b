"""mbench benchmark loop — repeat-until-threshold timing of one operation."""

from __future__ import annotations

import functools
import logging
import operator
import time
from dataclasses import dataclass

from mbench.core.errors import ConfigurationError, MathDomainError, MathRangeError, OperationError
from mbench.core.fpflags import FE_ALL_EXCEPT, ExceptionTracker, FPFlag
from mbench.core.operations import Operation, OperationCatalog, get_catalog
from mbench.core.team import ThreadTeam
from mbench.core.types import InputBuffer, ResultBuffer, RoundMode

logger = logging.getLogger(__name__)

_RANGE_FLAGS = FPFlag.DIVBYZERO | FPFlag.OVERFLOW | FPFlag.UNDERFLOW


@dataclass(frozen=True)
class BenchmarkResult:
    elapsed: float
    repetitions: int
    operations: int

    @property
    def throughput(self) -> float:
        """Elementwise evaluations per second."""
        if self.elapsed <= 0.0:
            return 0.0
        return self.operations / self.elapsed

    @property
    def mops(self) -> float:
        return self.throughput / 1e6

    def to_dict(self) -> dict:
        return {
            "elapsed": self.elapsed,
            "repetitions": self.repetitions,
            "operations": self.operations,
            "throughput": self.throughput,
        }


def check_errno(op: Operation, flags: FPFlag) -> None:
    """Raise the C math-library errno condition matching ``flags``, if any."""
    if flags & FPFlag.INVALID:
        raise MathDomainError(op.name, flags)
    if flags & _RANGE_FLAGS:
        raise MathRangeError(op.name, flags)


class BenchmarkLoop:
    """Runs an operation over the whole input until both thresholds are met.

    One ``ThreadTeam`` is formed per run. Every iteration forks the
    partitioned application across the team, joins, and only then advances
    the repetition and operation counters, so all members always work on
    the same iteration. Each member sets the hardware rounding direction
    in its own thread for the duration of its partition.
    """

    def __init__(
        self,
        catalog: OperationCatalog | None = None,
        tracker: ExceptionTracker | None = None,
        threads: int | None = None,
        math_errno: bool = True,
        round_mode: RoundMode = RoundMode.TONEAREST,
    ) -> None:
        self.catalog = catalog or get_catalog()
        self.tracker = tracker or ExceptionTracker()
        self.threads = threads
        self.math_errno = math_errno
        self.round_mode = round_mode

    def run(
        self,
        op: Operation | str,
        input: InputBuffer,
        result: ResultBuffer,
        repeat: int = 1,
        min_ops: int = 0,
    ) -> BenchmarkResult:
        if isinstance(op, str):
            op = self.catalog.resolve(op)
        if repeat < 1:
            raise ConfigurationError(f"repeat must be >= 1, got {repeat}")
        if min_ops < 0:
            raise ConfigurationError(f"min_ops must be >= 0, got {min_ops}")
        self.catalog.check_buffers(op, input, result)

        n = input.size
        unreachable = n == 0 and min_ops > 0
        if unreachable:
            logger.warning(
                "%s: empty input can never reach %d operations; stopping after %d repetitions",
                op.name, min_ops, repeat,
            )

        team = ThreadTeam(self.threads)
        logger.debug(
            "%s: %d values, repeat=%d, min_ops=%d, round=%s, %r",
            op.name, n, repeat, min_ops, self.round_mode, team,
        )
        member = functools.partial(
            self.catalog.apply_range, op, input, result,
            register=self.tracker.register, round_mode=self.round_mode,
        )

        self.tracker.clear()
        repetitions = 0
        operations = 0
        start = time.perf_counter()
        try:
            with team:
                while repetitions < repeat or (operations < min_ops and not unreachable):
                    member_flags = team.run(member, n)
                    repetitions += 1
                    operations += n
                    if self.math_errno:
                        check_errno(op, functools.reduce(operator.or_, member_flags, FPFlag(0)))
        except Exception as exc:
            elapsed = time.perf_counter() - start
            result.fexcept = self.tracker.store(FE_ALL_EXCEPT & ~FPFlag.INEXACT)
            if isinstance(exc, OperationError):
                exc.partial = BenchmarkResult(elapsed, repetitions, operations)
                exc.result = result
            logger.debug("%s: aborted after %d repetitions: %s", op.name, repetitions, exc)
            raise
        elapsed = time.perf_counter() - start

        result.fexcept = self.tracker.store(FE_ALL_EXCEPT & ~FPFlag.INEXACT)
        logger.debug("%s: %d repetitions, %d ops in %.6fs", op.name, repetitions, operations, elapsed)
        return BenchmarkResult(elapsed, repetitions, operations)
