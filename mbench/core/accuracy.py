"""mbench error evaluator — worst-case error against an MPFR reference (gmpy2)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from mbench.core.errors import ConfigurationError, UnsupportedError
from mbench.core.fpflags import MPFRFlag, flag_name, full_label, mpfr_label
from mbench.core.operations import Operation, OperationCatalog, get_catalog
from mbench.core.types import InputBuffer, ResultBuffer, RoundMode

try:
    import gmpy2
except ImportError:  # evaluation reports UnsupportedError
    gmpy2 = None

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 53

_ROUND_NAMES = {
    RoundMode.DOWNWARD: "RoundDown",
    RoundMode.TONEAREST: "RoundToNearest",
    RoundMode.TOWARDZERO: "RoundToZero",
    RoundMode.UPWARD: "RoundUp",
}

# gmpy2 context attribute for each MPFR flag.
_CONTEXT_FLAGS = (
    ("divzero", MPFRFlag.DIVBYZERO),
    ("inexact", MPFRFlag.INEXACT),
    ("invalid", MPFRFlag.INVALID),
    ("overflow", MPFRFlag.OVERFLOW),
    ("underflow", MPFRFlag.UNDERFLOW),
    ("erange", MPFRFlag.RANGE),
)


def have_mpfr() -> bool:
    """True if arbitrary-precision error evaluation is available."""
    return gmpy2 is not None


@dataclass(frozen=True)
class ErrorMetrics:
    max_abs_error: float
    max_rel_error: float
    exceptions: str
    flags: MPFRFlag = MPFRFlag(0)

    def to_dict(self) -> dict:
        return {
            "max_abs_error": self.max_abs_error,
            "max_rel_error": self.max_rel_error,
            "exceptions": self.exceptions,
            "flags": [flag_name(f) for f in MPFRFlag if self.flags & f],
        }


def _reference(op: Operation):
    fn = getattr(gmpy2, op.reference)
    if op.reference == "lgamma":
        # gmpy2.lgamma returns (log|gamma(x)|, sign)
        return lambda x: fn(x)[0]
    return fn


def _context_flags(ctx) -> MPFRFlag:
    flags = MPFRFlag(0)
    for attr, flag in _CONTEXT_FLAGS:
        if getattr(ctx, attr):
            flags |= flag
    return flags


def evaluate_error(
    op: Operation | str,
    input: InputBuffer,
    result: ResultBuffer,
    round_mode: RoundMode = RoundMode.TONEAREST,
    precision: int = DEFAULT_PRECISION,
    *,
    catalog: OperationCatalog | None = None,
    full_labels: bool = False,
) -> ErrorMetrics:
    """Compare ``result`` to ``op`` recomputed at ``precision`` bits.

    Every input element is converted to an MPFR value under ``round_mode``,
    the reference function is applied, and the absolute and relative
    differences to the measured element are reduced to their maxima.
    Comparisons involving NaN never update a maximum. The MPFR flags raised
    over the whole evaluation are classified like the hardware flags.

    Raises:
        UnsupportedError: gmpy2 is not installed (checked before any work).
    """
    if gmpy2 is None:
        raise UnsupportedError("arbitrary-precision evaluation requires gmpy2")
    catalog = catalog or get_catalog()
    if isinstance(op, str):
        op = catalog.resolve(op)
    if precision <= 0:
        raise ConfigurationError(f"precision must be positive, got {precision}")
    catalog.check_buffers(op, input, result)

    fn = _reference(op)
    ctx = gmpy2.context(precision=precision, round=getattr(gmpy2, _ROUND_NAMES[round_mode]))
    saved = gmpy2.get_context()
    gmpy2.set_context(ctx)
    try:
        max_abs = gmpy2.mpfr(0)
        max_rel = gmpy2.mpfr(0)
        for x, y in zip(input.data.tolist(), result.data.tolist()):
            ref = fn(gmpy2.mpfr(x))
            abs_err = abs(ref - gmpy2.mpfr(y))
            if abs_err > max_abs:
                max_abs = abs_err
            rel_err = abs_err / abs(ref)
            if rel_err > max_rel:
                max_rel = rel_err
        flags = _context_flags(gmpy2.get_context())
    finally:
        gmpy2.set_context(saved)

    label = full_label(flags) if full_labels else mpfr_label(flags)
    logger.debug("%s: abs=%s rel=%s mpfr=%s", op.name, max_abs, max_rel, label)
    return ErrorMetrics(
        max_abs_error=float(max_abs),
        max_rel_error=float(max_rel),
        exceptions=label,
        flags=flags,
    )
