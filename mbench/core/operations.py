"""mbench operation catalog — 26 function families × {f64, f32} bound to numpy/scipy ufuncs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterator, Optional

import numpy as np
import scipy.special as sc

from mbench.core.errors import BufferMismatchError, UnknownOperationError
from mbench.core.fpflags import FPFlag, FlagRegister, get_register, recording
from mbench.core.rounding import rounding
from mbench.core.types import ElementType, InputBuffer, ResultBuffer, RoundMode

if TYPE_CHECKING:
    from mbench.core.team import ThreadTeam

FlagClassifier = Callable[[np.ndarray, np.ndarray], FPFlag]


# ---------------------------------------------------------------------------
# Flags from values (scipy.special transforms)
# ---------------------------------------------------------------------------
#
# scipy.special errors go to its sf_error channel, not to numpy's
# floating-point callback. Their libm exceptions are read off the stored
# operands instead (float32 results included, after the narrowing cast):
#   NaN from a non-NaN argument        -> invalid
#   inf from a finite argument         -> divide-by-zero at a pole, else overflow
#   subnormal, or zero where f(x) != 0 -> underflow

def _is_integer(x: np.ndarray) -> np.ndarray:
    return x == np.floor(x)


def value_flags(
    poles: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    domain: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    exact_zeros: Optional[Callable[[np.ndarray], np.ndarray]] = None,
) -> FlagClassifier:
    """Build a classifier mapping ``(x, f(x))`` slices to the flags libm would raise.

    Args:
        poles: arguments where an infinite result is an exact pole.
        domain: arguments outside the domain whatever the result.
        exact_zeros: arguments where a zero result is exact.
    """

    def classify(x: np.ndarray, y: np.ndarray) -> FPFlag:
        flags = FPFlag(0)
        finite = np.isfinite(x)
        invalid = np.isnan(y) & ~np.isnan(x)
        if domain is not None:
            invalid |= finite & domain(x)
        if invalid.any():
            flags |= FPFlag.INVALID

        infinite = np.isinf(y) & finite & ~invalid
        if infinite.any():
            at_pole = infinite & poles(x) if poles is not None else np.zeros_like(infinite)
            if at_pole.any():
                flags |= FPFlag.DIVBYZERO
            if (infinite & ~at_pole).any():
                flags |= FPFlag.OVERFLOW

        tiny = finite & (np.abs(y) < np.finfo(y.dtype).tiny)
        if exact_zeros is not None:
            tiny &= ~((y == 0) & exact_zeros(x))
        if tiny.any():
            flags |= FPFlag.UNDERFLOW
        return flags

    return classify


_exp10_flags = value_flags()
_erf_flags = value_flags(exact_zeros=lambda x: x == 0)
_erfc_flags = value_flags()
_tgamma_flags = value_flags(
    poles=lambda x: x == 0,
    domain=lambda x: (x < 0) & _is_integer(x),
)
_lgamma_flags = value_flags(
    poles=lambda x: (x <= 0) & _is_integer(x),
    exact_zeros=lambda x: (x == 1) | (x == 2),
)


# ---------------------------------------------------------------------------
# Family table: (group, family, ufunc, arbitrary-precision reference, flags)
# ---------------------------------------------------------------------------

_FAMILIES: tuple[tuple[str, str, np.ufunc, str, Optional[FlagClassifier]], ...] = (
    ("trigonometric", "cos", np.cos, "cos", None),
    ("trigonometric", "sin", np.sin, "sin", None),
    ("trigonometric", "tan", np.tan, "tan", None),
    ("trigonometric", "acos", np.arccos, "acos", None),
    ("trigonometric", "asin", np.arcsin, "asin", None),
    ("trigonometric", "atan", np.arctan, "atan", None),
    ("hyperbolic", "cosh", np.cosh, "cosh", None),
    ("hyperbolic", "sinh", np.sinh, "sinh", None),
    ("hyperbolic", "tanh", np.tanh, "tanh", None),
    ("hyperbolic", "acosh", np.arccosh, "acosh", None),
    ("hyperbolic", "asinh", np.arcsinh, "asinh", None),
    ("hyperbolic", "atanh", np.arctanh, "atanh", None),
    ("exponential", "exp", np.exp, "exp", None),
    ("exponential", "log", np.log, "log", None),
    ("exponential", "log10", np.log10, "log10", None),
    ("exponential", "exp2", np.exp2, "exp2", None),
    ("exponential", "expm1", np.expm1, "expm1", None),
    ("exponential", "log1p", np.log1p, "log1p", None),
    ("exponential", "log2", np.log2, "log2", None),
    ("exponential", "exp10", sc.exp10, "exp10", _exp10_flags),
    ("power", "sqrt", np.sqrt, "sqrt", None),
    ("power", "cbrt", np.cbrt, "cbrt", None),
    ("error-gamma", "erf", sc.erf, "erf", _erf_flags),
    ("error-gamma", "erfc", sc.erfc, "erfc", _erfc_flags),
    ("error-gamma", "tgamma", sc.gamma, "gamma", _tgamma_flags),
    ("error-gamma", "lgamma", sc.gammaln, "lgamma", _lgamma_flags),
)


@dataclass(frozen=True)
class Operation:
    """One benchmarkable function at one element width.

    ``value_flags`` is set for transforms whose floating-point exceptions
    numpy cannot observe; it derives them from the argument and result.
    """

    name: str
    family: str
    group: str
    element_type: ElementType
    transform: np.ufunc
    reference: str
    value_flags: Optional[FlagClassifier] = None

    def __repr__(self) -> str:
        return f"Operation({self.name}, {self.element_type})"


def _narrow_name(family: str) -> str:
    return family + "f"


# ---------------------------------------------------------------------------
# OperationCatalog
# ---------------------------------------------------------------------------

class OperationCatalog:
    """Name → Operation lookup plus elementwise application over buffers."""

    def __init__(
        self,
        families: tuple[tuple[str, str, np.ufunc, str, Optional[FlagClassifier]], ...] = _FAMILIES,
    ) -> None:
        self._ops: dict[str, Operation] = {}
        for group, family, ufunc, reference, flags in families:
            for element_type, name in (
                (ElementType.WIDE, family),
                (ElementType.NARROW, _narrow_name(family)),
            ):
                if name in self._ops:
                    raise ValueError(f"Duplicate operation name: {name!r}")
                self._ops[name] = Operation(
                    name=name,
                    family=family,
                    group=group,
                    element_type=element_type,
                    transform=ufunc,
                    reference=reference,
                    value_flags=flags,
                )

    def resolve(self, name: str) -> Operation:
        try:
            return self._ops[name]
        except KeyError:
            raise UnknownOperationError(name) from None

    def element_type(self, op: Operation | str) -> ElementType:
        if isinstance(op, str):
            op = self.resolve(op)
        return op.element_type

    def names(self) -> list[str]:
        return list(self._ops)

    def by_group(self) -> dict[str, list[str]]:
        groups: dict[str, list[str]] = {}
        for op in self._ops.values():
            groups.setdefault(op.group, []).append(op.name)
        return groups

    def __iter__(self) -> Iterator[Operation]:
        return iter(self._ops.values())

    def __len__(self) -> int:
        return len(self._ops)

    def __contains__(self, name: object) -> bool:
        return name in self._ops

    # -- application -------------------------------------------------------

    @staticmethod
    def check_buffers(op: Operation, input: InputBuffer, result: ResultBuffer) -> None:
        if input.element_type is not op.element_type:
            raise BufferMismatchError(
                f"Type mismatch: {op.name} expects {op.element_type}, input is {input.element_type}"
            )
        if result.element_type is not op.element_type:
            raise BufferMismatchError(
                f"Type mismatch: {op.name} expects {op.element_type}, result is {result.element_type}"
            )
        if input.size != result.size:
            raise BufferMismatchError(
                f"Dimension mismatch: input({input.size}) vs result({result.size})"
            )

    @staticmethod
    def apply_range(
        op: Operation,
        input: InputBuffer,
        result: ResultBuffer,
        lo: int,
        hi: int,
        register: FlagRegister | None = None,
        round_mode: RoundMode = RoundMode.TONEAREST,
    ) -> FPFlag:
        """Evaluate ``result[lo:hi] = f(input[lo:hi])`` and return the flags it raised.

        The calling thread runs the slice under hardware rounding ``round_mode``.
        The flags are also OR-ed into ``register`` (the process-wide one by default).
        """
        with rounding(round_mode), recording(register or get_register()) as sink:
            if hi > lo:
                x = input.data[lo:hi]
                y = result.data[lo:hi]
                op.transform(x, out=y)
                if op.value_flags is not None:
                    with np.errstate(all="ignore"):
                        sink.raise_flags(op.value_flags(x, y))
        return sink.flags

    def apply(
        self,
        op: Operation | str,
        input: InputBuffer,
        result: ResultBuffer,
        team: ThreadTeam | None = None,
        round_mode: RoundMode = RoundMode.TONEAREST,
    ) -> int:
        """Overwrite every element of ``result`` with ``op`` of the input element.

        Returns the number of elements processed. With a ``team`` the index
        range is split into one contiguous partition per member.
        """
        if isinstance(op, str):
            op = self.resolve(op)
        self.check_buffers(op, input, result)
        if team is None:
            self.apply_range(op, input, result, 0, input.size, round_mode=round_mode)
        else:
            team.run(
                lambda lo, hi: self.apply_range(op, input, result, lo, hi, round_mode=round_mode),
                input.size,
            )
        return input.size


_catalog: OperationCatalog | None = None


def get_catalog() -> OperationCatalog:
    """Return the default catalog, built on first use."""
    global _catalog
    if _catalog is None:
        _catalog = OperationCatalog()
    return _catalog
