"""mbench buffer types — element types, rounding modes, aligned input/result buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Self

import numpy as np

from mbench.core.errors import ConfigurationError
from mbench.core.fpflags import FlagCapture

DEFAULT_ALIGNMENT = 8


# ---------------------------------------------------------------------------
# ElementType — narrow (float32) / wide (float64)
# ---------------------------------------------------------------------------

class ElementType(Enum):
    NARROW = "f32"
    WIDE = "f64"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(np.float32) if self is ElementType.NARROW else np.dtype(np.float64)

    @property
    def itemsize(self) -> int:
        return self.dtype.itemsize

    def __str__(self) -> str:
        return self.value


def parse_element_type(s: str) -> ElementType:
    try:
        return ElementType(s)
    except ValueError:
        raise ConfigurationError(f"Unknown element type: {s!r}") from None


# ---------------------------------------------------------------------------
# RoundMode — rounding direction for the arbitrary-precision reference
# ---------------------------------------------------------------------------

class RoundMode(Enum):
    DOWNWARD = "downward"
    TONEAREST = "tonearest"
    TOWARDZERO = "towardzero"
    UPWARD = "upward"

    def __str__(self) -> str:
        return self.value


_ROUND_ALIASES = {
    "to-nearest": RoundMode.TONEAREST,
    "toward-zero": RoundMode.TOWARDZERO,
}


def parse_round_mode(s: str) -> RoundMode:
    if s in _ROUND_ALIASES:
        return _ROUND_ALIASES[s]
    try:
        return RoundMode(s)
    except ValueError:
        raise ConfigurationError(
            f"Unknown rounding mode: {s!r}. Must be one of {[m.value for m in RoundMode]}"
        ) from None


# ---------------------------------------------------------------------------
# Aligned allocation
# ---------------------------------------------------------------------------

def aligned_zeros(size: int, element_type: ElementType, alignment: int = DEFAULT_ALIGNMENT) -> np.ndarray:
    """Zero-filled 1-D array whose data pointer is a multiple of ``alignment`` bytes."""
    if alignment <= 0:
        raise ConfigurationError(f"alignment must be positive, got {alignment}")
    if size < 0:
        raise ConfigurationError(f"size must be non-negative, got {size}")
    nbytes = size * element_type.itemsize
    raw = np.zeros(nbytes + alignment, dtype=np.uint8)
    offset = (-raw.ctypes.data) % alignment
    return raw[offset:offset + nbytes].view(element_type.dtype)


def _check_array(data: np.ndarray, element_type: ElementType, kind: str) -> None:
    if data.ndim != 1:
        raise ConfigurationError(f"{kind} must be 1-dimensional, got shape {data.shape}")
    if data.dtype != element_type.dtype:
        raise ConfigurationError(
            f"{kind} dtype {data.dtype} does not match element type {element_type}"
        )
    if not data.flags.c_contiguous:
        raise ConfigurationError(f"{kind} must be contiguous")


# ---------------------------------------------------------------------------
# InputBuffer — read-only values the operation is applied to
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class InputBuffer:
    element_type: ElementType
    data: np.ndarray

    def __post_init__(self) -> None:
        _check_array(self.data, self.element_type, "InputBuffer")
        view = self.data.view()
        view.flags.writeable = False
        object.__setattr__(self, "data", view)

    @property
    def size(self) -> int:
        return self.data.shape[0]

    @classmethod
    def from_values(
        cls,
        values: Iterable[float],
        element_type: ElementType,
        alignment: int = DEFAULT_ALIGNMENT,
    ) -> Self:
        arr = np.asarray(list(values), dtype=element_type.dtype)
        data = aligned_zeros(arr.shape[0], element_type, alignment)
        data[:] = arr
        return cls(element_type=element_type, data=data)

    def to_list(self) -> list[float]:
        return self.data.tolist()

    def __repr__(self) -> str:
        return f"InputBuffer[{self.element_type}, {self.size}]"


# ---------------------------------------------------------------------------
# ResultBuffer — overwritten in place on every repetition
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ResultBuffer:
    element_type: ElementType
    data: np.ndarray
    fexcept: FlagCapture = field(default_factory=FlagCapture)

    def __post_init__(self) -> None:
        _check_array(self.data, self.element_type, "ResultBuffer")

    @property
    def size(self) -> int:
        return self.data.shape[0]

    @classmethod
    def allocate(
        cls,
        element_type: ElementType,
        size: int,
        alignment: int = DEFAULT_ALIGNMENT,
    ) -> Self:
        return cls(element_type=element_type, data=aligned_zeros(size, element_type, alignment))

    def to_list(self) -> list[float]:
        return self.data.tolist()

    def __repr__(self) -> str:
        return f"ResultBuffer[{self.element_type}, {self.size}]"
