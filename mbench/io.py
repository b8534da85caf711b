"""mbench input/output — whitespace-separated values in, formatted buffers out."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import IO, Iterator

import numpy as np

from mbench.core.errors import InputError
from mbench.core.types import DEFAULT_ALIGNMENT, ElementType, InputBuffer


def _tokens(stream: IO[str]) -> Iterator[str]:
    for line in stream:
        yield from line.split()


def parse_value(token: str, index: int = 0) -> float:
    """Parse a decimal, ``inf``/``nan`` or hexadecimal (``0x1p-3``) float."""
    try:
        return float(token)
    except ValueError:
        pass
    try:
        return float.fromhex(token)
    except ValueError:
        raise InputError(token, index) from None


def read_values(
    stream: IO[str],
    element_type: ElementType,
    alignment: int = DEFAULT_ALIGNMENT,
) -> InputBuffer:
    """Read every value in ``stream`` into an aligned buffer of ``element_type``."""
    values = [parse_value(token, i) for i, token in enumerate(_tokens(stream))]
    # float32 inputs are rounded on conversion; overflow to inf is intended.
    with np.errstate(over="ignore"):
        return InputBuffer.from_values(values, element_type, alignment)


def read_file(
    path: str | Path | None,
    element_type: ElementType,
    alignment: int = DEFAULT_ALIGNMENT,
) -> InputBuffer:
    """Like ``read_values``; ``None`` or ``"-"`` reads standard input."""
    if path is None or str(path) == "-":
        return read_values(sys.stdin, element_type, alignment)
    with open(path, "r", encoding="utf-8") as f:
        return read_values(f, element_type, alignment)


def format_values(
    data: np.ndarray,
    width: int = 0,
    precision: int = -1,
    delimiter: str = " ",
) -> str:
    """``%*.*f`` formatting of every element; ``precision=-1`` means 6 digits."""
    if precision < 0:
        precision = 6
    return delimiter.join(f"{x:{width}.{precision}f}" for x in data.tolist())
