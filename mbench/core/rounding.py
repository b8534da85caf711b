"""Hardware rounding direction — per-thread ``fesetround`` through the C math library.

The rounding direction is part of each thread's floating-point environment
(MXCSR/x87 on x86, FPCR on AArch64), and numpy's ufunc loops run with
whatever direction the calling thread has set. Every team member therefore
enters ``rounding()`` inside its own partition task.

Usage:
    with rounding(RoundMode.UPWARD):
        np.sqrt(values, out=result)
"""

from __future__ import annotations

import ctypes
import ctypes.util
import functools
import logging
import platform
from contextlib import contextmanager
from typing import Iterator, Optional

from mbench.core.errors import UnsupportedError
from mbench.core.types import RoundMode

logger = logging.getLogger(__name__)

# <fenv.h> FE_* rounding constants per architecture.
_X86_MODES = {
    RoundMode.TONEAREST: 0x000,
    RoundMode.DOWNWARD: 0x400,
    RoundMode.UPWARD: 0x800,
    RoundMode.TOWARDZERO: 0xC00,
}
_ARM64_MODES = {
    RoundMode.TONEAREST: 0x000000,
    RoundMode.UPWARD: 0x400000,
    RoundMode.DOWNWARD: 0x800000,
    RoundMode.TOWARDZERO: 0xC00000,
}
_FE_MODES = {
    "x86_64": _X86_MODES,
    "amd64": _X86_MODES,
    "i386": _X86_MODES,
    "i686": _X86_MODES,
    "aarch64": _ARM64_MODES,
    "arm64": _ARM64_MODES,
}


class _Fenv:
    def __init__(self, libm: ctypes.CDLL, modes: dict[RoundMode, int]) -> None:
        self.modes = modes
        self.fegetround = libm.fegetround
        self.fegetround.argtypes = []
        self.fegetround.restype = ctypes.c_int
        self.fesetround = libm.fesetround
        self.fesetround.argtypes = [ctypes.c_int]
        self.fesetround.restype = ctypes.c_int


@functools.lru_cache(maxsize=None)
def _fenv() -> Optional[_Fenv]:
    modes = _FE_MODES.get(platform.machine().lower())
    name = ctypes.util.find_library("m")
    if modes is None or name is None:
        logger.info("No rounding control for %s (libm: %s)", platform.machine(), name)
        return None
    try:
        return _Fenv(ctypes.CDLL(name), modes)
    except (OSError, AttributeError) as e:
        logger.info("Cannot load rounding control from %s: %s", name, e)
        return None


def hardware_rounding_available() -> bool:
    """True if ``rounding()`` can select a direction other than to-nearest."""
    return _fenv() is not None


@contextmanager
def rounding(mode: RoundMode) -> Iterator[None]:
    """Run the block with hardware rounding ``mode`` in the current thread.

    The previous direction is restored on exit. Round-to-nearest is always
    accepted; any other direction raises ``UnsupportedError`` where the C
    library cannot be reached.
    """
    fenv = _fenv()
    if fenv is None:
        if mode is not RoundMode.TONEAREST:
            raise UnsupportedError(f"hardware rounding mode {mode} is not available on this platform")
        yield
        return

    saved = fenv.fegetround()
    if fenv.fesetround(fenv.modes[mode]) != 0:
        raise UnsupportedError(f"fesetround rejected rounding mode {mode}")
    try:
        yield
    finally:
        fenv.fesetround(saved)
