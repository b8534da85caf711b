"""mbench exception hierarchy."""

from __future__ import annotations

import errno as _errno
import os

from mbench.core.fpflags import full_label


class MathBenchError(Exception):
    """Base exception for all mbench errors."""


# ---------------------------------------------------------------------------
# Configuration errors: surfaced immediately, nothing is executed
# ---------------------------------------------------------------------------

class ConfigurationError(MathBenchError, ValueError):
    """Invalid setting (repeat count, precision, rounding mode, alignment)."""


class UnknownOperationError(ConfigurationError):
    """Operation name not present in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown operation: {name!r}")
        self.name = name


class BufferMismatchError(ConfigurationError):
    """Input/result buffers do not match each other or the operation."""


class InputError(MathBenchError, ValueError):
    """Unparsable input value."""

    def __init__(self, token: str, index: int) -> None:
        super().__init__(f"Invalid value {token!r} at position {index}")
        self.token = token
        self.index = index


# ---------------------------------------------------------------------------
# Failures during a benchmark run
# ---------------------------------------------------------------------------

class OperationError(MathBenchError):
    """A benchmark run was aborted.

    ``partial`` holds the progress so far and ``result`` the buffer as it was
    left when the run stopped.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.partial = None
        self.result = None


class MathError(OperationError, ArithmeticError):
    """Math library error-number signaling (domain or range error)."""

    errno: int = 0

    def __init__(self, op_name: str, flags) -> None:
        super().__init__(f"{op_name}: {os.strerror(self.errno)} ({full_label(flags)})")
        self.op_name = op_name
        self.flags = flags


class MathDomainError(MathError):
    errno = _errno.EDOM


class MathRangeError(MathError):
    errno = _errno.ERANGE


# ---------------------------------------------------------------------------
# Capability errors
# ---------------------------------------------------------------------------

class UnsupportedError(MathBenchError):
    """A capability (arbitrary-precision evaluation or rounding control) is not available."""
