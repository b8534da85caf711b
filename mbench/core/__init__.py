"""mbench core: buffers, exception flags, operation catalog, benchmark loop, error evaluation."""

from mbench.core.types import (
    ElementType,
    RoundMode,
    InputBuffer,
    ResultBuffer,
    aligned_zeros,
    parse_element_type,
    parse_round_mode,
)
from mbench.core.errors import (
    MathBenchError,
    ConfigurationError,
    UnknownOperationError,
    BufferMismatchError,
    InputError,
    OperationError,
    MathError,
    MathDomainError,
    MathRangeError,
    UnsupportedError,
)
from mbench.core.fpflags import (
    FPFlag, MPFRFlag, FE_ALL_EXCEPT,
    FlagCapture, ExceptionTracker, get_register, recording,
    mpfr_label, full_label,
)
from mbench.core.rounding import hardware_rounding_available
from mbench.core.operations import Operation, OperationCatalog, get_catalog
from mbench.core.team import ThreadTeam
from mbench.core.bench import BenchmarkLoop, BenchmarkResult
from mbench.core.accuracy import ErrorMetrics, evaluate_error, have_mpfr

__all__ = [
    "ElementType", "RoundMode", "InputBuffer", "ResultBuffer",
    "aligned_zeros", "parse_element_type", "parse_round_mode",
    "MathBenchError", "ConfigurationError", "UnknownOperationError",
    "BufferMismatchError", "InputError", "OperationError",
    "MathError", "MathDomainError", "MathRangeError", "UnsupportedError",
    "FPFlag", "MPFRFlag", "FE_ALL_EXCEPT",
    "FlagCapture", "ExceptionTracker", "get_register", "recording",
    "mpfr_label", "full_label",
    "hardware_rounding_available",
    "Operation", "OperationCatalog", "get_catalog",
    "ThreadTeam",
    "BenchmarkLoop", "BenchmarkResult",
    "ErrorMetrics", "evaluate_error", "have_mpfr",
]
