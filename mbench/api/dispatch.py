"""mbench API dispatcher — JSON request/response interface.

Usage:
    from mbench.api.dispatch import dispatch
    result = dispatch({"action": "benchmark", "op": "exp", "values": [0, 1, 2]})
"""

from __future__ import annotations

import math

from mbench.config import BenchConfig
from mbench.core.errors import MathBenchError, OperationError
from mbench.core.fpflags import (
    ExceptionTracker, FlagCapture, FlagRegister, full_label, mpfr_label, parse_flags,
)
from mbench.core.operations import Operation, get_catalog
from mbench.core.types import InputBuffer
from mbench.runner import run_benchmark

# Request keys forwarded to BenchConfig by the "benchmark" action.
_CONFIG_KEYS = (
    "op", "round_mode", "alignment", "repeat", "min_ops", "error_precision",
    "threads", "math_errhandling", "exception_labels",
)


def dispatch(request: dict) -> dict:
    """Main entry point for the mbench JSON API.

    Args:
        request: JSON-like dict with "action" and action-specific params.

    Returns:
        JSON-like dict with results or error information.
    """
    action = request.get("action")
    if not action:
        return {"error": "Missing 'action' field"}

    try:
        if action == "list_ops":
            return _handle_list_ops()
        elif action == "resolve":
            return _handle_resolve(request)
        elif action == "benchmark":
            return _handle_benchmark(request)
        elif action == "classify":
            return _handle_classify(request)
        else:
            return {"error": f"Unknown action: {action!r}"}
    except OperationError as e:
        response = {"error": str(e)}
        if e.partial is not None:
            response["partial"] = e.partial.to_dict()
        return response
    except MathBenchError as e:
        return {"error": str(e)}
    except Exception as e:
        return {"error": f"{type(e).__name__}: {e}", "internal": True}


def jsonable(value):
    """Replace non-finite floats (invalid in strict JSON) with their names."""
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    return value


def _op_info(op: Operation) -> dict:
    return {
        "name": op.name,
        "family": op.family,
        "group": op.group,
        "element_type": str(op.element_type),
        "reference": op.reference,
    }


# ---------------------------------------------------------------------------
# Action handlers
# ---------------------------------------------------------------------------

def _handle_list_ops() -> dict:
    catalog = get_catalog()
    return {
        "operations": [_op_info(op) for op in catalog],
        "groups": catalog.by_group(),
    }


def _handle_resolve(request: dict) -> dict:
    name = request.get("name")
    if not name:
        return {"error": "Missing 'name' field"}
    return _op_info(get_catalog().resolve(name))


def _handle_benchmark(request: dict) -> dict:
    values = request.get("values")
    if values is None:
        return {"error": "Missing 'values' field"}

    config = BenchConfig.from_dict({k: request[k] for k in _CONFIG_KEYS if k in request})
    op = get_catalog().resolve(config.op)
    input = InputBuffer.from_values([float(v) for v in values], op.element_type, config.alignment)
    report = run_benchmark(config, input)

    response = report.to_dict()
    response["summary"] = report.summary()
    if request.get("include_values", True):
        response["values"] = report.result.to_list()
    return jsonable(response)


def _handle_classify(request: dict) -> dict:
    names = request.get("flags", [])
    mpfr = bool(request.get("mpfr", False))
    full = bool(request.get("full", False))
    flags = parse_flags(names, mpfr=mpfr)

    if mpfr:
        label = full_label(flags) if full else mpfr_label(flags)
    else:
        tracker = ExceptionTracker(enabled=request.get("enabled", True), register=FlagRegister())
        label = tracker.to_canonical_string(FlagCapture(flags=flags), full=full)
    return {"label": label}
