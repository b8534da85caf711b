"""mbench command line — benchmark one math function over values read from a file.

Usage:
    mbench --op=sinf --repeat=10 values.txt
    seq 1 1000 | mbench --op=log -v -v -
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from mbench import __version__
from mbench.config import EXCEPTION_LABEL_MODES, BenchConfig
from mbench.core.errors import MathBenchError, OperationError
from mbench.core.operations import get_catalog
from mbench.io import format_values, read_file
from mbench.log import configure_logging
from mbench.runner import run_benchmark


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mbench",
        description="Benchmark throughput and accuracy of elementary math functions",
    )
    p.add_argument("file", nargs="?", default="-", help="input values ('-' reads standard input)")
    p.add_argument("--op", help="math operation to benchmark (see --list-ops)")
    p.add_argument("--round", dest="round_mode", help="rounding mode: downward, tonearest, towardzero, upward")
    p.add_argument("--alignment", type=int, help="buffer alignment in bytes")
    p.add_argument("--min-ops", type=int, help="minimum number of operations to perform")
    p.add_argument("--repeat", type=int, help="minimum number of repetitions")
    p.add_argument("--error-precision", type=int, help="precision in bits of the error reference")
    p.add_argument("--threads", type=int, help="number of worker threads")
    p.add_argument("--out-field-width", dest="output_field_width", type=int, help="field width for printed results")
    p.add_argument("--out-precision", dest="output_precision", type=int, help="precision for printed results")
    p.add_argument("--labels", dest="exception_labels", choices=EXCEPTION_LABEL_MODES,
                   help="exception labels: first flag only, or every raised flag")
    p.add_argument("--config", help="YAML file with run settings")
    p.add_argument("-v", "--verbose", action="count", default=0, help="be more verbose")
    p.add_argument("-q", "--quiet", action="store_true", help="suppress output")
    p.add_argument("--list-ops", action="store_true", help="list available operations and exit")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def _list_ops() -> None:
    for group, names in get_catalog().by_group().items():
        print(f"{group}: {' '.join(names)}")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if args.list_ops:
        _list_ops()
        return 0

    try:
        config = BenchConfig.from_yaml(args.config) if args.config else BenchConfig()
        config = config.replace(
            op=args.op,
            round_mode=args.round_mode,
            alignment=args.alignment,
            min_ops=args.min_ops,
            repeat=args.repeat,
            error_precision=args.error_precision,
            threads=args.threads,
            output_field_width=args.output_field_width,
            output_precision=args.output_precision,
            exception_labels=args.exception_labels,
            verbose=0 if args.quiet else config.verbose + args.verbose,
        )
        op = get_catalog().resolve(config.op)
        values = read_file(args.file, op.element_type, config.alignment)
        report = run_benchmark(config, values)
    except OperationError as e:
        print(f"mbench: {e}", file=sys.stderr)
        if config.verbose > 1 and e.result is not None:
            print(format_values(e.result.data, config.output_field_width, config.output_precision),
                  file=sys.stderr)
        return 1
    except (MathBenchError, OSError) as e:
        print(f"mbench: {e}", file=sys.stderr)
        return 1

    if config.verbose > 0:
        print(f"{op.name}: {report.summary()}")
    if config.verbose > 1:
        print(format_values(report.result.data, config.output_field_width, config.output_precision),
              file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
