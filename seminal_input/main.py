#!/usr/bin/env python3
"""seminal_input/main.py — CLI entry-point for the seminal-input detector.

Usage examples
--------------
    # Analyse one module, write seminal-values.json in the current directory
    python -m seminal_input analyze prog.ll

    # Several modules, one report, custom location
    python -m seminal_input analyze a.ll b.ll -o out/seminal.json

    # Treat calls to read_line() as stream readers as well
    python -m seminal_input analyze prog.ll --source read_line=stream

    # Print the report instead of writing it
    python -m seminal_input analyze prog.ll --stdout

    # Show what the IR reader understood (debugging aid)
    python -m seminal_input parse prog.ll

Exit codes
----------
    0   Success.
    2   Infrastructure failure (missing file, malformed IR, bad option,
        unwritable report).

The module doubles as ``python -m seminal_input`` via the companion
``seminal_input/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
import time
from pathlib import Path
from typing import Optional, Sequence, TextIO

from . import __version__
from .config import DetectorConfig, parse_source_spec
from .detector import SeminalInputDetector
from .errors import SeminalInputError
from .ir import Function, Opcode
from .ir_parser import load_module
from .loops import find_loops
from .report import DEFAULT_REPORT_PATH, Report, save_report

_log = logging.getLogger("seminal_input")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_INFRA: int = 2

_handler: Optional[logging.Handler] = None


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``seminal_input`` logger.

    0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    global _handler

    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("seminal_input")
    if _handler is not None:
        root.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root.setLevel(level)
    root.addHandler(_handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.is_file():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _build_config(args: argparse.Namespace) -> DetectorConfig:
    config = DetectorConfig(
        output_path=args.output,
        include_nested_loops=args.nested_loops,
        functions=frozenset(args.functions) if args.functions else None,
    )
    if args.sources:
        config = config.with_sources(parse_source_spec(s) for s in args.sources)
    return config


# ===========================================================================
# Sub-command implementations
# ===========================================================================

# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------

def cmd_analyze(args: argparse.Namespace) -> int:
    """Run the detector over every input module and save one report.

    Workflow:
        1. Build the detector configuration from the CLI flags.
        2. Read each ``.ll`` file, in the order given.
        3. Analyze every function, accumulating one report.
        4. Save the report once (or print it with ``--stdout``).
    """
    try:
        config = _build_config(args)
    except SeminalInputError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    paths = [_resolve_path(raw, "IR file") for raw in args.ir_files]
    detector = SeminalInputDetector(config)
    report = Report()
    t0 = time.monotonic()

    for path in paths:
        try:
            module = load_module(path)
        except (SeminalInputError, OSError) as exc:
            _log.error("Failed to read %s: %s", path, exc)
            return EXIT_INFRA
        detector.analyze_module(module, report)

    _log.info("Analysis completed in %.3fs", time.monotonic() - t0)

    if args.stdout:
        sys.stdout.write(report.to_json(indent=config.indent) + "\n")
        return EXIT_OK

    try:
        save_report(report, config.output_path, indent=config.indent)
    except SeminalInputError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    return EXIT_OK


# ---------------------------------------------------------------------------
# parse (debugging dump)
# ---------------------------------------------------------------------------

def _describe_function(function: Function, out: TextIO) -> None:
    out.write(f"function {function.name}\n")
    for block in function.blocks:
        succ = ", ".join(block.successors) or "-"
        out.write(f"  block {block.label}: {len(block)} instruction(s) "
                  f"-> {succ}\n")
    for loop in find_loops(function, include_nested=True):
        out.write(f"  loop header={loop.header} depth={loop.depth} "
                  f"body={','.join(sorted(loop.body))}\n")
    for inst in function.instructions():
        if inst.opcode is not Opcode.DBG_DECLARE:
            continue
        storage = function.value(inst.address)
        where = storage.name if storage is not None else "?"
        out.write(f"  declare {inst.variable or '?'} line={inst.line} "
                  f"storage=%{where}\n")


def cmd_parse(args: argparse.Namespace) -> int:
    """Read an IR file and print its functions, blocks, loops and declarations.

    Useful for checking the IR reader without running any analysis.
    """
    path = _resolve_path(args.ir_file, "IR file")
    try:
        module = load_module(path)
    except (SeminalInputError, OSError) as exc:
        _log.error("Parse error: %s", exc)
        return EXIT_INFRA

    for function in module:
        _describe_function(function, sys.stdout)
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="seminal-input",
        description=(
            "Find the variables of each function whose values come from\n"
            "external input, using the debug info of textual LLVM IR."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              seminal-input analyze prog.ll
              seminal-input analyze a.ll b.ll -o report.json --nested-loops
              seminal-input parse prog.ll
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- analyze -----------------------------------------------------------
    p_analyze = subparsers.add_parser(
        "analyze",
        aliases=["analyse"],
        help="Detect input-influenced variables and write the report.",
        description=(
            "Analyze every function of the given .ll files in order and "
            "save a single JSON report at the end."
        ),
    )
    p_analyze.add_argument(
        "ir_files",
        nargs="+",
        metavar="FILE",
        help="Textual LLVM IR file(s), compiled with -g.",
    )
    p_analyze.add_argument(
        "-o", "--output",
        default=DEFAULT_REPORT_PATH,
        metavar="FILE",
        help=f"Report path (default: {DEFAULT_REPORT_PATH}).",
    )
    p_analyze.add_argument(
        "--function",
        dest="functions",
        action="append",
        default=None,
        metavar="NAME",
        help="Only analyze this function (repeatable).",
    )
    p_analyze.add_argument(
        "--source",
        dest="sources",
        action="append",
        default=None,
        metavar="PATTERN=KIND",
        help="Extra input-source pattern; KIND is scalar, file or stream "
             "(repeatable).",
    )
    p_analyze.add_argument(
        "--nested-loops",
        action="store_true",
        help="Also seed from the headers of nested loops.",
    )
    p_analyze.add_argument(
        "--stdout",
        action="store_true",
        help="Print the report instead of writing it.",
    )
    p_analyze.set_defaults(func=cmd_analyze)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Print what the IR reader finds in a .ll file.",
        description="List functions, blocks, loops and variable declarations.",
    )
    p_parse.add_argument(
        "ir_file",
        metavar="FILE",
        help="Textual LLVM IR file.",
    )
    p_parse.set_defaults(func=cmd_parse)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the seminal-input CLI and return its exit code.

    *argv* ``None`` → ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
