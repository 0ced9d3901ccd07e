"""
bytecode_cfg/main.py
====================

Command-line driver.

Usage
-----
    bytecode-cfg analyze LISTING [-o OUTPUT] [-m METHOD] [-d DESCRIPTOR]
                                 [--[no-]reachable-only] [--max-passes N]
                                 [--format text|json] [--dot FILE]
    bytecode-cfg blocks  LISTING [-m METHOD] [-d DESCRIPTOR]

``analyze`` writes the edge list of the entry method to OUTPUT (stdout by
default) and prints its dominator sets to stdout.  ``blocks`` prints the
partitioned basic blocks with their instructions.

Exit codes
----------
    0    success
    1    analysis failed (empty method, entry not found, bad listing)
    2    infrastructure problem (missing file, bad arguments)
    130  interrupted
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from . import __version__
from .analysis import analyze_method
from .config import AnalysisOptions
from .ctrlflow_graph import build_cfg, cfg_summary
from .errors import CFGError
from .listing import MethodBody, find_method, load_listing
from .numbering import assign_ids
from .reporter import write_dominator_report, write_edge_list

_log = logging.getLogger("bytecode_cfg")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``bytecode_cfg`` logger.

    Parameters
    ----------
    verbosity:
        number of ``-v`` flags; 1 selects INFO, 2 or more DEBUG,
        anything else WARNING.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("bytecode_cfg")
    root.setLevel(level)
    if not any(getattr(h, "_bytecode_cfg", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        handler._bytecode_cfg = True  # type: ignore[attr-defined]
        root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Absolute path of an input file; exits with EXIT_INFRA if it is missing."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _open_output(dest: Optional[str]) -> TextIO:
    """Stream for an output artifact: stdout for ``None`` or ``"-"``, else a
    freshly created file (missing parent directories are made).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {raw!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return value


def _options_from_args(args: argparse.Namespace) -> AnalysisOptions:
    try:
        base = AnalysisOptions.from_env()
    except ValueError as exc:
        _log.error("invalid environment configuration: %s", exc)
        raise SystemExit(EXIT_INFRA)
    return base.with_overrides(
        entry_method=args.method,
        entry_descriptor=args.descriptor,
        restrict_to_reachable=getattr(args, "reachable_only", None),
        max_passes=getattr(args, "max_passes", None),
    )


# ===========================================================================
# Subcommands
# ===========================================================================

def _load_method(args: argparse.Namespace, options: AnalysisOptions) -> MethodBody:
    listing_path = _resolve_path(args.listing, "listing")
    try:
        listing = load_listing(listing_path)
    except (OSError, UnicodeDecodeError) as exc:
        _log.error("cannot read listing %s: %s", listing_path, exc)
        raise SystemExit(EXIT_INFRA)
    return find_method(listing, options.entry_method, options.entry_descriptor)


def _write_artifact(dest: Optional[str], text: str) -> None:
    try:
        out = _open_output(dest)
        try:
            out.write(text)
        finally:
            if out is not sys.stdout:
                out.close()
    except OSError as exc:
        _log.error("cannot write %s: %s", dest, exc)
        raise SystemExit(EXIT_INFRA)


def cmd_analyze(args: argparse.Namespace) -> int:
    """Build the CFG of the entry method and report edges and dominators."""
    options = _options_from_args(args)

    try:
        method = _load_method(args, options)
        result = analyze_method(method, options)
    except CFGError as exc:
        _log.error("%s", exc)
        return EXIT_ERROR

    if args.format == "json":
        _write_artifact(args.output, result.to_json() + "\n")
    else:
        buf = io.StringIO()
        write_edge_list(result.cfg, buf)
        _write_artifact(args.output, buf.getvalue())
        write_dominator_report(result.cfg, result.dominators, sys.stdout)

    if args.dot:
        _write_artifact(args.dot, result.cfg.to_dot(title=method.qualified_name) + "\n")

    if args.output not in (None, "-"):
        print(f"CFG has been successfully written to {args.output}")
    return EXIT_OK


def cmd_blocks(args: argparse.Namespace) -> int:
    """Print the basic blocks of the entry method."""
    options = _options_from_args(args)
    try:
        method = _load_method(args, options)
        cfg = build_cfg(method.instructions)
    except CFGError as exc:
        _log.error("%s", exc)
        return EXIT_ERROR

    assign_ids(cfg)
    print(cfg_summary(cfg))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _add_entry_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "listing",
        metavar="LISTING",
        help="S-expression method listing.",
    )
    p.add_argument(
        "-m", "--method",
        default=None,
        metavar="NAME",
        help="Entry method name (default: main, or $BYTECODE_CFG_ENTRY_METHOD).",
    )
    p.add_argument(
        "-d", "--descriptor",
        default=None,
        metavar="DESC",
        help="Entry method descriptor, e.g. '([Ljava/lang/String;)V'.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bytecode-cfg",
        description="Control flow graphs and dominator sets for method bodies.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(title="commands")

    # --- analyze -----------------------------------------------------------
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Write the edge list and print dominator sets.",
        description=(
            "Partition the entry method into basic blocks, number the "
            "reachable ones in pre-order, write the edge list and print "
            "every block's dominators."
        ),
    )
    _add_entry_args(p_analyze)
    p_analyze.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Edge-list output file ("-" or omit for stdout).',
    )
    p_analyze.add_argument(
        "--reachable-only",
        dest="reachable_only",
        action="store_true",
        default=None,
        help="Solve dominators over reachable blocks only.",
    )
    p_analyze.add_argument(
        "--no-reachable-only",
        dest="reachable_only",
        action="store_false",
        default=None,
        help="Solve dominators over every block (overrides the environment).",
    )
    p_analyze.add_argument(
        "--max-passes",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Cap on dominator solver passes.",
    )
    p_analyze.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    p_analyze.add_argument(
        "--dot",
        default=None,
        metavar="FILE",
        help="Also write the CFG in Graphviz DOT format.",
    )
    p_analyze.set_defaults(func=cmd_analyze)

    # --- blocks ------------------------------------------------------------
    p_blocks = subparsers.add_parser(
        "blocks",
        help="Print the basic blocks of the entry method.",
    )
    _add_entry_args(p_blocks)
    p_blocks.set_defaults(func=cmd_blocks)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("interrupted")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
