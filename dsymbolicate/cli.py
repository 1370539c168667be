#!/usr/bin/env python3
"""
cli.py

Main entry point for dsymbolicate.

Responsibilities:
  - Build the symbol index from the *.dSYM bundles in the working directory
  - Extract the crashed thread and binary images from the crash report
  - Symbolicate matched frames with atos
  - Print the report with the crashed thread symbolicated (or only the
    crashed thread with --stack-only)

Usage examples:

  # Symbolicate crash.txt using the dSYMs next to it
  dsymbolicate --crash crash.txt

  # dSYMs and report in another directory, tools from the Xcode toolchain
  dsymbolicate --dsym-dir ~/Downloads/build-1234 --crash crash.txt --xcrun
"""

from __future__ import annotations

import argparse
import functools
import logging
from pathlib import Path
from typing import List, Optional

from dsymbolicate.dsym_index import SymbolFileInfo, build_symbol_index
from dsymbolicate.errors import DsymbolicateError
from dsymbolicate.renderer import merge_into_report, render_backtrace
from dsymbolicate.report_parser import extract_crashed_thread_lines, get_binary_images
from dsymbolicate.symbolizer import AddressResolver, images_with_symbols, symbolicate_lines
from dsymbolicate.tool_runner import AtosResolver, escape_spaces, run_dwarfdump_uuid

LOG = logging.getLogger("dsymbolicate")

SEPARATOR = "-" * 39


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dsymbolicate",
        description=(
            "Symbolicate the crashed thread of a crash report using the "
            ".dSYM bundles found in a working directory."
        ),
    )
    p.add_argument(
        "--crash",
        metavar="FILE",
        help="Crash report file name, relative to the working directory.",
    )
    p.add_argument(
        "--dsym-dir",
        metavar="DIR",
        default=".",
        help="Working directory containing *.dSYM bundles (default: current directory).",
    )
    p.add_argument(
        "--output",
        metavar="FILE",
        help="Write the symbolicated report to this file instead of stdout.",
    )
    p.add_argument(
        "--stack-only",
        action="store_true",
        help="Emit only the crashed thread's backtrace, not the whole report.",
    )
    p.add_argument(
        "--dwarfdump",
        default="dwarfdump",
        help="dwarfdump executable (default: dwarfdump).",
    )
    p.add_argument(
        "--atos",
        default="atos",
        help="atos executable (default: atos).",
    )
    p.add_argument(
        "--xcrun",
        action="store_true",
        help="Run dwarfdump and atos through xcrun.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


def _relative(path: str, work_dir: Path) -> str:
    return path.replace(f"{escape_spaces(work_dir)}/", "")


def _log_index(symbol_files: List[SymbolFileInfo]) -> None:
    LOG.info(SEPARATOR)
    LOG.info("Found %d DWARF files in working directory:", len(symbol_files))
    for info in symbol_files:
        LOG.info("%s", info)
    LOG.info(SEPARATOR)


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

def symbolicate_report(
    report: str,
    symbol_files: List[SymbolFileInfo],
    resolve: AddressResolver,
    work_dir: Path = Path("."),
    stack_only: bool = False,
) -> str:
    """
    Symbolicate the crashed thread of a report.

    Returns:
        The full report with the crashed thread rewritten, or only the
        rewritten crashed thread when stack_only is set.
    """
    raw_stack = extract_crashed_thread_lines(report)
    images = get_binary_images(report)

    used = images_with_symbols(images, symbol_files)
    LOG.info("This crash report has %d binary images associated", len(images))
    LOG.info("But only %d have a corresponding DWARF file", len(used))
    LOG.info(
        "Symbolication will use: %s",
        ", ".join(_relative(info.path, work_dir) for info in used),
    )
    LOG.info(SEPARATOR)

    resolutions = symbolicate_lines(raw_stack, images, symbol_files, resolve)
    rendered = render_backtrace(resolutions)

    if stack_only:
        return "".join(line + "\n" for line in rendered)
    return merge_into_report(report, rendered)


def run(args: argparse.Namespace) -> int:
    work_dir = Path(args.dsym_dir).resolve()
    LOG.info("Working in %s", work_dir)

    if not args.crash:
        LOG.error("Provide crash file name with --crash flag")
        return 0

    crash_path = work_dir / args.crash
    if not crash_path.is_file():
        LOG.error("Crash file %s does not exist!", crash_path)
        return 0

    identify = functools.partial(
        run_dwarfdump_uuid,
        executable=args.dwarfdump,
        use_xcrun=args.xcrun,
    )
    resolver = AtosResolver(executable=args.atos, use_xcrun=args.xcrun)

    try:
        symbol_files = build_symbol_index(work_dir, identify=identify)
        _log_index(symbol_files)

        with crash_path.open("r", encoding="utf-8", errors="replace", newline="") as f:
            report = f.read()
        output = symbolicate_report(
            report,
            symbol_files,
            resolver,
            work_dir=work_dir,
            stack_only=args.stack_only,
        )

        if args.output:
            out_path = Path(args.output)
            LOG.info("Writing symbolicated report to: %s", out_path)
            with out_path.open("w", encoding="utf-8", newline="") as f:
                f.write(output)
        else:
            print(output, end="")
    except (DsymbolicateError, OSError) as e:
        LOG.error("%s", e)
        return 1

    return 0


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    args = build_argparser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    raise SystemExit(run(args))


if __name__ == "__main__":
    main()
