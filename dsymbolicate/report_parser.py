#!/usr/bin/env python3
"""
report_parser.py

Crash report parser for dsymbolicate.

Responsibilities:
  - Cut the two sections we care about out of a text crash report:
      * the crashed thread's backtrace (lines after "Thread N Crashed:")
      * the "Binary Images:" table
  - Parse a single binary-image row into a BinaryImage.
  - Parse a single backtrace row into a BacktraceLine.

Notes:
  - The report format mixes many kinds of lines. A line that does not look
    like what we expect is not an error; the parse helpers return None and
    the caller passes the line through untouched.
  - Addresses stay strings. We never do arithmetic on them here; atos gets
    the load address and the raw address and does the math itself.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------

# Binary image row:
#   "0x100f24000 - 0x100f2ffff MyApp arm64  <0f1e2d3c...> /var/.../MyApp"
#
# The two tokens after the load address ("-" and the high address) are
# dropped; everything after them is the name/arch block plus the identity
# block in angle brackets.
BINARY_IMAGE_RE = re.compile(
    r"""
    ^\s*
    (?P<load>0x[0-9a-fA-F]+)  # load address
    \s+\S+\s+\S+\s+           # '-' and the high address
    (?P<body>.*)              # '<name> <arch> <uuid> <path>'
    $
    """,
    re.VERBOSE,
)

# Backtrace row:
#   "0   MyApp    0x0000000100f2c5a4 0x100f24000 + 34212"
#
# Trailing "+ <decimal offset>" is optional.
BACKTRACE_LINE_RE = re.compile(
    r"""
    ^\s*
    (?P<index>\d+)            # frame index
    \s+
    (?P<body>.*?)             # '<image> <address> <load address>'
    (?:\s*\+\s*\d+)?          # optional '+ offset'
    \s*$
    """,
    re.VERBOSE,
)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BacktraceLine:
    """
    One unsymbolicated stack frame as written in the report.

    Fields:
        frame_index:   Leading frame number, as text.
        image_name:    Name of the binary that owns the frame.
        address:       Faulting address (e.g. '0x0000000100f2c5a4').
        load_address:  Load address of the owning binary (e.g. '0x100f24000').
    """
    frame_index: str
    image_name: str
    address: str
    load_address: str


@dataclass(frozen=True)
class BinaryImage:
    """
    One row of the report's "Binary Images:" table.
    """
    load_address: str
    name: str
    architecture: str
    uuid: str


class _ScanState(enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"


# ---------------------------------------------------------------------------
# Section extraction
# ---------------------------------------------------------------------------

def _is_crashed_thread_header(line: str) -> bool:
    return "Thread" in line and "Crashed:" in line


def crashed_thread_bounds(lines: List[str]) -> Tuple[int, int]:
    """
    Locate the crashed thread's backtrace inside a list of report lines.

    Returns:
        Half-open (start, end) index range of the backtrace lines. The
        "Thread N Crashed:" header itself is not part of the range; the range
        ends right before the next line mentioning "Thread" (the next thread
        dump or the thread state block), or at the end of the report.
        When there is no crashed thread header, returns (len(lines), len(lines)).
    """
    state = _ScanState.IDLE
    start = len(lines)

    for i, line in enumerate(lines):
        if state is _ScanState.RECORDING:
            if "Thread" in line:
                return start, i
            continue

        if _is_crashed_thread_header(line):
            state = _ScanState.RECORDING
            start = i + 1

    return start, len(lines)


def extract_crashed_thread_lines(report: str) -> List[str]:
    """
    Return the raw lines of the crashed thread's backtrace, in report order.

    Empty list if the report has no "Thread N Crashed:" header.
    """
    lines = report.splitlines()
    start, end = crashed_thread_bounds(lines)
    return lines[start:end]


def extract_binary_image_lines(report: str) -> List[str]:
    """
    Return the rows of the "Binary Images:" table (trimmed), in report order.

    Recording starts after the header and stops at the first line that does
    not start with "0x". Empty list if there is no such header.
    """
    state = _ScanState.IDLE
    rows: List[str] = []

    for line in report.splitlines():
        clean = line.strip()

        if state is _ScanState.RECORDING:
            if not clean.startswith("0x"):
                break
            rows.append(clean)
            continue

        if "Binary Images:" in line:
            state = _ScanState.RECORDING

    return rows


def get_binary_images(report: str) -> List[BinaryImage]:
    """
    Parse the "Binary Images:" table of a report. Unparsable rows are dropped.
    """
    images: List[BinaryImage] = []
    for row in extract_binary_image_lines(report):
        image = parse_binary_image_line(row)
        if image is not None:
            images.append(image)
    return images


# ---------------------------------------------------------------------------
# Line parsers
# ---------------------------------------------------------------------------

def parse_binary_image_line(line: str) -> Optional[BinaryImage]:
    """
    Try to parse one binary-image row.

    Returns:
        BinaryImage, or None when the row lacks the load address, the '<'/'>'
        identity block, or an architecture token.
    """
    m = BINARY_IMAGE_RE.match(line)
    if not m:
        return None

    name_block, sep, identity_block = m.group("body").partition("<")
    if not sep or ">" not in identity_block:
        return None
    uuid = identity_block.split(">", 1)[0].strip()

    tokens = name_block.split()
    if not tokens:
        return None
    architecture = tokens[-1]
    # Newer reports mark the app's own images with a leading '+'.
    name = " ".join(tokens[:-1]).strip()
    if name.startswith("+"):
        name = name[1:]

    return BinaryImage(
        load_address=m.group("load"),
        name=name,
        architecture=architecture,
        uuid=uuid,
    )


def parse_backtrace_line(line: str) -> Optional[BacktraceLine]:
    """
    Try to parse one backtrace row of an unsymbolicated report.

    Returns:
        BacktraceLine if the row has a frame index followed by at least an
        address and a load address; otherwise None (blank separators and
        other non-frame lines).
    """
    m = BACKTRACE_LINE_RE.match(line)
    if not m:
        return None

    parts = m.group("body").split()
    if len(parts) < 2:
        return None

    return BacktraceLine(
        frame_index=m.group("index"),
        image_name=" ".join(parts[:-2]),
        address=parts[-2],
        load_address=parts[-1],
    )


__all__ = [
    "BacktraceLine",
    "BinaryImage",
    "crashed_thread_bounds",
    "extract_crashed_thread_lines",
    "extract_binary_image_lines",
    "get_binary_images",
    "parse_binary_image_line",
    "parse_backtrace_line",
]
