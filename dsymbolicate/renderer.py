#!/usr/bin/env python3
"""
renderer.py

Render resolved frames back into the report layout.

Rules:
  - A resolved line keeps everything before its first "0x" (frame index and
    image name columns) and gets the atos output appended in place of the
    addresses.
  - Every other line is emitted unchanged.
  - One output line per input line; nothing is reordered, dropped or merged.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from dsymbolicate.report_parser import crashed_thread_bounds
from dsymbolicate.symbolizer import FrameResolution


def render_line(raw_line: str, text: Optional[str]) -> str:
    """
    "0   MyApp   0x0000000100f2c5a4 0x100f24000 + 34212", "main (in MyApp) (main.m:12)"
        -> "0   MyApp   main (in MyApp) (main.m:12)"
    """
    if text is None:
        return raw_line
    index = raw_line.find("0x")
    if index < 0:
        return raw_line
    # One line in, one line out.
    lines = [line for line in text.splitlines() if line.strip()]
    return raw_line[:index] + (lines[-1] if lines else "")


def render_backtrace(resolutions: Iterable[FrameResolution]) -> List[str]:
    return [render_line(r.raw_line, r.text) for r in resolutions]


def merge_into_report(report: str, rendered: List[str]) -> str:
    """
    Replace the crashed thread's backtrace inside the full report text.

    Parameters:
        report:
            Original report text.
        rendered:
            Output of render_backtrace() for that report's crashed thread.
            Must have the same number of lines as the extracted backtrace.

    Lines outside the backtrace are kept byte for byte, line endings
    included. Replaced lines keep the line ending of the line they replace.
    """
    lines = report.splitlines(keepends=True)
    start, end = crashed_thread_bounds(lines)
    if end - start != len(rendered):
        raise ValueError(
            f"rendered backtrace has {len(rendered)} lines, report has {end - start}"
        )

    out: List[str] = lines[:start]
    for original, new in zip(lines[start:end], rendered):
        body = original.rstrip("\r\n")
        out.append(new + original[len(body):])
    out.extend(lines[end:])
    return "".join(out)


__all__ = [
    "render_line",
    "render_backtrace",
    "merge_into_report",
]
