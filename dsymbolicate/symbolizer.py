#!/usr/bin/env python3
"""
symbolizer.py

Frame resolution for dsymbolicate.

Responsibilities:
  - Take raw backtrace lines of the crashed thread.
  - Match each frame to its BinaryImage by (load address, image name).
  - Match the image to a SymbolFileInfo by (UUID, architecture).
  - Ask the address resolver (atos, or a fake in tests) for the symbol text.

Lookup misses are normal (system frameworks rarely have a local dSYM) and
simply leave the frame unresolved.

This module does NOT parse the report sections or render output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from dsymbolicate.dsym_index import SymbolFileInfo
from dsymbolicate.report_parser import BacktraceLine, BinaryImage, parse_backtrace_line

LOG = logging.getLogger("symbolizer")

# resolve(architecture, symbol_path, load_address, address) -> symbol text
AddressResolver = Callable[[str, str, str, str], str]


@dataclass(frozen=True)
class FrameResolution:
    """
    Outcome of resolving one raw backtrace line.

    text is None when the line is not a frame, or when no image or no
    symbol file matched.
    """
    raw_line: str
    frame: Optional[BacktraceLine] = None
    image: Optional[BinaryImage] = None
    symbol_file: Optional[SymbolFileInfo] = None
    text: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.text is not None


def find_binary_image(
    frame: BacktraceLine,
    images: Iterable[BinaryImage],
) -> Optional[BinaryImage]:
    """First image whose load address and name equal the frame's."""
    for image in images:
        if image.load_address == frame.load_address and image.name == frame.image_name:
            return image
    return None


def find_symbol_file(
    image: BinaryImage,
    symbol_files: Iterable[SymbolFileInfo],
) -> Optional[SymbolFileInfo]:
    """First symbol file with the image's UUID and architecture."""
    for info in symbol_files:
        if info.matches(image):
            return info
    return None


def images_with_symbols(
    images: Iterable[BinaryImage],
    symbol_files: Sequence[SymbolFileInfo],
) -> List[SymbolFileInfo]:
    """
    Symbol files that will be used for this report, one per matched image.
    """
    used: List[SymbolFileInfo] = []
    for image in images:
        info = find_symbol_file(image, symbol_files)
        if info is not None:
            used.append(info)
    return used


def resolve_frame(
    raw_line: str,
    images: Sequence[BinaryImage],
    symbol_files: Sequence[SymbolFileInfo],
    resolve: AddressResolver,
) -> FrameResolution:
    frame = parse_backtrace_line(raw_line)
    if frame is None:
        return FrameResolution(raw_line=raw_line)

    image = find_binary_image(frame, images)
    if image is None:
        LOG.debug("No binary image for frame %s (%s)", frame.frame_index, frame.image_name)
        return FrameResolution(raw_line=raw_line, frame=frame)

    symbol_file = find_symbol_file(image, symbol_files)
    if symbol_file is None:
        LOG.debug("No DWARF file for %s <%s> %s", image.name, image.uuid, image.architecture)
        return FrameResolution(raw_line=raw_line, frame=frame, image=image)

    text = resolve(
        image.architecture,
        symbol_file.path,
        image.load_address,
        frame.address,
    )
    return FrameResolution(
        raw_line=raw_line,
        frame=frame,
        image=image,
        symbol_file=symbol_file,
        text=text,
    )


def symbolicate_lines(
    raw_lines: Iterable[str],
    images: Sequence[BinaryImage],
    symbol_files: Sequence[SymbolFileInfo],
    resolve: AddressResolver,
) -> List[FrameResolution]:
    """
    Resolve every raw backtrace line, in order. One result per input line.
    """
    results = [resolve_frame(line, images, symbol_files, resolve) for line in raw_lines]
    LOG.debug(
        "Resolved %d of %d backtrace lines",
        sum(1 for r in results if r.resolved),
        len(results),
    )
    return results


__all__ = [
    "AddressResolver",
    "FrameResolution",
    "find_binary_image",
    "find_symbol_file",
    "images_with_symbols",
    "resolve_frame",
    "symbolicate_lines",
]
