"""
dsymbolicate: symbolicate crash reports with the .dSYM bundles at hand.

Matches the crashed thread's frames to binary images, the images to DWARF
slices by UUID and architecture, and asks atos for the symbols.
"""

from dsymbolicate.dsym_index import SymbolFileInfo, build_symbol_index
from dsymbolicate.errors import DsymbolicateError, SymbolIndexError, ToolError
from dsymbolicate.renderer import merge_into_report, render_backtrace
from dsymbolicate.report_parser import (
    BacktraceLine,
    BinaryImage,
    extract_binary_image_lines,
    extract_crashed_thread_lines,
    get_binary_images,
    parse_backtrace_line,
    parse_binary_image_line,
)
from dsymbolicate.symbolizer import FrameResolution, symbolicate_lines
from dsymbolicate.tool_runner import AtosResolver

__version__ = "0.1.0"

__all__ = [
    "AtosResolver",
    "BacktraceLine",
    "BinaryImage",
    "DsymbolicateError",
    "FrameResolution",
    "SymbolFileInfo",
    "SymbolIndexError",
    "ToolError",
    "build_symbol_index",
    "extract_binary_image_lines",
    "extract_crashed_thread_lines",
    "get_binary_images",
    "merge_into_report",
    "parse_backtrace_line",
    "parse_binary_image_line",
    "render_backtrace",
    "symbolicate_lines",
]
