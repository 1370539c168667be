#!/usr/bin/env python3
"""
dsym_index.py

Builds the symbol index: every DWARF slice found in the .dSYM bundles of a
working directory, keyed by (UUID, architecture).

Typical bundle layout:
    <work_dir>/MyApp.app.dSYM/Contents/Resources/DWARF/MyApp

Each slice is identified with "dwarfdump --uuid" (see tool_runner.py). A
universal slice yields one SymbolFileInfo per architecture, all sharing the
same path.

If a bundle cannot be enumerated the whole run is aborted: a partial index
would quietly leave frames unresolved or, worse, resolved against the wrong
bundle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from dsymbolicate.errors import SymbolIndexError
from dsymbolicate.report_parser import BinaryImage
from dsymbolicate.tool_runner import escape_spaces, run_dwarfdump_uuid

LOG = logging.getLogger("dsym_index")

DSYM_SUFFIX = ".dSYM"
DWARF_SUBDIR = Path("Contents") / "Resources" / "DWARF"

# identify(slice_path) -> lines of "UUID: <uuid> (<arch>) <path>"
Identifier = Callable[[Path], List[str]]


def normalize_uuid(uuid: str) -> str:
    """'0F1E2D3C-4B5A-...' -> '0f1e2d3c4b5a...'"""
    return uuid.lower().replace("-", "")


@dataclass(frozen=True)
class SymbolFileInfo:
    """
    One architecture slice of a DWARF file inside a dSYM bundle.

    Fields:
        path:          Slice path, spaces escaped as "\\ " for command lines.
        uuid:          UUID as printed by dwarfdump.
        architecture:  Architecture name, e.g. 'arm64', 'x86_64'.
    """
    path: str
    uuid: str
    architecture: str

    @property
    def dsym_name(self) -> str:
        """Name of the .dSYM bundle holding this slice, or the path itself."""
        for part in self.path.split("/"):
            if part.endswith(DSYM_SUFFIX):
                return part
        return self.path

    def matches(self, image: BinaryImage) -> bool:
        if normalize_uuid(self.uuid) != normalize_uuid(image.uuid):
            return False
        return self.architecture == image.architecture

    def __str__(self) -> str:
        return f"{{ UUID: {self.uuid}, arch: {self.architecture}, dSYM: {self.dsym_name} }}"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_dwarfdump_line(line: str) -> Optional[SymbolFileInfo]:
    """
    Parse one line of "dwarfdump --uuid" output:

        UUID: 0F1E2D3C-4B5A-6978-8796-A5B4C3D2E1F0 (arm64) /path/My App

    Returns None for lines without the "(arch)" part.
    """
    head, sep, tail = line.partition(")")
    if not sep:
        return None

    uuid_part, sep, architecture = head.partition("(")
    if not sep:
        return None

    return SymbolFileInfo(
        path=escape_spaces(tail.strip()),
        uuid=uuid_part.replace("UUID:", "").strip(),
        architecture=architecture,
    )


# ---------------------------------------------------------------------------
# Enumeration
# ---------------------------------------------------------------------------

def find_dsym_bundles(work_dir: Path) -> List[Path]:
    """
    Return the .dSYM bundles directly under work_dir, sorted by name.
    """
    try:
        entries = sorted(work_dir.iterdir())
    except OSError as e:
        raise SymbolIndexError(f"Cannot list working directory {work_dir}: {e}") from e

    return [p for p in entries if p.name.endswith(DSYM_SUFFIX)]


def list_dwarf_slices(bundle: Path) -> List[Path]:
    """
    Return the DWARF files inside a bundle's Contents/Resources/DWARF.

    Hidden files (e.g. .DS_Store) are skipped.

    Raises:
        SymbolIndexError if the DWARF directory is missing or unreadable.
    """
    dwarf_dir = bundle / DWARF_SUBDIR
    try:
        entries = sorted(dwarf_dir.iterdir())
    except OSError as e:
        raise SymbolIndexError(f"Cannot enumerate {dwarf_dir}: {e}") from e

    return [p for p in entries if not p.name.startswith(".")]


def _warn_duplicates(symbol_files: List[SymbolFileInfo]) -> None:
    """
    Log (uuid, arch) keys served by more than one slice. The first one wins.
    """
    first_seen: Dict[Tuple[str, str], SymbolFileInfo] = {}
    for info in symbol_files:
        key = (normalize_uuid(info.uuid), info.architecture)
        winner = first_seen.setdefault(key, info)
        if winner is not info:
            LOG.warning(
                "Duplicate DWARF for UUID %s (%s): using %s, ignoring %s",
                info.uuid,
                info.architecture,
                winner.dsym_name,
                info.dsym_name,
            )


def build_symbol_index(
    work_dir: Path,
    identify: Identifier = run_dwarfdump_uuid,
) -> List[SymbolFileInfo]:
    """
    Collect SymbolFileInfo for every slice of every .dSYM bundle in work_dir.

    Parameters:
        work_dir:
            Directory scanned (non-recursively) for *.dSYM bundles.
        identify:
            Callable returning "dwarfdump --uuid"-style lines for a slice.

    Returns:
        SymbolFileInfo list in bundle/slice order. Lookups take the first
        match, so for duplicated (uuid, arch) keys the bundle that sorts
        first by name wins.
    """
    symbol_files: List[SymbolFileInfo] = []

    for bundle in find_dsym_bundles(work_dir):
        for dwarf_file in list_dwarf_slices(bundle):
            for line in identify(dwarf_file):
                info = parse_dwarfdump_line(line)
                if info is not None:
                    symbol_files.append(info)

    _warn_duplicates(symbol_files)
    return symbol_files


__all__ = [
    "SymbolFileInfo",
    "normalize_uuid",
    "parse_dwarfdump_line",
    "find_dsym_bundles",
    "list_dwarf_slices",
    "build_symbol_index",
]
