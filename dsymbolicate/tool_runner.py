#!/usr/bin/env python3
"""
tool_runner.py

Helpers to run the Xcode command line tools dsymbolicate depends on.

This module provides:

  - run_dwarfdump_uuid(): list the (UUID, arch) pairs of a DWARF slice.
  - AtosResolver: callable that resolves one address with atos and caches
    the answer, so identical frames only spawn atos once.

Commands are built as argv lists and run without a shell. dSYM paths stored
on SymbolFileInfo carry "\\ " escapes (see dsym_index.py); they are turned
back into real paths before they reach argv.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Tuple, Union

from dsymbolicate.errors import ToolError

LOG = logging.getLogger("tool_runner")


def escape_spaces(path: Union[str, Path]) -> str:
    """
    Escape spaces in a path for display and storage.

        "/tmp/My App.app.dSYM" -> "/tmp/My\\ App.app.dSYM"
    """
    return str(path).replace(" ", "\\ ")


def unescape_spaces(path: Union[str, Path]) -> str:
    """Inverse of escape_spaces()."""
    return str(path).replace("\\ ", " ")


def _run(argv: List[str], use_xcrun: bool) -> Tuple[int, str, str]:
    """
    Run a command and return (exit code, stdout, stderr).

    Raises:
        ToolError if the executable cannot be started.
    """
    if use_xcrun:
        argv = ["xcrun"] + argv

    LOG.debug("Running: %s", " ".join(shlex.quote(a) for a in argv))
    try:
        proc = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise ToolError(f"{argv[0]} not found when running: {' '.join(argv)}") from e
    except OSError as e:
        raise ToolError(f"Failed to run {argv[0]}: {e}") from e

    return proc.returncode, proc.stdout or "", proc.stderr or ""


def run_dwarfdump_uuid(
    path: Union[str, Path],
    executable: str = "dwarfdump",
    use_xcrun: bool = False,
) -> List[str]:
    """
    Run "dwarfdump --uuid" on a DWARF slice and return its output lines.

    A universal binary prints one line per architecture:

        UUID: 0F1E2D3C-4B5A-6978-8796-A5B4C3D2E1F0 (arm64) /path/to/MyApp
        UUID: 11111111-2222-3333-4444-555555555555 (x86_64) /path/to/MyApp

    A non-zero exit status is only logged; whatever was printed is still
    returned and lines that do not look like the above are skipped later.
    """
    code, output, errors = _run([executable, "--uuid", str(path)], use_xcrun)
    if code != 0:
        LOG.warning(
            "%s exited with code %d for %s: %s",
            executable,
            code,
            path,
            (errors or output).strip(),
        )
    elif errors.strip():
        LOG.warning("%s: %s", executable, errors.strip())
    return output.strip().splitlines()


def _last_line(output: str) -> str:
    lines = [line for line in output.splitlines() if line.strip()]
    return lines[-1] if lines else ""


class AtosResolver:
    """
    Address resolver backed by atos.

    Instances are callables with the resolver signature used by
    symbolizer.py:

        resolver(architecture, symbol_path, load_address, address) -> str

    symbol_path is expected in the escaped form stored on SymbolFileInfo.
    The answer is always a single line: the last non-empty line atos
    printed on stdout. Anything on stderr is logged.
    """

    def __init__(self, executable: str = "atos", use_xcrun: bool = False) -> None:
        self.executable = executable
        self.use_xcrun = use_xcrun
        # key: (architecture, symbol_path, load_address, address)
        self._cache: Dict[Tuple[str, str, str, str], str] = {}

    def __call__(
        self,
        architecture: str,
        symbol_path: str,
        load_address: str,
        address: str,
    ) -> str:
        key = (architecture, symbol_path, load_address, address)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        argv = [
            self.executable,
            "-arch",
            architecture,
            "-o",
            unescape_spaces(symbol_path),
            "-l",
            load_address,
            address,
        ]
        code, output, errors = _run(argv, self.use_xcrun)
        if code != 0:
            LOG.warning(
                "%s exited with code %d for %s at %s",
                self.executable,
                code,
                symbol_path,
                address,
            )
        if errors.strip():
            LOG.warning("%s: %s", self.executable, errors.strip())

        text = _last_line(output)
        self._cache[key] = text
        return text


__all__ = [
    "escape_spaces",
    "unescape_spaces",
    "run_dwarfdump_uuid",
    "AtosResolver",
]
