"""Exceptions raised by dsymbolicate."""

from __future__ import annotations


class DsymbolicateError(Exception):
    """Base class for fatal errors that abort a symbolication run."""


class SymbolIndexError(DsymbolicateError):
    """A dSYM bundle could not be enumerated; the symbol index would be incomplete."""


class ToolError(DsymbolicateError):
    """An external tool (dwarfdump, atos) could not be started."""


__all__ = [
    "DsymbolicateError",
    "SymbolIndexError",
    "ToolError",
]
