"""Custom exceptions for the :mod:`pblmix` package."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple


class PBLMixError(Exception):
    """Base exception for boundary layer mixing errors."""


class SetupError(PBLMixError, RuntimeError):
    """Per-column state could not be set up for the requested grid.

    ``tag`` names the resource that failed, e.g. ``"pbl_mix:max_chem_lev"``.
    """

    def __init__(self, message: str, tag: str):
        super().__init__(f"{message} [{tag}]")
        self.tag = tag


class InvariantViolation(PBLMixError, ValueError):
    """Boundary layer diagnosis produced non-physical column state.

    ``columns`` lists the (i, j) coordinates of every offending column.
    """

    def __init__(self, message: str, columns: Optional[Iterable[Tuple[int, int]]] = None):
        self.columns: List[Tuple[int, int]] = [tuple(c) for c in (columns or [])]
        if self.columns:
            shown = ", ".join(f"({i}, {j})" for i, j in self.columns[:10])
            more = "" if len(self.columns) <= 10 else f" and {len(self.columns) - 10} more"
            message = f"{message} at columns {shown}{more}"
        super().__init__(message)


class UnitConversionError(PBLMixError, ValueError):
    """Species units are unknown or cannot be converted."""


__all__ = [
    "PBLMixError",
    "SetupError",
    "InvariantViolation",
    "UnitConversionError",
]
