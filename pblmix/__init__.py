"""
Planetary boundary layer height diagnosis and full PBL tracer mixing.
"""

from pblmix.errors import InvariantViolation, PBLMixError, SetupError, UnitConversionError
from pblmix.geometry import GridGeometry
from pblmix.pbl_types import (
    ChemistryState,
    Meteorology,
    MixingDiagnostics,
    PBLMixContext,
    PBLState,
    VerticalProfile,
)
from pblmix.pbl_height import compute_pbl_height
from pblmix.pbl_mixing import mix
from pblmix.pbl_mix import do_pbl_mix

__all__ = [
    "PBLMixError",
    "SetupError",
    "InvariantViolation",
    "UnitConversionError",
    "GridGeometry",
    "ChemistryState",
    "Meteorology",
    "MixingDiagnostics",
    "PBLMixContext",
    "PBLState",
    "VerticalProfile",
    "compute_pbl_height",
    "mix",
    "do_pbl_mix",
]
