"""
Physical constants for boundary layer diagnosis and mixing

This module contains the physical constants used by the PBL height
diagnosis and the tracer mixing routines. Values follow the constants
used by chemistry transport models for barometric PBL top estimates and
species mass bookkeeping.
"""

from typing import NamedTuple


class PhysicalConstants(NamedTuple):
    """Physical constants for PBL physics"""

    # Atmospheric structure
    scale_height: float = 7600.0  # Atmospheric scale height (m)
    g0: float = 9.80665           # Standard gravity (m/s²)
    g0_100: float = 100.0 / 9.80665  # hPa -> kg/m² conversion (100/g0)

    # Thermodynamic constants
    rd: float = 287.0             # Gas constant for dry air (J/K/kg)

    # Molecular weights
    airmw: float = 28.9644        # Molecular weight of dry air (g/mol)

    # Numerical tolerances
    fraction_tolerance: float = 1.0e-3  # Allowed |sum(F_OF_PBL) - 1|

    @classmethod
    def default(cls) -> 'PhysicalConstants':
        """Return default physical constants"""
        return cls()


# Global instance of physical constants
physical_constants = PhysicalConstants.default()

# Export individual constants for convenience
scale_height = physical_constants.scale_height
g0 = physical_constants.g0
g0_100 = physical_constants.g0_100
rd = physical_constants.rd
airmw = physical_constants.airmw
fraction_tolerance = physical_constants.fraction_tolerance
