"""
Species unit conversion for boundary layer mixing

Mixing operates on dry volume mixing ratios. This module converts species
between the units a chemistry state may carry and returns the original unit
so the field can be converted back after mixing.

Supported units:
- 'kg': species mass per grid box
- 'kg/kg dry': mass mixing ratio with respect to dry air
- 'v/v dry': volume mixing ratio with respect to dry air

Date: 2025-01-10
"""

import jax.numpy as jnp
from typing import Tuple

from pblmix.constants import airmw
from pblmix.errors import UnitConversionError
from pblmix.pbl_types import ChemistryState

KG = 'kg'
KG_KG_DRY = 'kg/kg dry'
VV_DRY = 'v/v dry'

SUPPORTED_UNITS = (KG, KG_KG_DRY, VV_DRY)


def _check_unit(unit: str):
    if unit not in SUPPORTED_UNITS:
        raise UnitConversionError(f"Unknown species unit '{unit}'. Must be one of: {list(SUPPORTED_UNITS)}")


def to_mass_mixing_ratio(species: jnp.ndarray, unit: str, air_mass: jnp.ndarray,
                         molecular_weights: jnp.ndarray) -> jnp.ndarray:
    """
    Convert species to kg/kg dry.

    Args:
        species: Species field (ix, il, kx, nspecies) in ``unit``
        unit: Current unit
        air_mass: Dry air mass (kg) (ix, il, kx)
        molecular_weights: Species molecular weights (g/mol) (nspecies,)

    Returns:
        Species in kg/kg dry
    """
    _check_unit(unit)
    if unit == KG:
        return species / air_mass[..., None]
    if unit == VV_DRY:
        return species * molecular_weights / airmw
    return species


def from_mass_mixing_ratio(species: jnp.ndarray, unit: str, air_mass: jnp.ndarray,
                           molecular_weights: jnp.ndarray) -> jnp.ndarray:
    """
    Convert species from kg/kg dry to ``unit``.
    """
    _check_unit(unit)
    if unit == KG:
        return species * air_mass[..., None]
    if unit == VV_DRY:
        return species * airmw / molecular_weights
    return species


def convert_species_units(species: jnp.ndarray, air_mass: jnp.ndarray, molecular_weights: jnp.ndarray,
                          from_unit: str, to_unit: str) -> jnp.ndarray:
    """
    Convert a species field between supported units.

    Args:
        species: Species field (ix, il, kx, nspecies)
        air_mass: Dry air mass (kg) (ix, il, kx)
        molecular_weights: (g/mol) (nspecies,)
        from_unit: Current unit
        to_unit: Target unit

    Returns:
        Species field in ``to_unit``
    """
    _check_unit(from_unit)
    _check_unit(to_unit)
    if from_unit == to_unit:
        return species
    mmr = to_mass_mixing_ratio(species, from_unit, air_mass, molecular_weights)
    return from_mass_mixing_ratio(mmr, to_unit, air_mass, molecular_weights)


def convert_chemistry_units(chem: ChemistryState, air_mass: jnp.ndarray,
                            target_unit: str) -> Tuple[ChemistryState, str]:
    """
    Convert all species of a chemistry state to ``target_unit``.

    Returns:
        Tuple of (converted chemistry state, original unit)
    """
    species = convert_species_units(chem.species, air_mass, chem.molecular_weights, chem.units, target_unit)
    return chem.copy(species=species, units=target_unit), chem.units
