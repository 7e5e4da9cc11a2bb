"""
Budget diagnostics for boundary layer mixing.

Column masses are taken before and after mixing so the mixing budget can be
reported for the full column and for the part of the column under the PBL
top. The per-level mass change from the mixing step is also converted to a
mass flux (kg/s) and a mixing ratio tendency.
"""

import jax
import jax.numpy as jnp
from typing import Optional, Tuple

from pblmix.constants import airmw
from pblmix.pbl_types import MixingDiagnostics


@jax.jit
def compute_column_mass(species_vv: jnp.ndarray, air_mass: jnp.ndarray, molecular_weights: jnp.ndarray,
                        weights: Optional[jnp.ndarray] = None) -> jnp.ndarray:
    """
    Species mass summed over a column.

    Args:
        species_vv: Mixing ratios (v/v dry) (ix, il, kx, nadv)
        air_mass: Dry air mass (kg) (ix, il, kx)
        molecular_weights: (g/mol) (nadv,)
        weights (optional): Fraction of each box counted (ix, il, kx), e.g. fraction_under_top

    Returns:
        Column mass (kg) (ix, il, nadv)
    """
    box_air = air_mass if weights is None else air_mass * weights
    return jnp.sum(box_air[..., None] * species_vv, axis=2) * molecular_weights / airmw


def compute_column_masses(species_vv: jnp.ndarray, air_mass: jnp.ndarray, molecular_weights: jnp.ndarray,
                          fraction_under_top: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """Full column and PBL column masses (kg), each (ix, il, nadv)."""
    return (
        compute_column_mass(species_vv, air_mass, molecular_weights),
        compute_column_mass(species_vv, air_mass, molecular_weights, fraction_under_top),
    )


def compute_budget(mass_before: jnp.ndarray, mass_after: jnp.ndarray, dt: float) -> jnp.ndarray:
    """Mass budget (kg/s)"""
    return (mass_after - mass_before) / dt


def compute_mixing_mass_flux(mass_delta: jnp.ndarray, molecular_weights: jnp.ndarray, dt: float) -> jnp.ndarray:
    """
    Mass flux due to boundary layer mixing.

    Args:
        mass_delta: Mixing mass change ((v/v) * kg air) (ix, il, kx, nadv)
        molecular_weights: (g/mol) (nadv,)
        dt: Time step (s)

    Returns:
        Mass flux (kg/s) (ix, il, kx, nadv)
    """
    return mass_delta / ((airmw / molecular_weights) * dt)


def compute_tendency(before: jnp.ndarray, after: jnp.ndarray, dt: float) -> jnp.ndarray:
    """Mixing ratio tendency per second"""
    return (after - before) / dt


def record_mixing_diagnostics(ratio_before: jnp.ndarray, ratio_after: jnp.ndarray, mass_delta: jnp.ndarray,
                              air_mass: jnp.ndarray, molecular_weights: jnp.ndarray,
                              fraction_under_top: jnp.ndarray, dt: float) -> MixingDiagnostics:
    """
    Collect all mixing diagnostics for the advected species.

    Args:
        ratio_before: Advected mixing ratios before mixing (v/v dry) (ix, il, kx, nadv)
        ratio_after: Advected mixing ratios after mixing (v/v dry) (ix, il, kx, nadv)
        mass_delta: Mixing mass change (ix, il, kx, nadv)
        air_mass: Dry air mass (kg) (ix, il, kx)
        molecular_weights: Advected species molecular weights (g/mol) (nadv,)
        fraction_under_top: (ix, il, kx)
        dt: Time step (s)

    Returns:
        MixingDiagnostics
    """
    full_before, pbl_before = compute_column_masses(ratio_before, air_mass, molecular_weights, fraction_under_top)
    full_after, pbl_after = compute_column_masses(ratio_after, air_mass, molecular_weights, fraction_under_top)
    return MixingDiagnostics(
        mass_delta=mass_delta,
        mass_flux=compute_mixing_mass_flux(mass_delta, molecular_weights, dt),
        tendency=compute_tendency(ratio_before, ratio_after, dt),
        budget_full=compute_budget(full_before, full_after, dt),
        budget_pbl=compute_budget(pbl_before, pbl_after, dt),
    )
