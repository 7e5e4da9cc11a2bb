"""
Full boundary layer mixing of advected tracers.

Tracers below the PBL top are replaced by their air-mass weighted column
mean; the level straddling the PBL top is moved toward the mean in
proportion to the fraction of it lying under the top. Mixing ratios must be
in an air-mass based unit (v/v dry) on entry.
"""

import jax
import jax.numpy as jnp
from typing import Sequence, Tuple

from pblmix.pbl_types import PBLState


def mixing_weights(top_level: jnp.ndarray, top_fraction: jnp.ndarray, nlev: int) -> jnp.ndarray:
    """
    Fraction of each level taking part in the mixing.

    Args:
        top_level: Level containing the PBL top, 1-based ()
        top_fraction: Fraction of top_level under the PBL top ()
        nlev: Number of levels

    Returns:
        1 below the top, top_fraction at the top, 0 above (nlev,)
    """
    levels = jnp.arange(1, nlev + 1)
    return jnp.where(levels < top_level, 1.0, jnp.where(levels == top_level, top_fraction, 0.0))


def mix_single_column(top_level: jnp.ndarray, top_fraction: jnp.ndarray,
                      air_mass: jnp.ndarray, ratio: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Mix all advected tracers of one column.

    Args:
        top_level: Level containing the PBL top, 1-based ()
        top_fraction: Fraction of top_level under the PBL top ()
        air_mass: Dry air mass (kg) (kx,)
        ratio: Mixing ratios (v/v) (kx, nadv)

    Returns:
        Tuple of (new mixing ratios (kx, nadv), mass change (kx, nadv))
    """
    weighted_air = mixing_weights(top_level, top_fraction, air_mass.shape[0]) * air_mass

    # Air and tracer mass under the PBL top
    aa = jnp.sum(weighted_air)
    cc = jnp.sum(weighted_air[:, None] * ratio, axis=0)

    # Mean mixing ratio under the PBL top; with no air under the top
    # weighted_air is zero everywhere, so any finite mean gives no change
    column_mean = cc / jnp.where(aa > 0.0, aa, 1.0)

    mass_delta = weighted_air[:, None] * (column_mean[None, :] - ratio)
    new_ratio = ratio + mass_delta / air_mass[:, None]
    return new_ratio, mass_delta


@jax.jit
def mix_columns(top_level: jnp.ndarray, top_fraction: jnp.ndarray,
                air_mass: jnp.ndarray, ratio: jnp.ndarray) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Mix advected tracers in every column of an (ix, il) grid.

    Args:
        top_level: (ix, il)
        top_fraction: (ix, il)
        air_mass: Dry air mass (kg) (ix, il, kx)
        ratio: Mixing ratios (v/v) (ix, il, kx, nadv)

    Returns:
        Tuple of (new mixing ratios, mass change), both (ix, il, kx, nadv)
    """
    nodal_shape = top_level.shape
    ncols = top_level.size
    kx, nadv = ratio.shape[-2:]

    new_ratio, mass_delta = jax.vmap(mix_single_column)(
        top_level.reshape(ncols),
        top_fraction.reshape(ncols),
        air_mass.reshape(ncols, kx),
        ratio.reshape(ncols, kx, nadv),
    )
    return new_ratio.reshape(nodal_shape + (kx, nadv)), mass_delta.reshape(nodal_shape + (kx, nadv))


def mix(pbl_state: PBLState, species: jnp.ndarray, air_mass: jnp.ndarray,
        advect_ids: Sequence[int]) -> Tuple[jnp.ndarray, jnp.ndarray]:
    """
    Complete mixing of advected species underneath the PBL top.

    Species not listed in ``advect_ids`` are returned unchanged. The caller
    replaces its species field with the returned one; nothing else may write
    to that field while the call is in progress.

    Args:
        pbl_state: Diagnosed PBL state
        species: Mixing ratios (v/v dry) (ix, il, kx, nspecies)
        air_mass: Dry air mass (kg) (ix, il, kx)
        advect_ids: Indices of advected species along the last axis

    Returns:
        Tuple of (updated species (ix, il, kx, nspecies), mass change (ix, il, kx, nadv))
    """
    if species.ndim != 4 or species.shape[:3] != air_mass.shape:
        raise ValueError(f"Species shape {species.shape} does not match air mass shape {air_mass.shape}")
    if pbl_state.top_level.shape != air_mass.shape[:2]:
        raise ValueError(f"PBL state grid {pbl_state.top_level.shape} does not match air mass grid "
                         f"{air_mass.shape[:2]}")

    advect_ids = jnp.asarray(advect_ids, dtype=jnp.int32)
    if advect_ids.size == 0:
        return species, jnp.zeros(air_mass.shape + (0,), dtype=species.dtype)

    new_ratio, mass_delta = mix_columns(
        pbl_state.top_level, pbl_state.top_fraction, air_mass, species[..., advect_ids]
    )
    return species.at[..., advect_ids].set(new_ratio), mass_delta
