"""
PBL height diagnosis.

This module locates the model level containing the top of the planetary
boundary layer in every column, the fraction of that level lying below the
top, and the per-level share of the PBL mass. The PBL top pressure follows
from the barometric law applied to the boundary layer height in meters.
"""

import logging
from functools import partial
from typing import Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax import lax

from pblmix.constants import fraction_tolerance, scale_height
from pblmix.errors import InvariantViolation
from pblmix.geometry import GridGeometry
from pblmix.pbl_types import Meteorology, PBLMixContext, PBLState, VerticalProfile

logger = logging.getLogger(__name__)


def pbl_top_pressure(surface_pressure: jnp.ndarray, pblh: jnp.ndarray,
                     scale_height: float = scale_height) -> jnp.ndarray:
    """
    Pressure at the PBL top from the barometric law.

    Args:
        surface_pressure: Surface pressure (hPa)
        pblh: Boundary layer height (m)
        scale_height: Atmospheric scale height (m)

    Returns:
        PBL top pressure (hPa)
    """
    return surface_pressure * jnp.exp(-pblh / scale_height)


def pbl_single_column(pedge: jnp.ndarray, bxheight: jnp.ndarray, top_pressure: jnp.ndarray,
                      max_chem_lev: int):
    """
    Diagnose the PBL top for one column.

    Args:
        pedge: Pressure edges (hPa) (kx+1,), pedge[0] is the surface
        bxheight: Box heights (m) (kx,)
        top_pressure: PBL top pressure (hPa) ()
        max_chem_lev: Number of lowest levels that get a PBL profile

    Returns:
        Tuple of (column scalars, (fraction_of_pbl, fraction_under_top, in_pbl), fraction sum)
    """
    kx = bxheight.shape[0]
    p_bot = pedge[:-1]
    p_top = pedge[1:]

    # Walk up from the surface; a box stays inside while the PBL top is at or
    # above its upper edge. The first box whose upper edge is crossed holds the top.
    def scan_level(inside, p_upper):
        inside = inside & (top_pressure <= p_upper)
        return inside, inside

    _, in_pbl = lax.scan(scan_level, jnp.array(True), p_top)

    n_inside = jnp.sum(in_pbl.astype(jnp.int32))
    found = n_inside < kx
    top_level = jnp.where(found, n_inside + 1, 0).astype(jnp.int32)

    k = jnp.clip(top_level - 1, 0, kx - 1)
    top_fraction = 1.0 - (top_pressure - p_top[k]) / (p_bot[k] - p_top[k])
    top_fraction = jnp.where(found, top_fraction, 0.0)

    thickness_pressure = pedge[0] - top_pressure
    top_level_units = (top_level - 1) + top_fraction

    levels = jnp.arange(1, kx + 1)
    below = levels < top_level
    at_top = levels == top_level
    active = levels <= max_chem_lev

    delp = p_bot - p_top
    fraction_of_pbl = jnp.where(
        below, delp / thickness_pressure,
        jnp.where(at_top, (p_bot - top_pressure) / thickness_pressure, 0.0)
    )
    fraction_under_top = jnp.where(below, 1.0, jnp.where(at_top, top_fraction, 0.0))

    fraction_of_pbl = jnp.where(active, fraction_of_pbl, 0.0)
    fraction_under_top = jnp.where(active, fraction_under_top, 0.0)

    top_height_m = jnp.sum(bxheight * fraction_under_top)

    scalars = (top_level, top_fraction, top_pressure, thickness_pressure, top_height_m, top_level_units)
    return scalars, (fraction_of_pbl, fraction_under_top, in_pbl), jnp.sum(fraction_of_pbl)


@partial(jax.jit, static_argnames=['max_chem_lev'])
def diagnose_columns(pedge: jnp.ndarray, bxheight: jnp.ndarray, top_pressure: jnp.ndarray,
                     max_chem_lev: int) -> Tuple[PBLState, VerticalProfile, jnp.ndarray]:
    """
    Diagnose the PBL top for every column of an (ix, il) grid.

    Args:
        pedge: Pressure edges (hPa) (ix, il, kx+1)
        bxheight: Box heights (m) (ix, il, kx)
        top_pressure: PBL top pressure (hPa) (ix, il)
        max_chem_lev: Chemically active depth

    Returns:
        Tuple of (PBLState, VerticalProfile, sum of fraction_of_pbl (ix, il))
    """
    nodal_shape = top_pressure.shape
    kx = bxheight.shape[-1]
    ncols = top_pressure.size

    scalars, profiles, fraction_sum = jax.vmap(
        pbl_single_column, in_axes=(0, 0, 0, None)
    )(pedge.reshape(ncols, kx + 1), bxheight.reshape(ncols, kx), top_pressure.reshape(ncols), max_chem_lev)

    top_level, top_fraction, top_p, thick_p, top_m, top_l = (s.reshape(nodal_shape) for s in scalars)
    fraction_of_pbl, fraction_under_top, in_pbl = (p.reshape(nodal_shape + (kx,)) for p in profiles)

    state = PBLState(
        top_level=top_level,
        top_fraction=top_fraction,
        top_pressure=top_p,
        thickness_pressure=thick_p,
        top_height_m=top_m,
        top_level_units=top_l,
        max_top_level=jnp.max(top_level),
    )
    profile = VerticalProfile(
        fraction_of_pbl=fraction_of_pbl,
        fraction_under_top=fraction_under_top,
        in_pbl=in_pbl,
    )
    return state, profile, fraction_sum.reshape(nodal_shape)


def find_bad_columns(state: PBLState, fraction_sum: jnp.ndarray,
                     tolerance: float = fraction_tolerance) -> np.ndarray:
    """
    Columns violating the PBL invariants.

    A column is bad when sum(fraction_of_pbl) is not within ``tolerance`` of 1
    (NaN and Inf included), when no PBL top level was found, or when
    top_fraction leaves [0, 1].

    Returns:
        Integer array of (i, j) coordinates, shape (nbad, 2)
    """
    bad = ~(jnp.abs(fraction_sum - 1.0) <= tolerance)
    bad = bad | (state.top_level < 1)
    bad = bad | ~((state.top_fraction >= -tolerance) & (state.top_fraction <= 1.0 + tolerance))
    return np.argwhere(np.asarray(bad))


def compute_pbl_height(context: PBLMixContext, geometry: GridGeometry, met: Meteorology,
                       scale_height: float = scale_height,
                       tolerance: float = fraction_tolerance) -> Tuple[PBLState, VerticalProfile]:
    """
    Compute the PBL height and related quantities for all columns.

    The result is stored on ``context`` and returned. Every column is
    evaluated before any invariant violation is raised; on failure the
    context keeps its previous state.

    Args:
        context: Initialized PBL mixing context
        geometry: Column geometry
        met: Meteorology with boundary layer height (m)
        scale_height: Atmospheric scale height (m)
        tolerance: Allowed deviation of sum(fraction_of_pbl) from 1

    Returns:
        Tuple of (PBLState, VerticalProfile)
    """
    context.require_ready()
    context.check_grid(geometry.nodal_shape, geometry.nlev, geometry.max_chem_lev)
    if met.pblh.shape != geometry.nodal_shape:
        raise ValueError(f"Invalid PBL height shape: {met.pblh.shape}. Expected {geometry.nodal_shape}.")

    top_pressure = pbl_top_pressure(geometry.surface_pressure, met.pblh, scale_height)
    state, profile, fraction_sum = diagnose_columns(
        geometry.pedge, geometry.bxheight, top_pressure, max_chem_lev=context.max_chem_lev
    )

    bad_columns = find_bad_columns(state, fraction_sum, tolerance)
    if len(bad_columns):
        for i, j in bad_columns:
            logger.error("bad PBL column at (%d, %d): top_level=%d top_fraction=%g sum(F_OF_PBL)=%g",
                         i, j, int(state.top_level[i, j]), float(state.top_fraction[i, j]),
                         float(fraction_sum[i, j]))
        raise InvariantViolation("Error in computing F_OF_PBL", columns=bad_columns.tolist())

    context.update(state, profile)
    logger.debug("PBL height computed: max_top_level=%d", int(state.max_top_level))
    return state, profile
