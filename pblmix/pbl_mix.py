"""
Driver for planetary boundary layer mixing.

The PBL height and related quantities are always computed. Complete mixing
of advected species underneath the PBL top is toggled by ``do_turbday``;
when enabled, species are converted to v/v dry, mixed, converted back to
their original units, and the mixing budget is recorded.
"""

import logging
from typing import Optional, Tuple

import jax.numpy as jnp

from pblmix.config import PBLMixConfig
from pblmix.diagnostics import record_mixing_diagnostics
from pblmix.geometry import GridGeometry
from pblmix.pbl_height import compute_pbl_height
from pblmix.pbl_mixing import mix
from pblmix.pbl_types import ChemistryState, Meteorology, MixingDiagnostics, PBLMixContext
from pblmix.unit_conversions import VV_DRY, convert_chemistry_units

logger = logging.getLogger(__name__)


def do_pbl_mix(context: PBLMixContext, geometry: GridGeometry, met: Meteorology, chem: ChemistryState,
               config: PBLMixConfig, do_turbday: Optional[bool] = None
               ) -> Tuple[ChemistryState, Optional[MixingDiagnostics]]:
    """
    Run one boundary layer mixing step.

    Args:
        context: Initialized PBL mixing context, updated in place
        geometry: Column geometry
        met: Meteorology (boundary layer height and dry air mass)
        chem: Chemistry state in any supported unit
        config: Run configuration (scale height, tolerance, time step)
        do_turbday (optional): Mix species; defaults to ``config.do_turbday``

    Returns:
        Tuple of (chemistry state in its original units, diagnostics or None
        when mixing is off)
    """
    context.require_ready()
    do_turbday = config.do_turbday if do_turbday is None else do_turbday

    pbl_state, profile = compute_pbl_height(
        context, geometry, met,
        scale_height=config.scale_height,
        tolerance=config.fraction_tolerance,
    )
    logger.info("PBL top found up to level %d", int(pbl_state.max_top_level))

    if not do_turbday:
        return chem, None

    chem_vv, orig_unit = convert_chemistry_units(chem, met.air_mass, VV_DRY)

    advect_ids = jnp.asarray(chem.advect_ids, dtype=jnp.int32)
    species, mass_delta = mix(pbl_state, chem_vv.species, met.air_mass, chem.advect_ids)

    diagnostics = record_mixing_diagnostics(
        chem_vv.species[..., advect_ids],
        species[..., advect_ids],
        mass_delta,
        met.air_mass,
        chem.advected_molecular_weights,
        profile.fraction_under_top,
        config.dt,
    )

    chem_out, _ = convert_chemistry_units(chem_vv.copy(species=species), met.air_mass, orig_unit)
    logger.debug("Mixed %d advected species under the PBL top", len(chem.advect_ids))
    return chem_out, diagnostics
