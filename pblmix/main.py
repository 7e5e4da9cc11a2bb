import logging
import hydra
import jax.numpy as jnp
from omegaconf import DictConfig

from pblmix.config import PBLMixConfig
from pblmix.geometry import GridGeometry
from pblmix.pbl_mix import do_pbl_mix
from pblmix.pbl_types import ChemistryState, Meteorology, PBLMixContext
from pblmix.unit_conversions import VV_DRY, convert_species_units
from pblmix.vertical import HybridLevels

logger = logging.getLogger(__name__)


def build_case(config: PBLMixConfig):
    """
    Idealized grid: uniform surface pressure, PBL heights ramping from
    ``pblh_min`` to ``pblh_max`` across the columns, and species profiles
    decaying exponentially with height.

    Returns:
        Tuple of (geometry, meteorology, chemistry state)
    """
    nodal_shape = (config.nx, config.ny)
    levels = HybridLevels.uniform(config.nlev, ptop=config.ptop)
    geometry = GridGeometry.from_hybrid_levels(
        levels,
        jnp.full(nodal_shape, config.surface_pressure),
        area=jnp.full(nodal_shape, config.area),
        max_chem_lev=config.max_chem_lev,
    )

    pblh = jnp.linspace(config.pblh_min, config.pblh_max, config.nx * config.ny).reshape(nodal_shape)
    air_mass = geometry.dry_air_mass()
    met = Meteorology(pblh=pblh, air_mass=air_mass)

    # Height of box centers above the surface
    z_top = jnp.cumsum(geometry.bxheight, axis=-1)
    z_mid = z_top - 0.5 * geometry.bxheight
    profiles = [s.surface_vmr * jnp.exp(-z_mid / s.decay_height) for s in config.species]
    species_vv = jnp.stack(profiles, axis=-1)
    molecular_weights = jnp.array([s.molecular_weight for s in config.species])
    species = convert_species_units(species_vv, air_mass, molecular_weights, VV_DRY, config.species_units)

    chem = ChemistryState.create(
        species,
        units=config.species_units,
        species_names=[s.name for s in config.species],
        molecular_weights=molecular_weights,
        advect_ids=config.advect_ids,
    )
    return geometry, met, chem


def run(config: PBLMixConfig):
    """
    Runs ``config.steps`` mixing steps on the idealized case.

    Returns:
        Tuple of (context, final chemistry state, diagnostics of the last step)
    """
    geometry, met, chem = build_case(config)
    context = PBLMixContext.from_geometry(geometry)

    diagnostics = None
    for step in range(config.steps):
        chem, diagnostics = do_pbl_mix(context, geometry, met, chem, config)
        if diagnostics is not None:
            for n, name in enumerate(chem.species_names[i] for i in chem.advect_ids):
                logger.info("step %d %s: max |full column budget| = %.3e kg/s", step, name,
                            float(jnp.max(jnp.abs(diagnostics.budget_full[..., n]))))
    logger.info("PBL top height range: %.1f - %.1f m",
                float(jnp.min(context.pbl_state.top_height_m)),
                float(jnp.max(context.pbl_state.top_height_m)))
    return context, chem, diagnostics


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig):
    """
    Runs PBL mixing on an idealized grid with configurable parameters

    Example:
        python -m pblmix.main
        python -m pblmix.main run.steps=10
        python -m pblmix.main pbl.do_turbday=false
        python -m pblmix.main -m grid.nlev=5,8 grid.max_chem_lev=5
    """
    context, _, _ = run(PBLMixConfig.from_dict_config(cfg))
    context.cleanup()


if __name__ == "__main__":
    main()
