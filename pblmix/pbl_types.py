"""
Data structures for PBL height diagnosis and boundary layer mixing.

Shapes use the horizontal grid (ix, il), the number of levels kx and the
number of advected species nadv. Level-indexed arrays are 0-based along the
last (or second to last, for species) axis; ``top_level`` is reported
1-based, so ``top_level == 1`` means the PBL top lies inside the lowest box
and ``top_level == 0`` means no PBL top was found.
"""

import dataclasses
import logging
import jax.numpy as jnp
import tree_math
from typing import Optional, Sequence, Tuple

from pblmix.errors import SetupError

logger = logging.getLogger(__name__)


@tree_math.struct
class PBLState:
    top_level: jnp.ndarray # level containing the PBL top, 1-based (ix, il)
    top_fraction: jnp.ndarray # fraction of top_level lying within the PBL (ix, il)
    top_pressure: jnp.ndarray # pressure at the PBL top (hPa) (ix, il)
    thickness_pressure: jnp.ndarray # PBL thickness (hPa) (ix, il)
    top_height_m: jnp.ndarray # PBL top (m) (ix, il)
    top_level_units: jnp.ndarray # PBL top in model levels (ix, il)
    max_top_level: jnp.ndarray # max of top_level over all columns ()

    @classmethod
    def zeros(cls, nodal_shape, top_level=None, top_fraction=None, top_pressure=None, thickness_pressure=None,
              top_height_m=None, top_level_units=None, max_top_level=None):
        return cls(
            top_level = top_level if top_level is not None else jnp.zeros(nodal_shape, dtype=jnp.int32),
            top_fraction = top_fraction if top_fraction is not None else jnp.zeros(nodal_shape),
            top_pressure = top_pressure if top_pressure is not None else jnp.zeros(nodal_shape),
            thickness_pressure = thickness_pressure if thickness_pressure is not None else jnp.zeros(nodal_shape),
            top_height_m = top_height_m if top_height_m is not None else jnp.zeros(nodal_shape),
            top_level_units = top_level_units if top_level_units is not None else jnp.zeros(nodal_shape),
            max_top_level = max_top_level if max_top_level is not None else jnp.array(0, dtype=jnp.int32),
        )


@tree_math.struct
class VerticalProfile:
    fraction_of_pbl: jnp.ndarray # share of the PBL mass in each box (ix, il, kx)
    fraction_under_top: jnp.ndarray # fraction of each box under the PBL top (ix, il, kx)
    in_pbl: jnp.ndarray # box lies fully inside the PBL (ix, il, kx)

    @classmethod
    def zeros(cls, nodal_shape, node_levels, fraction_of_pbl=None, fraction_under_top=None, in_pbl=None):
        return cls(
            fraction_of_pbl = fraction_of_pbl if fraction_of_pbl is not None else jnp.zeros(nodal_shape + (node_levels,)),
            fraction_under_top = fraction_under_top if fraction_under_top is not None else jnp.zeros(nodal_shape + (node_levels,)),
            in_pbl = in_pbl if in_pbl is not None else jnp.zeros(nodal_shape + (node_levels,), dtype=bool),
        )


@tree_math.struct
class Meteorology:
    pblh: jnp.ndarray # boundary layer height (m) (ix, il)
    air_mass: jnp.ndarray # dry air mass (kg) (ix, il, kx)


@tree_math.struct
class MixingDiagnostics:
    mass_delta: jnp.ndarray # mixing mass change, (v/v) * kg air (ix, il, kx, nadv)
    mass_flux: jnp.ndarray # upward mixing mass flux (kg/s) (ix, il, kx, nadv)
    tendency: jnp.ndarray # mixing ratio tendency (v/v/s) (ix, il, kx, nadv)
    budget_full: jnp.ndarray # full column mass budget (kg/s) (ix, il, nadv)
    budget_pbl: jnp.ndarray # PBL column mass budget (kg/s) (ix, il, nadv)


@dataclasses.dataclass(frozen=True)
class ChemistryState:
    """Species concentrations and the metadata needed to mix them.

    ``species`` has shape (ix, il, kx, nspecies) and is expressed in ``units``.
    """
    species: jnp.ndarray
    units: str
    species_names: Tuple[str, ...]
    molecular_weights: jnp.ndarray # (g/mol) (nspecies,)
    advect_ids: Tuple[int, ...]

    @property
    def advected_molecular_weights(self) -> jnp.ndarray:
        return self.molecular_weights[jnp.asarray(self.advect_ids, dtype=jnp.int32)]

    def copy(self, species=None, units=None) -> 'ChemistryState':
        return dataclasses.replace(
            self,
            species=species if species is not None else self.species,
            units=units if units is not None else self.units,
        )

    @classmethod
    def create(cls, species, units: str, species_names: Sequence[str], molecular_weights,
               advect_ids: Optional[Sequence[int]] = None) -> 'ChemistryState':
        species = jnp.asarray(species)
        if species.ndim != 4:
            raise ValueError(f"Invalid species shape: {species.shape}. Must be (ix, il, kx, nspecies).")
        nspecies = species.shape[-1]
        if len(species_names) != nspecies or len(molecular_weights) != nspecies:
            raise ValueError(f"Expected {nspecies} species names and molecular weights, got "
                             f"{len(species_names)} and {len(molecular_weights)}")
        advect_ids = tuple(range(nspecies)) if advect_ids is None else tuple(int(n) for n in advect_ids)
        if any(n < 0 or n >= nspecies for n in advect_ids):
            raise ValueError(f"Advected species ids {advect_ids} out of range for {nspecies} species")
        return cls(
            species=species,
            units=units,
            species_names=tuple(species_names),
            molecular_weights=jnp.asarray(molecular_weights, dtype=species.dtype),
            advect_ids=advect_ids,
        )


class PBLMixContext:
    """Per-run PBL state, owned by the caller and passed to both engines.

    Construct it once the grid is known, call :meth:`initialize` before the
    first step and :meth:`cleanup` at shutdown. ``pbl_state`` and ``profile``
    hold the most recent diagnosis.
    """

    def __init__(self, nodal_shape: Tuple[int, int], nlev: int, max_chem_lev: Optional[int] = None):
        self.nodal_shape = tuple(int(n) for n in nodal_shape)
        self.nlev = int(nlev)
        self.max_chem_lev = self.nlev if max_chem_lev is None else int(max_chem_lev)
        self.pbl_state: Optional[PBLState] = None
        self.profile: Optional[VerticalProfile] = None

    @classmethod
    def from_geometry(cls, geometry) -> 'PBLMixContext':
        return cls(geometry.nodal_shape, geometry.nlev, geometry.max_chem_lev).initialize()

    @property
    def is_ready(self) -> bool:
        return self.pbl_state is not None and self.profile is not None

    def initialize(self) -> 'PBLMixContext':
        """Allocate per-column state. Calling it again once ready does nothing."""
        if self.is_ready:
            return self
        if len(self.nodal_shape) != 2 or any(n < 1 for n in self.nodal_shape):
            raise SetupError(f"Invalid horizontal grid {self.nodal_shape}", tag="pbl_mix:grid")
        if self.nlev < 1:
            raise SetupError(f"Invalid number of levels {self.nlev}", tag="pbl_mix:nlev")
        if not 1 <= self.max_chem_lev <= self.nlev:
            raise SetupError(f"Chemically active depth {self.max_chem_lev} outside 1..{self.nlev}",
                             tag="pbl_mix:max_chem_lev")
        self.pbl_state = PBLState.zeros(self.nodal_shape)
        self.profile = VerticalProfile.zeros(self.nodal_shape, self.nlev)
        logger.debug("PBL mixing context initialized: grid=%s nlev=%d max_chem_lev=%d",
                     self.nodal_shape, self.nlev, self.max_chem_lev)
        return self

    def require_ready(self):
        if not self.is_ready:
            raise SetupError("PBL mixing context used before initialize()", tag="pbl_mix:context")

    def check_grid(self, nodal_shape, nlev, max_chem_lev=None):
        if tuple(nodal_shape) != self.nodal_shape or nlev != self.nlev:
            raise ValueError(f"Grid {tuple(nodal_shape)} x {nlev} does not match context grid "
                             f"{self.nodal_shape} x {self.nlev}")
        if max_chem_lev is not None and max_chem_lev != self.max_chem_lev:
            raise ValueError(f"Chemically active depth {max_chem_lev} does not match context depth "
                             f"{self.max_chem_lev}")

    def update(self, pbl_state: PBLState, profile: VerticalProfile):
        self.require_ready()
        self.pbl_state = pbl_state
        self.profile = profile

    def cleanup(self):
        self.pbl_state = None
        self.profile = None
