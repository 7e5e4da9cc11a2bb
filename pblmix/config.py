'''
Run configuration for PBL mixing, built from a hydra/omegaconf config.
'''
import dataclasses
from typing import Tuple
from omegaconf import DictConfig, OmegaConf

from pblmix.constants import fraction_tolerance, scale_height


@dataclasses.dataclass(frozen=True)
class SpeciesConfig:
    name: str
    molecular_weight: float # g/mol
    advected: bool = True
    surface_vmr: float = 0.0 # v/v dry at the surface
    decay_height: float = 1000.0 # e-folding height of the initial profile (m)


@dataclasses.dataclass(frozen=True)
class PBLMixConfig:
    # grid
    nx: int = 4
    ny: int = 2
    nlev: int = 8
    max_chem_lev: int = 8
    surface_pressure: float = 1000.0 # hPa
    ptop: float = 0.01 # hPa
    area: float = 1.0e8 # m²

    # pbl
    pblh_min: float = 100.0 # m
    pblh_max: float = 2500.0 # m
    scale_height: float = scale_height
    fraction_tolerance: float = fraction_tolerance
    do_turbday: bool = True

    # run
    steps: int = 1
    dt: float = 600.0 # s
    species_units: str = 'v/v dry'
    species: Tuple[SpeciesConfig, ...] = ()

    @property
    def advect_ids(self) -> Tuple[int, ...]:
        return tuple(n for n, s in enumerate(self.species) if s.advected)

    @classmethod
    def default(cls) -> 'PBLMixConfig':
        return cls(species=(
            SpeciesConfig(name='CO', molecular_weight=28.01, surface_vmr=1.5e-7, decay_height=2000.0),
            SpeciesConfig(name='Rn222', molecular_weight=222.0, surface_vmr=1.0e-20, decay_height=500.0),
        ))

    @classmethod
    def from_dict_config(cls, cfg: DictConfig) -> 'PBLMixConfig':
        """
        Builds the run configuration from a composed hydra config with
        ``grid``, ``pbl``, ``run`` and ``species`` groups.
        """
        grid = cfg.grid
        pbl = cfg.pbl
        run = cfg.run
        species = tuple(
            SpeciesConfig(**OmegaConf.to_container(s, resolve=True)) for s in cfg.species
        )
        if grid.max_chem_lev > grid.nlev:
            raise ValueError(f"Invalid chemically active depth: {grid.max_chem_lev}. Must be at most {grid.nlev}.")
        return cls(
            nx=grid.nx,
            ny=grid.ny,
            nlev=grid.nlev,
            max_chem_lev=grid.max_chem_lev,
            surface_pressure=grid.surface_pressure,
            ptop=grid.ptop,
            area=grid.area,
            pblh_min=pbl.pblh_min,
            pblh_max=pbl.pblh_max,
            scale_height=pbl.scale_height,
            fraction_tolerance=pbl.fraction_tolerance,
            do_turbday=pbl.do_turbday,
            steps=run.steps,
            dt=run.dt,
            species_units=run.species_units,
            species=species,
        )
