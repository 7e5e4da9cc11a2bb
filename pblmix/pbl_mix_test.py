"""
Tests for the PBL mixing driver.
"""

import dataclasses
import jax.numpy as jnp
import pytest

from pblmix.config import PBLMixConfig, SpeciesConfig
from pblmix.errors import SetupError
from pblmix.main import build_case
from pblmix.pbl_mix import do_pbl_mix
from pblmix.pbl_types import PBLMixContext
from pblmix.unit_conversions import KG, VV_DRY


def make_config(**kwargs):
    species = (
        SpeciesConfig(name='CO', molecular_weight=28.01, surface_vmr=1.5e-7, decay_height=2000.0),
        SpeciesConfig(name='SO2', molecular_weight=64.04, surface_vmr=5.0e-9, decay_height=800.0),
        SpeciesConfig(name='OH', molecular_weight=17.01, advected=False, surface_vmr=1.0e-13, decay_height=8000.0),
    )
    return dataclasses.replace(PBLMixConfig.default(), species=species, **kwargs)


@pytest.fixture
def case():
    config = make_config()
    geometry, met, chem = build_case(config)
    context = PBLMixContext.from_geometry(geometry)
    return config, context, geometry, met, chem


class TestDoPBLMix:

    def test_mixing_step(self, case):
        config, context, geometry, met, chem = case
        new_chem, diags = do_pbl_mix(context, geometry, met, chem, config)

        assert new_chem.units == VV_DRY
        assert new_chem.species.shape == chem.species.shape
        assert diags.mass_delta.shape == met.air_mass.shape + (2,)
        assert diags.budget_full.shape == geometry.nodal_shape + (2,)
        assert context.pbl_state.top_level.shape == geometry.nodal_shape

    def test_column_mass_conserved(self, case):
        config, context, geometry, met, chem = case
        new_chem, _ = do_pbl_mix(context, geometry, met, chem, config)

        before = jnp.sum(met.air_mass[..., None] * chem.species, axis=2)
        after = jnp.sum(met.air_mass[..., None] * new_chem.species, axis=2)
        assert jnp.allclose(before, after, rtol=1e-5)

    def test_surface_enhanced_tracer_mixed_upward(self, case):
        config, context, geometry, met, chem = case
        new_chem, diags = do_pbl_mix(context, geometry, met, chem, config)

        surface_before = chem.species[:, :, 0, :2]
        assert jnp.all(new_chem.species[:, :, 0, :2] <= surface_before * (1.0 + 1e-5))
        assert jnp.all(diags.tendency[:, :, 0, :] <= 1e-5 * surface_before / config.dt)
        assert jnp.any(new_chem.species[:, :, 0, :2] < 0.99 * surface_before)

    def test_non_advected_species_untouched(self, case):
        config, context, geometry, met, chem = case
        new_chem, _ = do_pbl_mix(context, geometry, met, chem, config)

        assert jnp.allclose(new_chem.species[..., 2], chem.species[..., 2], rtol=1e-6)

    def test_original_units_restored(self):
        config = make_config(species_units=KG)
        geometry, met, chem = build_case(config)
        context = PBLMixContext.from_geometry(geometry)
        new_chem, diags = do_pbl_mix(context, geometry, met, chem, config)

        assert new_chem.units == KG
        assert jnp.allclose(jnp.sum(new_chem.species, axis=2), jnp.sum(chem.species, axis=2), rtol=1e-5)
        assert jnp.allclose(diags.budget_full, 0.0,
                            atol=1e-5 * float(jnp.max(jnp.sum(chem.species, axis=2))) / config.dt)

    def test_mixing_switched_off(self, case):
        config, context, geometry, met, chem = case
        new_chem, diags = do_pbl_mix(context, geometry, met, chem, config, do_turbday=False)

        assert new_chem is chem
        assert diags is None
        assert int(context.pbl_state.max_top_level) >= 1

    def test_context_must_be_initialized(self, case):
        config, _, geometry, met, chem = case
        context = PBLMixContext(geometry.nodal_shape, geometry.nlev)

        with pytest.raises(SetupError):
            do_pbl_mix(context, geometry, met, chem, config)
