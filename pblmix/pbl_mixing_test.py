"""
Tests for full boundary layer mixing.

Date: 2025-01-15
"""

import jax
import jax.numpy as jnp
import pytest
from unittest import TestCase

from pblmix.pbl_mixing import mix, mix_single_column, mixing_weights
from pblmix.pbl_types import PBLState


def column_state(top_level, top_fraction):
    return PBLState.zeros(
        (1, 1),
        top_level=jnp.array([[top_level]], dtype=jnp.int32),
        top_fraction=jnp.array([[top_fraction]]),
    )


def mixed_region_mass(species, air_mass, state):
    """Tracer mass in all levels up to and including the one holding the PBL top"""
    levels = jnp.arange(1, air_mass.shape[-1] + 1)
    weights = jnp.where(levels <= state.top_level[..., None], 1.0, 0.0)
    return jnp.sum((weights * air_mass)[..., None] * species, axis=2)


class TestMixingWeights(TestCase):

    def test_weights(self):
        w = mixing_weights(jnp.array(3), jnp.array(0.25), 5)
        self.assertTrue(jnp.allclose(w, jnp.array([1.0, 1.0, 0.25, 0.0, 0.0])))

    def test_weights_top_in_lowest_level(self):
        w = mixing_weights(jnp.array(1), jnp.array(0.5), 3)
        self.assertTrue(jnp.allclose(w, jnp.array([0.5, 0.0, 0.0])))


class TestThreeLevelColumn(TestCase):
    """Ratios 2/4/6 with equal air masses and the PBL top a third into level 2"""

    def setUp(self):
        self.state = column_state(2, 1.0 / 3.0)
        self.air_mass = jnp.full((1, 1, 3), 10.0)
        self.species = jnp.array([2.0, 4.0, 6.0]).reshape(1, 1, 3, 1)

    def test_mixed_ratios(self):
        species, mass_delta = mix(self.state, self.species, self.air_mass, [0])
        ratio = species[0, 0, :, 0]

        # Column mean (10*2 + 10*4/3) / (10 + 10/3) = 2.5
        self.assertTrue(jnp.allclose(ratio[0], 2.5, atol=1e-5))
        self.assertTrue(jnp.allclose(ratio[1], 4.0 + (2.5 - 4.0) / 3.0, atol=1e-5))
        self.assertEqual(float(ratio[2]), 6.0)

    def test_mass_delta(self):
        _, mass_delta = mix(self.state, self.species, self.air_mass, [0])
        delta = mass_delta[0, 0, :, 0]

        self.assertEqual(mass_delta.shape, (1, 1, 3, 1))
        self.assertTrue(jnp.allclose(delta, jnp.array([5.0, -5.0, 0.0]), atol=1e-4))
        self.assertTrue(jnp.allclose(jnp.sum(delta), 0.0, atol=1e-5))

    def test_straddling_level_fully_counted(self):
        """The mixed region holds the same mass, the fraction-weighted mass does not"""
        species, _ = mix(self.state, self.species, self.air_mass, [0])

        self.assertTrue(jnp.allclose(mixed_region_mass(species, self.air_mass, self.state), 60.0, rtol=1e-5))
        under_top = 10.0 * (species[0, 0, 0, 0] + species[0, 0, 1, 0] / 3.0)
        # 10 * (2 + 4/3) before mixing, 10 * (2.5 + 3.5/3) after
        self.assertTrue(jnp.allclose(under_top, 25.0 + 35.0 / 3.0, rtol=1e-5))

    def test_single_column_kernel(self):
        ratio, delta = mix_single_column(
            jnp.array(2), jnp.array(1.0 / 3.0), jnp.full(3, 10.0), jnp.array([[2.0], [4.0], [6.0]])
        )
        self.assertTrue(jnp.allclose(ratio[:, 0], jnp.array([2.5, 3.5, 6.0]), atol=1e-5))


class TestConservation:

    @pytest.fixture
    def grid_case(self):
        key_q, key_m, key_l, key_f = jax.random.split(jax.random.PRNGKey(0), 4)
        nodal_shape, kx, nspecies = (4, 3), 12, 5
        species = jax.random.uniform(key_q, nodal_shape + (kx, nspecies), minval=0.1, maxval=10.0)
        air_mass = jax.random.uniform(key_m, nodal_shape + (kx,), minval=1.0e3, maxval=5.0e3)
        state = PBLState.zeros(
            nodal_shape,
            top_level=jax.random.randint(key_l, nodal_shape, 1, kx + 1),
            top_fraction=jax.random.uniform(key_f, nodal_shape),
        )
        return state, species, air_mass

    def test_mass_conserved(self, grid_case):
        state, species, air_mass = grid_case
        advect_ids = [0, 2, 3]
        mixed, mass_delta = mix(state, species, air_mass, advect_ids)

        before = mixed_region_mass(species[..., jnp.array(advect_ids)], air_mass, state)
        after = mixed_region_mass(mixed[..., jnp.array(advect_ids)], air_mass, state)
        assert jnp.allclose(before, after, rtol=1e-5)
        assert jnp.allclose(jnp.sum(mass_delta, axis=2), 0.0, atol=1e-5 * float(jnp.max(jnp.abs(before))))

    def test_total_column_mass_conserved(self, grid_case):
        state, species, air_mass = grid_case
        mixed, _ = mix(state, species, air_mass, [0, 1, 2, 3, 4])

        before = jnp.sum(air_mass[..., None] * species, axis=2)
        after = jnp.sum(air_mass[..., None] * mixed, axis=2)
        assert jnp.allclose(before, after, rtol=1e-5)

    def test_levels_above_top_untouched(self, grid_case):
        state, species, air_mass = grid_case
        mixed, mass_delta = mix(state, species, air_mass, [0, 1, 2, 3, 4])

        above = jnp.arange(1, species.shape[2] + 1) > state.top_level[..., None]
        assert jnp.all(jnp.where(above[..., None], mixed == species, True))
        assert jnp.all(jnp.where(above[..., None], mass_delta == 0.0, True))

    def test_non_advected_species_untouched(self, grid_case):
        state, species, air_mass = grid_case
        mixed, mass_delta = mix(state, species, air_mass, [1, 4])

        assert mass_delta.shape == species.shape[:3] + (2,)
        assert jnp.array_equal(mixed[..., 0], species[..., 0])
        assert jnp.array_equal(mixed[..., 2], species[..., 2])
        assert jnp.array_equal(mixed[..., 3], species[..., 3])

    def test_well_mixed_column_unchanged(self, grid_case):
        state, _, air_mass = grid_case
        species = jnp.ones(air_mass.shape + (2,)) * jnp.array([3.0e-7, 1.5])
        mixed, mass_delta = mix(state, species, air_mass, [0, 1])

        assert jnp.all(jnp.abs(mass_delta) <= 1e-5 * air_mass[..., None] * species)
        assert jnp.allclose(mixed, species)


class TestDegenerateColumns(TestCase):

    def test_no_air_under_top(self):
        """Zero PBL depth leaves the column as it was, with finite values"""
        state = column_state(1, 0.0)
        air_mass = jnp.full((1, 1, 3), 10.0)
        species = jnp.array([2.0, 4.0, 6.0]).reshape(1, 1, 3, 1)
        mixed, mass_delta = mix(state, species, air_mass, [0])

        self.assertTrue(bool(jnp.all(jnp.isfinite(mixed))))
        self.assertTrue(bool(jnp.all(mass_delta == 0.0)))
        self.assertTrue(jnp.array_equal(mixed, species))

    def test_missing_top_level(self):
        state = column_state(0, 0.0)
        air_mass = jnp.full((1, 1, 3), 10.0)
        species = jnp.array([2.0, 4.0, 6.0]).reshape(1, 1, 3, 1)
        mixed, _ = mix(state, species, air_mass, [0])

        self.assertTrue(jnp.array_equal(mixed, species))

    def test_no_advected_species(self):
        state = column_state(2, 0.5)
        species = jnp.ones((1, 1, 3, 2))
        mixed, mass_delta = mix(state, species, jnp.ones((1, 1, 3)), [])

        self.assertIs(mixed, species)
        self.assertEqual(mass_delta.shape, (1, 1, 3, 0))

    def test_shape_mismatch(self):
        state = column_state(2, 0.5)
        with self.assertRaises(ValueError):
            mix(state, jnp.ones((1, 1, 4, 2)), jnp.ones((1, 1, 3)), [0])
        with self.assertRaises(ValueError):
            mix(state, jnp.ones((2, 1, 3, 2)), jnp.ones((2, 1, 3)), [0])
