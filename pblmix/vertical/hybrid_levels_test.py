"""Tests for hybrid vertical level definitions."""

import pytest
import jax.numpy as jnp
from pblmix.vertical.hybrid_levels import HybridLevels


class TestHybridLevels:
    """Test HybridLevels dataclass"""

    def test_mismatched_edges_rejected(self):
        with pytest.raises(ValueError):
            HybridLevels(nlevels=3, a_edges=jnp.zeros(3), b_edges=jnp.zeros(3))

    def test_pressure_edges_scalar(self):
        """Surface edge equals surface pressure and edges decrease upward"""
        levels = HybridLevels.uniform(4, ptop=0.01)
        p = levels.get_pressure_edges(jnp.array(1000.0))

        assert p.shape == (5,)
        assert jnp.allclose(p[0], 1000.0)
        assert jnp.allclose(p[-1], 0.01)
        assert jnp.all(jnp.diff(p) < 0)

    def test_pressure_edges_2d(self):
        levels = HybridLevels.builtin(8)
        ps = jnp.array([[1000.0, 950.0], [900.0, 1013.25]])
        p = levels.get_pressure_edges(ps)

        assert p.shape == (2, 2, 9)
        assert jnp.allclose(p[..., 0], ps)
        assert jnp.all(jnp.diff(p, axis=-1) < 0)

    def test_unknown_builtin(self):
        with pytest.raises(ValueError):
            HybridLevels.builtin(47)

    def test_invalid_uniform(self):
        with pytest.raises(ValueError):
            HybridLevels.uniform(0)
