"""
Hybrid sigma-pressure vertical coordinates.

Pressure at level edges follows p = a + b * p_surface. Edge arrays are
returned surface-first (index 0 is the bottom edge of the lowest box) with
the level axis last, which is the layout the PBL routines expect.
"""

import dataclasses
import jax.numpy as jnp
from typing import Dict

# Sigma layer boundaries, top to surface
sigma_layer_boundaries: Dict[int, jnp.ndarray] = {
    5: jnp.array([0.0, 0.15, 0.35, 0.65, 0.9, 1.0]),
    7: jnp.array([0.02, 0.14, 0.26, 0.42, 0.6, 0.77, 0.9, 1.0]),
    8: jnp.array([0.0, 0.05, 0.14, 0.26, 0.42, 0.6, 0.77, 0.9, 1.0]),
}


@dataclasses.dataclass(frozen=True)
class HybridLevels:
    """Hybrid sigma-pressure coordinate definition.

    Coefficients are stored surface-first: ``a_edges[0]``/``b_edges[0]``
    describe the surface, ``a_edges[-1]``/``b_edges[-1]`` the model top.
    """
    nlevels: int
    a_edges: jnp.ndarray  # Pressure coefficient at edges (hPa)
    b_edges: jnp.ndarray  # Sigma coefficient at edges (dimensionless)

    def __post_init__(self):
        if len(self.a_edges) != self.nlevels + 1 or len(self.b_edges) != self.nlevels + 1:
            raise ValueError(f"Expected {self.nlevels + 1} edge values, got "
                             f"{len(self.a_edges)} (a) and {len(self.b_edges)} (b)")

    def get_pressure_edges(self, surface_pressure: jnp.ndarray) -> jnp.ndarray:
        """Calculate pressure at level edges.

        Args:
            surface_pressure: Surface pressure (hPa), scalar or (ix, il)

        Returns:
            Pressure at edges (*surface_pressure.shape, nlevels+1), surface first
        """
        surface_pressure = jnp.asarray(surface_pressure)
        return self.a_edges + self.b_edges * surface_pressure[..., None]

    @classmethod
    def from_sigma(cls, sigma_edges: jnp.ndarray, ptop: float = 0.01) -> 'HybridLevels':
        """Build levels from top-first sigma edges with a fixed model-top pressure.

        p = ptop + sigma * (p_surface - ptop), so a = ptop * (1 - sigma), b = sigma.
        """
        sigma = jnp.asarray(sigma_edges)[::-1]
        return cls(
            nlevels=len(sigma) - 1,
            a_edges=ptop * (1.0 - sigma),
            b_edges=sigma,
        )

    @classmethod
    def uniform(cls, nlevels: int, ptop: float = 0.01) -> 'HybridLevels':
        """Evenly spaced sigma levels between the surface and ``ptop``."""
        if nlevels < 1:
            raise ValueError(f"Invalid number of levels: {nlevels}")
        return cls.from_sigma(jnp.linspace(0.0, 1.0, nlevels + 1), ptop=ptop)

    @classmethod
    def builtin(cls, nlevels: int, ptop: float = 0.01) -> 'HybridLevels':
        """Built-in sigma level sets."""
        if nlevels not in sigma_layer_boundaries:
            raise ValueError(f"No built-in level definition for {nlevels} levels. "
                             f"Available: {sorted(sigma_layer_boundaries)}")
        return cls.from_sigma(sigma_layer_boundaries[nlevels], ptop=ptop)
