"""
For storing all variables related to the model's column geometry.
"""
import jax.numpy as jnp
import tree_math
from typing import Optional, Tuple
from pblmix.constants import g0, g0_100, rd, scale_height
from pblmix.vertical import HybridLevels


def compute_box_height(pedge: jnp.ndarray, temperature: Optional[jnp.ndarray] = None) -> jnp.ndarray:
    """
    Box heights from the hypsometric equation, dz = Rd T / g * ln(p_bot / p_top).

    Args:
        pedge: Pressure edges (hPa) (..., kx+1), surface first
        temperature (optional): Layer temperature (K) (..., kx). If None, an
            isothermal atmosphere with the PBL scale height is assumed.

    Returns:
        Box height (m) (..., kx)
    """
    log_ratio = jnp.log(pedge[..., :-1] / pedge[..., 1:])
    if temperature is None:
        return scale_height * log_ratio
    return rd * temperature / g0 * log_ratio


def compute_dry_air_mass(pedge: jnp.ndarray, area: jnp.ndarray) -> jnp.ndarray:
    """
    Dry air mass per grid box.

    Args:
        pedge: Dry pressure edges (hPa) (ix, il, kx+1)
        area: Grid box surface area (m²) (ix, il)

    Returns:
        Dry air mass (kg) (ix, il, kx)
    """
    delp = pedge[..., :-1] - pedge[..., 1:]
    return delp * g0_100 * area[..., None]


@tree_math.struct
class GridGeometry:
    pedge: jnp.ndarray # pressure at level edges (hPa), shape (ix, il, kx+1); pedge[..., 0] is the surface
    bxheight: jnp.ndarray # grid box height (m), shape (ix, il, kx)
    area: jnp.ndarray # grid box surface area (m²), shape (ix, il)
    max_chem_lev: int # number of lowest levels with a detailed PBL profile

    @property
    def nodal_shape(self) -> Tuple[int, int]:
        return tuple(self.pedge.shape[:2])

    @property
    def nlev(self) -> int:
        return self.pedge.shape[-1] - 1

    @property
    def surface_pressure(self) -> jnp.ndarray:
        return self.pedge[..., 0]

    @property
    def delp(self) -> jnp.ndarray:
        """Pressure thickness of each box (hPa)"""
        return self.pedge[..., :-1] - self.pedge[..., 1:]

    def dry_air_mass(self) -> jnp.ndarray:
        return compute_dry_air_mass(self.pedge, self.area)

    @classmethod
    def from_pressure_edges(cls, pedge, bxheight=None, temperature=None, area=None, max_chem_lev=None):
        """
        Initializes geometry from per-column pressure edges.

        Args:
            pedge: Pressure edges (hPa) (ix, il, kx+1), surface first.
            bxheight (optional): Box heights (m) (ix, il, kx). If None, computed from temperature.
            temperature (optional): Layer temperature (K) (ix, il, kx), used only when bxheight is None.
            area (optional): Surface area (m²) (ix, il). Defaults to 1 m² per column.
            max_chem_lev (optional): Chemically active depth. Defaults to kx.

        Returns:
            GridGeometry object
        """
        pedge = jnp.asarray(pedge)
        if pedge.ndim != 3:
            raise ValueError(f"Invalid pressure edge shape: {pedge.shape}. Must be (ix, il, kx+1).")
        kx = pedge.shape[-1] - 1
        if kx < 1:
            raise ValueError(f"Invalid number of vertical levels: {kx}")
        if bxheight is None:
            bxheight = compute_box_height(pedge, temperature)
        bxheight = jnp.asarray(bxheight)
        if bxheight.shape != pedge.shape[:2] + (kx,):
            raise ValueError(f"Invalid box height shape: {bxheight.shape}. Expected {pedge.shape[:2] + (kx,)}.")
        area = jnp.ones(pedge.shape[:2]) if area is None else jnp.asarray(area)
        max_chem_lev = kx if max_chem_lev is None else int(max_chem_lev)
        return cls(pedge=pedge, bxheight=bxheight, area=area, max_chem_lev=max_chem_lev)

    @classmethod
    def from_hybrid_levels(cls, levels: HybridLevels, surface_pressure, temperature=None, area=None, max_chem_lev=None):
        """
        Initializes geometry from hybrid level coefficients and a surface pressure field (hPa) (ix, il).
        """
        pedge = levels.get_pressure_edges(jnp.asarray(surface_pressure))
        return cls.from_pressure_edges(pedge, temperature=temperature, area=area, max_chem_lev=max_chem_lev)

    @classmethod
    def single_column(cls, pedge, bxheight=None, max_chem_lev=None):
        """Convenience constructor for a (1, 1) grid from 1D edges."""
        pedge = jnp.asarray(pedge, dtype=jnp.float32)[None, None, :]
        if bxheight is not None:
            bxheight = jnp.asarray(bxheight, dtype=jnp.float32)[None, None, :]
        return cls.from_pressure_edges(pedge, bxheight=bxheight, max_chem_lev=max_chem_lev)
