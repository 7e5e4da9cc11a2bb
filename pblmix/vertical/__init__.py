"""
Vertical coordinate systems for pblmix.

This package contains hybrid sigma-pressure level definitions used to
build per-column pressure edges.
"""

from .hybrid_levels import HybridLevels, sigma_layer_boundaries

__all__ = ['HybridLevels', 'sigma_layer_boundaries']
