"""
Voxel-reuse statistic.

Measures how much of a realization is a verbatim copy of the training image:
the fraction of tiles whose final content equals some contiguous training
window. High reuse means the quilt mostly replays the exemplar.
"""

import numpy as np

from quiltsim.config import QuiltingConfig
from quiltsim.grid.tiling import TileLattice
from quiltsim.matching.distance import TrainingImage, masked_sse, match_tolerance
from quiltsim.pipeline import resolve_options, simulate
from quiltsim.tracer import get_tracer, trace


def matches_window(ti, block):
    """True if `block` equals some valid window of the training image exactly."""
    if np.isnan(block).any():
        return False
    weights = np.ones(block.shape)
    sse = masked_sse(ti.values, ti.values_sq, weights, block)
    sse[ti.invalid_windows(block.shape)] = np.inf
    screen = np.flatnonzero(sse <= match_tolerance(sse))
    for pick in screen:
        anchor = np.unravel_index(pick, sse.shape)
        if np.array_equal(ti.window(anchor, block.shape), block):
            return True
    return False


def tile_reuse(ti, lattice, realization):
    """Fraction of tiles of one realization copied verbatim from the training image."""
    reused = sum(
        matches_window(ti, realization[lattice.footprint(tile)])
        for tile in range(lattice.n_tiles)
    )
    return reused / lattice.n_tiles


@trace(label="voxel_reuse")
def voxel_reuse(training_image, tile_shape, nreal=None, overlap=None, path=None, tol=None,
                soft=None, seed=None, rng=None, config=None):
    """
    Mean and standard deviation of tile reuse over simulated realizations.

    Realizations have the training image's own shape and no hard data.

    Returns:
        (mean, std), both within [0, 1]
    """
    tracer = get_tracer()

    if config is None:
        config = QuiltingConfig()
    if nreal is None:
        nreal = config.reuse.nreal

    reals = simulate(
        training_image, tile_shape,
        soft=soft, tol=tol, nreal=nreal, overlap=overlap, path=path,
        debug=False, seed=seed, rng=rng, config=config,
    )

    ti = TrainingImage(training_image)
    options = resolve_options(ti.ndim, config, overlap=overlap)
    lattice = TileLattice(ti.shape, tile_shape, options.overlap)

    fractions = np.array([tile_reuse(ti, lattice, real) for real in reals])
    mean = float(fractions.mean())
    std = float(fractions.std())

    tracer.event("Voxel reuse", mean=round(mean, 4), std=round(std, 4), nreal=len(fractions))
    return mean, std
