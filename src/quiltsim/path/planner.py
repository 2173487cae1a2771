"""
Simulation path planning.

A path is the order in which tiles of the lattice are visited. Later tiles
are matched against voxels committed by earlier ones, so the order shapes the
seams of a realization.
"""

import numpy as np
from scipy.ndimage import distance_transform_cdt

from quiltsim.errors import ConfigurationError
from quiltsim.models import PathKind
from quiltsim.tracer import get_tracer, trace


@trace(label="generate_path", level="DEBUG")
def generate_path(lattice_shape, kind="raster", data_tiles=(), rng=None, baseline="raster"):
    """
    Visit order of every tile in a lattice.

    Args:
        lattice_shape: tile counts per axis
        kind: raster, dilation, random or data
        data_tiles: linear indices of tiles holding hard data
        rng: numpy Generator for the random kinds
        baseline: order of the non-data tiles when kind is data

    Returns:
        tuple of linear tile indices covering the lattice exactly once
    """
    tracer = get_tracer()

    try:
        kind = PathKind(kind)
        baseline = PathKind(baseline)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    lattice_shape = tuple(int(n) for n in lattice_shape)
    n_tiles = int(np.prod(lattice_shape)) if lattice_shape else 1
    if n_tiles <= 1:
        return (0,)

    data_tiles = [int(t) for t in data_tiles]
    for t in data_tiles:
        if not 0 <= t < n_tiles:
            raise ConfigurationError(f"Data tile {t} outside lattice of {n_tiles} tiles")

    if rng is None:
        rng = np.random.default_rng()

    if kind == PathKind.RASTER:
        path = np.arange(n_tiles)
    elif kind == PathKind.RANDOM:
        path = rng.permutation(n_tiles)
    elif kind == PathKind.DILATION:
        path = _dilation_order(lattice_shape, data_tiles)
    else:
        if baseline == PathKind.DATA:
            raise ConfigurationError("baseline path cannot itself be 'data'")
        rest = generate_path(lattice_shape, baseline, data_tiles, rng)
        first = list(dict.fromkeys(data_tiles))
        taken = set(first)
        path = np.array(first + [t for t in rest if t not in taken])

    tracer.event(f"Path {kind.value}: {n_tiles} tiles", data_tiles=len(data_tiles))
    return tuple(int(t) for t in path)


def _dilation_order(lattice_shape, seeds):
    """
    Tiles sorted by Chebyshev distance to the nearest seed tile.

    Without seeds the central tile is the only seed. Ties are broken by
    linear index.
    """
    n_tiles = int(np.prod(lattice_shape))
    if not seeds:
        seeds = [int(np.ravel_multi_index(tuple(n // 2 for n in lattice_shape), lattice_shape))]

    free = np.ones(lattice_shape, dtype=bool)
    free[np.unravel_index(np.asarray(seeds), lattice_shape)] = False
    distance = distance_transform_cdt(free, metric="chessboard").ravel()

    return np.lexsort((np.arange(n_tiles), distance))
