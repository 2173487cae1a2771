"""
Regular tile lattice over the simulation grid.

Tiles are spaced by `tile - overlap` along each axis so consecutive tiles
share an overlap band. The last tile on an axis is clipped at the grid edge.
"""

import math
from dataclasses import dataclass

import numpy as np

from quiltsim.errors import ConfigurationError


@dataclass(frozen=True)
class OverlapBand:
    """Overlap band of a tile shared with one neighbor."""
    axis: int
    side: str  # "low" or "high": which end of the axis the neighbor sits on
    neighbor: int  # linear index of the neighboring tile
    slices: tuple  # band location relative to the tile footprint


def overlap_voxels(tile_shape, overlap):
    """
    Overlap width per axis from fractions of the tile shape.

    Singleton axes get no overlap; otherwise the width is clamped to leave at
    least one voxel of spacing.
    """
    widths = []
    for size, frac in zip(tile_shape, overlap):
        if size <= 1:
            widths.append(0)
        else:
            widths.append(min(int(math.ceil(frac * size)), size - 1))
    return tuple(widths)


class TileLattice:
    """Tile geometry: counts, footprints and overlap bands."""

    def __init__(self, grid_shape, tile_shape, overlap):
        self.grid_shape = tuple(int(s) for s in grid_shape)
        self.tile_shape = tuple(int(s) for s in tile_shape)
        if len(self.grid_shape) != len(self.tile_shape):
            raise ConfigurationError(
                f"Tile rank {len(self.tile_shape)} does not match grid rank {len(self.grid_shape)}"
            )
        if len(overlap) != len(self.tile_shape):
            raise ConfigurationError(
                f"Overlap rank {len(overlap)} does not match tile rank {len(self.tile_shape)}"
            )
        if any(t <= 0 for t in self.tile_shape):
            raise ConfigurationError(f"Tile shape must be positive, got {self.tile_shape}")
        if any(t > g for t, g in zip(self.tile_shape, self.grid_shape)):
            raise ConfigurationError(
                f"Tile shape {self.tile_shape} exceeds grid shape {self.grid_shape}"
            )

        self.ndim = len(self.grid_shape)
        self.overlap = overlap_voxels(self.tile_shape, overlap)
        self.spacing = tuple(t - o for t, o in zip(self.tile_shape, self.overlap))
        self.counts = tuple(
            max(1, -(-(g - o) // s))
            for g, o, s in zip(self.grid_shape, self.overlap, self.spacing)
        )
        self.n_tiles = int(np.prod(self.counts))

    def multi_index(self, tile):
        return tuple(int(i) for i in np.unravel_index(tile, self.counts))

    def linear_index(self, multi):
        return int(np.ravel_multi_index(tuple(multi), self.counts))

    def origin(self, tile):
        return tuple(k * s for k, s in zip(self.multi_index(tile), self.spacing))

    def extent(self, tile):
        """Tile shape after clipping at the grid edge."""
        return tuple(
            min(t, g - o)
            for t, g, o in zip(self.tile_shape, self.grid_shape, self.origin(tile))
        )

    def footprint(self, tile):
        """Slices of the grid covered by a tile."""
        return tuple(
            slice(o, o + e) for o, e in zip(self.origin(tile), self.extent(tile))
        )

    def bands(self, tile):
        """
        Overlap bands shared with the face neighbors of a tile.

        A band spans the whole tile footprint on every axis but its own, so
        the neighbor covers it entirely.
        """
        multi = self.multi_index(tile)
        extent = self.extent(tile)
        result = []
        for axis in range(self.ndim):
            full = [slice(0, e) for e in extent]
            if multi[axis] > 0 and self.overlap[axis] > 0:
                neighbor = list(multi)
                neighbor[axis] -= 1
                sl = list(full)
                sl[axis] = slice(0, self.overlap[axis])
                result.append(OverlapBand(axis, "low", self.linear_index(neighbor), tuple(sl)))
            width = extent[axis] - self.spacing[axis]
            if multi[axis] < self.counts[axis] - 1 and width > 0:
                neighbor = list(multi)
                neighbor[axis] += 1
                sl = list(full)
                sl[axis] = slice(extent[axis] - width, extent[axis])
                result.append(OverlapBand(axis, "high", self.linear_index(neighbor), tuple(sl)))
        return result

    def tiles_containing(self, coords):
        """
        Sorted linear indices of all tiles whose footprint contains any of
        the given (n, ndim) coordinates.
        """
        coords = np.asarray(coords, dtype=np.intp).reshape(-1, self.ndim)
        found = set()
        for point in coords:
            ranges = []
            for c, t, s, n in zip(point, self.tile_shape, self.spacing, self.counts):
                lo = max(0, -(-(int(c) - t + 1) // s))
                hi = min(n - 1, int(c) // s)
                ranges.append(range(lo, hi + 1))
            for multi in np.ndindex(*[len(r) for r in ranges]):
                found.add(self.linear_index([r[i] for r, i in zip(ranges, multi)]))
        return sorted(found)
