"""
Conditioning data containers.

Hard data are kept sparse: an (n, ndim) coordinate array plus a value
vector, applied once to each fresh grid. Soft data pairs are validated and copied
once so caller arrays are never aliased into the engine.
"""

import numpy as np

from quiltsim.errors import ConfigurationError, ConflictError
from quiltsim.tracer import get_tracer


def _readonly_copy(array):
    out = np.array(array, dtype=np.float64, copy=True)
    out.flags.writeable = False
    return out


class HardData:
    """
    Sparse point observations keyed by grid coordinate.

    A NaN value declares the coordinate inactive.
    """

    def __init__(self, coords, values, grid_shape):
        self.grid_shape = tuple(grid_shape)
        self.coords = coords
        self.values = values
        self.coords.flags.writeable = False
        self.values.flags.writeable = False
        self.inactive = np.isnan(values)

    @classmethod
    def from_mapping(cls, data, grid_shape):
        """
        Build from a mapping `coords -> value` or an iterable of pairs.

        Raises ConfigurationError on coordinates of the wrong rank or outside
        the grid, ConflictError when one coordinate carries two values.
        """
        grid_shape = tuple(int(s) for s in grid_shape)
        ndim = len(grid_shape)
        items = data.items() if hasattr(data, "items") else (data or [])

        seen = {}
        for coord, value in items:
            key = tuple(int(c) for c in np.ravel(coord))
            if len(key) != ndim:
                raise ConfigurationError(f"Hard data coordinate {key} does not match grid rank {ndim}")
            if any(c < 0 or c >= s for c, s in zip(key, grid_shape)):
                raise ConfigurationError(f"Hard data coordinate {key} outside grid {grid_shape}")
            value = float(value)
            if key in seen:
                previous = seen[key]
                same = previous == value or (np.isnan(previous) and np.isnan(value))
                if not same:
                    raise ConflictError(
                        f"Hard data coordinate {key} assigned both {previous} and {value}"
                    )
                continue
            seen[key] = value

        if seen:
            coords = np.array(list(seen.keys()), dtype=np.intp)
            values = np.array(list(seen.values()), dtype=np.float64)
        else:
            coords = np.empty((0, ndim), dtype=np.intp)
            values = np.empty(0, dtype=np.float64)

        get_tracer().event("Hard data", points=len(values), inactive=int(np.isnan(values).sum()))
        return cls(coords, values, grid_shape)

    def __len__(self):
        return len(self.values)

    @property
    def active_coords(self):
        return self.coords[~self.inactive]

    @property
    def inactive_coords(self):
        return self.coords[self.inactive]

    def apply(self, grid):
        """Fix observed values and mark inactive voxels on a fresh grid."""
        if len(self) == 0:
            return
        if self.inactive.any():
            grid.mark_inactive(self.inactive_coords)
        active = ~self.inactive
        if active.any():
            grid.set(self.coords[active], self.values[active], fixed=True)


class SoftData:
    """Auxiliary trend fields paired at grid scale and training-image scale."""

    def __init__(self, pairs, grid_shape, ti_shape):
        self.pairs = []
        for i, pair in enumerate(pairs or []):
            try:
                grid_aux, ti_aux = pair
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Soft data entry {i} is not a (grid_aux, ti_aux) pair") from e
            grid_aux = _readonly_copy(grid_aux)
            ti_aux = _readonly_copy(ti_aux)
            if grid_aux.shape != tuple(grid_shape):
                raise ConflictError(
                    f"Soft data {i}: grid auxiliary shape {grid_aux.shape} != grid shape {tuple(grid_shape)}"
                )
            if ti_aux.shape != tuple(ti_shape):
                raise ConflictError(
                    f"Soft data {i}: training auxiliary shape {ti_aux.shape} != training image shape {tuple(ti_shape)}"
                )
            self.pairs.append((grid_aux, ti_aux))

    def __len__(self):
        return len(self.pairs)

    def __iter__(self):
        return iter(self.pairs)
