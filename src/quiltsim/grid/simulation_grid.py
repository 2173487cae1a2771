"""
Simulation grid state for one realization.

Holds voxel values and a per-voxel state. Unfilled voxels carry no value;
inactive voxels hold the unknown marker (NaN) forever; fixed voxels hold hard
data and are never rewritten by synthesis.
"""

from enum import IntEnum

import numpy as np

from quiltsim.errors import ConfigurationError, ConflictError

UNKNOWN = np.nan


class VoxelState(IntEnum):
    UNFILLED = 0
    FILLED = 1
    INACTIVE = 2


class SimulationGrid:
    """
    Mutable N-D grid with fill and mask state.

    Values and states only move forward: an unfilled voxel may become filled
    or inactive, never the reverse.
    """

    def __init__(self, shape):
        shape = tuple(int(s) for s in shape)
        if any(s <= 0 for s in shape):
            raise ConfigurationError(f"Grid shape must be positive, got {shape}")
        self.shape = shape
        self.ndim = len(shape)
        self._values = np.full(shape, UNKNOWN, dtype=np.float64)
        self._state = np.zeros(shape, dtype=np.uint8)
        self._fixed = np.zeros(shape, dtype=bool)

    @classmethod
    def create(cls, shape):
        """New grid with every voxel unfilled."""
        return cls(shape)

    def _index(self, coords):
        """Normalize a coordinate tuple or an (n, ndim) array to an index tuple."""
        arr = np.asarray(coords, dtype=np.intp)
        if arr.ndim == 1:
            arr = arr[np.newaxis, :]
        if arr.ndim != 2 or arr.shape[1] != self.ndim:
            raise ConfigurationError(
                f"Coordinates of rank {arr.shape[-1] if arr.ndim else 0} do not match grid rank {self.ndim}"
            )
        if arr.size and (np.any(arr < 0) or np.any(arr >= np.array(self.shape))):
            raise ConfigurationError(f"Coordinates outside grid of shape {self.shape}")
        return tuple(arr.T)

    def mark_inactive(self, coords):
        """Permanently exclude voxels from simulation."""
        idx = self._index(coords)
        self._state[idx] = VoxelState.INACTIVE
        self._values[idx] = UNKNOWN
        self._fixed[idx] = False

    def set(self, coords, value, fixed=False):
        """
        Assign values to voxels.

        Raises ConflictError if any target voxel is inactive.
        """
        idx = self._index(coords)
        if np.any(self._state[idx] == VoxelState.INACTIVE):
            raise ConflictError("Cannot assign a value to an inactive voxel")
        self._values[idx] = value
        self._state[idx] = VoxelState.FILLED
        if fixed:
            self._fixed[idx] = True

    def is_fillable(self, coords):
        """True when synthesis may still write every given voxel."""
        idx = self._index(coords)
        return bool(np.all((self._state[idx] != VoxelState.INACTIVE) & ~self._fixed[idx]))

    def snapshot(self):
        """Copy of the current values, unfilled voxels as the unknown marker."""
        out = self._values.copy()
        out[self._state == VoxelState.UNFILLED] = UNKNOWN
        return out

    # block access for tile-level work

    def values_in(self, slices):
        return self._values[slices]

    def state_in(self, slices):
        return self._state[slices]

    def fixed_in(self, slices):
        return self._fixed[slices]

    def commit(self, slices, patch, replace):
        """
        Write a patch into a block where `replace` is True.

        Fixed and inactive voxels are left untouched. Returns the number of
        voxels written.
        """
        writable = replace & ~self._fixed[slices] & (self._state[slices] != VoxelState.INACTIVE)
        block = self._values[slices]
        block[writable] = patch[writable]
        self._state[slices][writable] = VoxelState.FILLED
        return int(writable.sum())

    @property
    def inactive_mask(self):
        return self._state == VoxelState.INACTIVE

    @property
    def unfilled_count(self):
        return int(np.sum(self._state == VoxelState.UNFILLED))
