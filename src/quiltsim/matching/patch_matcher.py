"""
Training-image patch selection for one tile.

Each soft-data trend in turn narrows the anchors to those within a relative
tolerance of its best match. Inside that set, anchors are ranked by squared
error against already committed voxels and hard data and relaxed by the same
tolerance. The final anchor is drawn uniformly among the survivors; that draw
is what makes realizations differ.
"""

from dataclasses import dataclass

import numpy as np

from quiltsim.errors import ConfigurationError
from quiltsim.grid.simulation_grid import VoxelState
from quiltsim.matching.distance import TrainingImage, masked_sse, match_tolerance
from quiltsim.tracer import get_tracer


@dataclass
class MatchResult:
    anchor: tuple
    candidates: int
    patch: np.ndarray


def relax(distance, candidates, tol):
    """
    Restrict candidates to those within a relative tolerance of the best.

    Returns None when no candidate has a finite distance.
    """
    masked = np.where(candidates, distance, np.inf)
    finite = np.isfinite(masked)
    if not finite.any():
        return None
    best = masked[finite].min()
    threshold = (1.0 + tol) * best + match_tolerance(masked)
    return finite & (masked <= threshold)


class PatchMatcher:
    """
    Ranks training-image windows for tiles of a simulation grid.

    Shared read-only across realizations; all randomness comes from the
    generator passed to `match`.
    """

    def __init__(self, training_image, soft=None, tol=0.1, overlap_weight=1.0, hard_weight=1.0):
        if not isinstance(training_image, TrainingImage):
            training_image = TrainingImage(training_image)
        self.ti = training_image
        self.tol = tol
        self.overlap_weight = overlap_weight
        self.hard_weight = hard_weight
        self.soft = [(grid_aux, TrainingImage(ti_aux)) for grid_aux, ti_aux in (soft or [])]

    def conditioning_weights(self, grid, footprint):
        """Per-voxel weights: committed overlap voxels and hard voxels."""
        state = grid.state_in(footprint)
        fixed = grid.fixed_in(footprint)
        filled = state == VoxelState.FILLED
        return (
            self.overlap_weight * (filled & ~fixed)
            + self.hard_weight * fixed
        ).astype(np.float64)

    def distance(self, grid, footprint):
        """Conditioning distance for every anchor; inf where the window touches NaN."""
        window_shape = tuple(s.stop - s.start for s in footprint)
        invalid = self.ti.invalid_windows(window_shape)
        weights = self.conditioning_weights(grid, footprint)
        d = masked_sse(self.ti.values, self.ti.values_sq, weights, grid.values_in(footprint))
        d[invalid] = np.inf
        return d

    def soft_distance(self, index, footprint):
        grid_aux, ti_aux = self.soft[index]
        block = grid_aux[footprint]
        weights = np.isfinite(block).astype(np.float64)
        s = masked_sse(ti_aux.values, ti_aux.values_sq, weights, np.nan_to_num(block))
        s[ti_aux.invalid_windows(block.shape)] = np.inf
        return s

    def match(self, grid, footprint, rng):
        """
        Choose a training-image window for a tile footprint.

        Raises ConfigurationError if the training image has no valid window
        of the footprint's shape.
        """
        tracer = get_tracer()
        window_shape = tuple(s.stop - s.start for s in footprint)

        d = self.distance(grid, footprint)
        allowed = np.isfinite(d)
        if not allowed.any():
            raise ConfigurationError(
                f"No training image window of shape {window_shape} avoids unknown voxels"
            )

        for i in range(len(self.soft)):
            preferred = relax(self.soft_distance(i, footprint), allowed, self.tol)
            if preferred is None:
                tracer.event(f"Soft data {i} excludes every candidate, ignoring it", level="WARN")
                continue
            allowed = preferred

        # best conditioning distance inside the soft-preferred anchors
        candidates = relax(d, allowed, self.tol)

        flat = np.flatnonzero(candidates)
        pick = int(rng.choice(flat))
        anchor = tuple(int(a) for a in np.unravel_index(pick, d.shape))
        tracer.event("Matched", level="DEBUG", anchor=anchor, candidates=len(flat))

        return MatchResult(anchor=anchor, candidates=len(flat), patch=self.ti.window(anchor, window_shape))
