"""
Window distances between a tile and every training-image position.

All distances are masked sums of squared differences evaluated for every
anchor at once with correlation:

    sum_k W[k] (I[a + k] - G[k])^2
        = corr(I^2, W)[a] - 2 corr(I, W G)[a] + sum_k W[k] G[k]^2
"""

import numpy as np
from scipy.signal import correlate

from quiltsim.errors import ConfigurationError


def masked_sse(image, image_sq, weights, target):
    """
    Weighted squared error of `target` against every window of `image`.

    `image` must hold no NaN; entries of `target` where `weights` is zero are
    ignored. Returns an array of shape `image.shape - weights.shape + 1`.
    """
    out_shape = tuple(i - w + 1 for i, w in zip(image.shape, weights.shape))
    if not np.any(weights):
        return np.zeros(out_shape)

    active = weights != 0
    target = np.where(active, target, 0.0)
    weighted = weights * target

    sse = (
        correlate(image_sq, weights, mode="valid")
        - 2.0 * correlate(image, weighted, mode="valid")
        + np.sum(weighted * target)
    )
    # FFT round-off can push exact matches slightly below zero
    return np.maximum(sse, 0.0)


def match_tolerance(sse):
    """Absolute slack treating round-off differences as ties."""
    finite = sse[np.isfinite(sse)]
    scale = float(finite.max()) if finite.size else 0.0
    return 1e-9 * max(scale, 1.0)


class TrainingImage:
    """
    Read-only training image prepared for window matching.

    NaN voxels are zero-filled for the correlations; every window touching
    one is reported invalid.
    """

    def __init__(self, array):
        values = np.array(array, dtype=np.float64, copy=True)
        self.shape = values.shape
        self.ndim = values.ndim
        self.unknown = np.isnan(values)
        self.unknown.flags.writeable = False
        self.raw = values
        self.raw.flags.writeable = False
        self.values = np.where(self.unknown, 0.0, values)
        self.values.flags.writeable = False
        self.values_sq = self.values ** 2
        self.values_sq.flags.writeable = False
        self._invalid = {}

    def invalid_windows(self, window_shape):
        """Boolean array over anchors: True where the window touches NaN."""
        window_shape = tuple(window_shape)
        cached = self._invalid.get(window_shape)
        if cached is not None:
            return cached

        if any(w > s for w, s in zip(window_shape, self.shape)):
            raise ConfigurationError(
                f"Window {window_shape} larger than training image {self.shape}"
            )
        if self.unknown.any():
            counts = correlate(self.unknown.astype(np.float64), np.ones(window_shape), mode="valid")
            invalid = counts > 0.5
        else:
            invalid = np.zeros(tuple(s - w + 1 for s, w in zip(self.shape, window_shape)), dtype=bool)
        invalid.flags.writeable = False
        self._invalid[window_shape] = invalid
        return invalid

    def window(self, anchor, window_shape):
        """Raw training values (NaN preserved) of the window at an anchor."""
        return self.raw[tuple(slice(a, a + w) for a, w in zip(anchor, window_shape))]
