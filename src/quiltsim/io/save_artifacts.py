"""
Debug artifact output for quiltsim.

Writes realizations, seam maps and per-tile reports under
`<out_dir>/debug/real_<n>/` so a run can be inspected after the fact.
"""

import json
import os

import numpy as np

from quiltsim.tracer import get_tracer


def ensure_dir(path):
    """Create directory if it does not exist."""
    os.makedirs(path, exist_ok=True)


def save_json(data, path, indent=2):
    """Save a dictionary or pydantic model to JSON."""
    ensure_dir(os.path.dirname(path))

    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, default=str)

    get_tracer().event(f"Saved JSON: {path}")


def save_array(array, path):
    """Save a numpy array in .npy format."""
    ensure_dir(os.path.dirname(path))
    np.save(path, array)
    get_tracer().event(f"Saved array: {path}", array=array)


class DebugArtifactWriter:
    """Per-realization artifact writer."""

    def __init__(self, out_dir, realization, enabled=True):
        self.out_dir = out_dir
        self.realization = realization
        self.enabled = enabled and out_dir is not None

    @property
    def directory(self):
        return os.path.join(self.out_dir, "debug", f"real_{self.realization:03d}")

    def save_array(self, array, filename):
        if not self.enabled:
            return None
        path = os.path.join(self.directory, filename)
        save_array(array, path)
        return path

    def save_json(self, data, filename):
        if not self.enabled:
            return None
        path = os.path.join(self.directory, filename)
        save_json(data, path)
        return path

    def save_realization(self, realization, cut_map, report):
        """Write the realization, its seam map and its tile report."""
        self.save_array(realization, "realization.npy")
        self.save_array(cut_map, "cut_map.npy")
        self.save_json(report, "report.json")
        if self.enabled:
            self.save_json(
                {
                    "tiles": len(report.tiles),
                    "band_voxels": report.band_voxels,
                    "retained_voxels": report.retained_voxels,
                    "cut_fraction": round(report.cut_fraction, 6),
                },
                "metrics.json",
            )
