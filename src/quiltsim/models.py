"""
Pydantic data models for quiltsim.

Option sets are validated here before any realization starts; per-tile and
per-realization reports are plain serializable records for debug output.
"""

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PathKind(str, Enum):
    """Tile visiting orders."""
    RASTER = "raster"
    DILATION = "dilation"
    RANDOM = "random"
    DATA = "data"


class TileMode(str, Enum):
    """How a tile was filled."""
    PATTERN = "pattern"  # matched against the training image
    HARD = "hard"  # every active voxel hard-conditioned
    SKIPPED = "skipped"  # every voxel inactive


class SimulationOptions(BaseModel):
    """Validated options for one `simulate` call."""
    tol: float = Field(default=0.1, ge=0.0)
    nreal: int = Field(default=1, ge=1)
    overlap: Tuple[float, ...]
    path: PathKind = PathKind.RASTER
    baseline: PathKind = PathKind.RASTER
    debug: bool = False
    seed: Optional[int] = None
    workers: int = Field(default=1, ge=1)
    overlap_weight: float = Field(default=1.0, ge=0.0)
    hard_weight: float = Field(default=1.0, ge=0.0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("overlap")
    @classmethod
    def _overlap_fraction(cls, value):
        for frac in value:
            if not 0.0 <= frac < 1.0:
                raise ValueError(f"overlap fractions must be in [0, 1), got {frac}")
        return value

    @field_validator("baseline")
    @classmethod
    def _baseline_not_data(cls, value):
        if value == PathKind.DATA:
            raise ValueError("baseline path cannot itself be 'data'")
        return value


class TileRecord(BaseModel):
    """Outcome of placing one tile."""
    tile_index: int
    mode: TileMode
    anchor: Optional[List[int]] = None
    candidates: int = 0
    band_voxels: int = 0
    retained_voxels: int = 0

    model_config = ConfigDict(extra="forbid")


class RealizationReport(BaseModel):
    """Diagnostics for one realization."""
    realization: int
    path: List[int] = Field(default_factory=list)
    tiles: List[TileRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def band_voxels(self):
        """Total overlap-band voxels that went through a seam cut."""
        return sum(t.band_voxels for t in self.tiles)

    @property
    def retained_voxels(self):
        """Band voxels the seams kept from previously placed patches."""
        return sum(t.retained_voxels for t in self.tiles)

    @property
    def cut_fraction(self):
        """Retained band voxels over all band voxels, 0 without seams."""
        total = self.band_voxels
        return self.retained_voxels / total if total else 0.0

    def count(self, mode):
        """Number of tiles filled in the given mode."""
        return sum(1 for t in self.tiles if t.mode == mode)
