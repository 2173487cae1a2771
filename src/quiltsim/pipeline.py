"""
Quilting orchestrator for quiltsim.

Validates inputs once, then runs independent realizations. Each realization
owns its grid, path and random generator: tiles are visited in path order,
matched against the training image, stitched to already placed neighbors
along minimum-error seams and committed.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass

import numpy as np
from pydantic import ValidationError

from quiltsim.config import QuiltingConfig
from quiltsim.errors import ConfigurationError
from quiltsim.grid.hard_data import HardData, SoftData
from quiltsim.grid.simulation_grid import SimulationGrid, VoxelState
from quiltsim.grid.tiling import TileLattice
from quiltsim.io.save_artifacts import DebugArtifactWriter
from quiltsim.matching.distance import TrainingImage
from quiltsim.matching.patch_matcher import PatchMatcher
from quiltsim.models import RealizationReport, SimulationOptions, TileMode, TileRecord
from quiltsim.path.planner import generate_path
from quiltsim.seams.min_cut import seam_selector
from quiltsim.tracer import configure_tracer, get_tracer, trace


@dataclass
class QuiltingSetup:
    """Validated, read-only inputs shared by every realization."""
    options: SimulationOptions
    training_image: TrainingImage
    lattice: TileLattice
    hard: HardData
    soft: SoftData
    matcher: PatchMatcher
    data_tiles: list


def resolve_options(ndim, config, **overrides):
    """
    Merge config defaults with explicit keyword overrides and validate.

    A scalar overlap applies to every axis.
    """
    values = {
        "tol": config.matching.tol,
        "nreal": config.simulation.nreal,
        "overlap": config.tiling.overlap,
        "path": config.path.kind,
        "baseline": config.path.baseline,
        "debug": config.debug.enabled,
        "seed": config.simulation.seed,
        "workers": config.simulation.workers,
        "overlap_weight": config.matching.overlap_weight,
        "hard_weight": config.matching.hard_weight,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    overlap = values["overlap"]
    if np.isscalar(overlap):
        overlap = (float(overlap),) * ndim
    overlap = tuple(float(f) for f in overlap)
    if len(overlap) != ndim:
        raise ConfigurationError(f"Overlap {overlap} does not match rank {ndim}")
    values["overlap"] = overlap

    try:
        return SimulationOptions(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid simulation options: {e}") from e


def prepare(training_image, tile_shape, grid_shape, hard, soft, options):
    """
    Check shapes and conditioning data before any realization starts.

    Raises ConfigurationError or ConflictError; nothing is simulated on
    failure.
    """
    tracer = get_tracer()

    ti = TrainingImage(training_image)
    if ti.ndim == 0:
        raise ConfigurationError("Training image must have at least one axis")
    tile_shape = tuple(int(t) for t in tile_shape)
    grid_shape = tuple(int(g) for g in (grid_shape if grid_shape is not None else ti.shape))

    if not (ti.ndim == len(tile_shape) == len(grid_shape)):
        raise ConfigurationError(
            f"Rank mismatch: training image {ti.shape}, tile {tile_shape}, grid {grid_shape}"
        )
    if any(t > s for t, s in zip(tile_shape, ti.shape)):
        raise ConfigurationError(f"Tile {tile_shape} larger than training image {ti.shape}")

    lattice = TileLattice(grid_shape, tile_shape, options.overlap)
    if ti.invalid_windows(tile_shape).all():
        raise ConfigurationError(
            f"Every training image window of shape {tile_shape} touches unknown voxels"
        )

    hard = HardData.from_mapping(hard or {}, grid_shape)
    soft = SoftData(soft, grid_shape, ti.shape)
    matcher = PatchMatcher(
        ti, soft,
        tol=options.tol,
        overlap_weight=options.overlap_weight,
        hard_weight=options.hard_weight,
    )
    data_tiles = lattice.tiles_containing(hard.active_coords) if len(hard) else []

    tracer.event(
        "Lattice", counts=lattice.counts, overlap=lattice.overlap,
        spacing=lattice.spacing, data_tiles=len(data_tiles),
    )
    return QuiltingSetup(options, ti, lattice, hard, soft, matcher, data_tiles)


def place_tile(setup, grid, tile, placed, cut_map, rng):
    """
    Fill one tile and return its record.

    A filled voxel is replaced only if it lies in at least one seam band and
    every band covering it gives it up. Unfilled voxels always take the patch.
    """
    lattice = setup.lattice
    footprint = lattice.footprint(tile)
    state = grid.state_in(footprint).copy()
    fixed = grid.fixed_in(footprint).copy()
    inactive = state == VoxelState.INACTIVE

    if inactive.all():
        return TileRecord(tile_index=tile, mode=TileMode.SKIPPED)
    if (fixed | inactive).all():
        placed[tile] = True
        return TileRecord(tile_index=tile, mode=TileMode.HARD)

    match = setup.matcher.match(grid, footprint, rng)
    filled = state == VoxelState.FILLED

    covered = np.zeros(state.shape, dtype=bool)
    keep = np.zeros(state.shape, dtype=bool)
    old_values = grid.values_in(footprint)
    for band in lattice.bands(tile):
        if not placed[band.neighbor]:
            continue
        selector = seam_selector(
            old_values[band.slices], match.patch[band.slices], band.axis, band.side
        )
        covered[band.slices] = True
        keep[band.slices] |= selector.astype(bool)

    contested = covered & filled & ~fixed & ~inactive
    retained = contested & keep
    grid.commit(footprint, match.patch, ~filled | (covered & ~keep))
    cut_map[footprint] |= retained
    placed[tile] = True

    return TileRecord(
        tile_index=tile,
        mode=TileMode.PATTERN,
        anchor=list(match.anchor),
        candidates=match.candidates,
        band_voxels=int(contested.sum()),
        retained_voxels=int(retained.sum()),
    )


def run_realization(setup, index, seed):
    """One realization with a private grid, path and generator."""
    tracer = get_tracer()
    rng = np.random.default_rng(seed)
    lattice = setup.lattice
    options = setup.options

    with tracer.span(f"realization_{index}", module="pipeline"):
        grid = SimulationGrid.create(lattice.grid_shape)
        setup.hard.apply(grid)

        path = generate_path(lattice.counts, options.path, setup.data_tiles, rng, options.baseline)
        placed = np.zeros(lattice.n_tiles, dtype=bool)
        cut_map = np.zeros(lattice.grid_shape, dtype=bool)
        report = RealizationReport(realization=index, path=list(path))

        for tile in path:
            with tracer.span(f"tile_{tile}", module="pipeline", level="DEBUG"):
                report.tiles.append(place_tile(setup, grid, tile, placed, cut_map, rng))

        tracer.event(
            f"Realization {index} done",
            pattern=report.count(TileMode.PATTERN),
            hard=report.count(TileMode.HARD),
            skipped=report.count(TileMode.SKIPPED),
            cut_fraction=round(report.cut_fraction, 4),
        )

    return grid.snapshot(), cut_map, report


@trace(label="simulate")
def simulate(training_image, tile_shape, grid_shape=None, hard=None, soft=None, tol=None,
             nreal=None, overlap=None, path=None, debug=None, seed=None, rng=None,
             workers=None, config=None):
    """
    Image quilting simulation.

    Args:
        training_image: N-D array of training values, NaN for unknown voxels
        tile_shape: tile size per axis
        grid_shape: simulation shape, defaults to the training image shape
        hard: mapping grid coordinate -> value (NaN marks inactive voxels)
        soft: sequence of (grid_aux, ti_aux) trend pairs
        tol: relative tolerance around the best match
        nreal: number of realizations
        overlap: overlap fraction, scalar or per axis
        path: raster, dilation, random or data
        debug: also return seam maps and cut fractions
        seed: seed for the master random generator
        rng: numpy Generator, takes precedence over seed
        workers: threads running realizations concurrently
        config: QuiltingConfig with defaults for every unset option

    Returns:
        list of realizations, or (realizations, cut_maps, cut_fractions)
        when debug is enabled
    """
    tracer = get_tracer()

    if config is None:
        config = QuiltingConfig()
    if config.tracing.enabled:
        configure_tracer(**asdict(config.tracing))

    ndim = np.ndim(training_image)
    options = resolve_options(
        ndim, config,
        tol=tol, nreal=nreal, overlap=overlap, path=path,
        debug=debug, seed=seed, workers=workers,
    )
    setup = prepare(training_image, tile_shape, grid_shape, hard, soft, options)

    master = rng if rng is not None else np.random.default_rng(options.seed)
    seeds = master.integers(0, 2**63 - 1, size=options.nreal)

    if options.workers > 1 and options.nreal > 1:
        with ThreadPoolExecutor(max_workers=min(options.workers, options.nreal)) as executor:
            results = list(executor.map(
                lambda args: run_realization(setup, *args), enumerate(seeds)
            ))
    else:
        results = [run_realization(setup, i, s) for i, s in enumerate(seeds)]

    realizations = [r for r, _, _ in results]
    cut_maps = [c for _, c, _ in results]
    reports = [rep for _, _, rep in results]

    if config.debug.artifacts_dir:
        for i, (real, cut_map, report) in enumerate(results):
            DebugArtifactWriter(config.debug.artifacts_dir, i).save_realization(real, cut_map, report)

    tracer.event(f"Simulated {len(realizations)} realizations", shape=setup.lattice.grid_shape)

    if options.debug:
        return realizations, cut_maps, [rep.cut_fraction for rep in reports]
    return realizations
