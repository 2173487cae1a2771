"""
Problem/solver adapter around the quilting engine.

A simulation problem names a domain shape, target variables, a realization
count and optional point observations. The solver holds per-variable quilting
parameters, translates both into `simulate` calls and returns one mapping
`variable -> array` per realization. The engine never imports this module.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from quiltsim.errors import ConfigurationError, ConflictError
from quiltsim.models import PathKind
from quiltsim.pipeline import simulate
from quiltsim.tracer import get_tracer, trace


class SimulationProblem(BaseModel):
    """What to simulate, independent of any solver."""
    domain_shape: Tuple[int, ...]
    variables: List[str] = Field(..., min_length=1)
    nreal: int = Field(default=1, ge=1)
    data: Dict[str, Dict[Tuple[int, ...], float]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @field_validator("domain_shape")
    @classmethod
    def _positive(cls, value):
        if not value or any(s <= 0 for s in value):
            raise ValueError(f"domain shape must be non-empty and positive, got {value}")
        return value


class VariableParams(BaseModel):
    """Quilting parameters for one variable."""
    trainimg: Any
    tilesize: Tuple[int, ...]
    overlap: Optional[Tuple[float, ...]] = None
    path: PathKind = PathKind.RASTER
    soft: List[Any] = Field(default_factory=list)
    tol: float = Field(default=0.1, ge=0.0)
    inactive: List[Tuple[int, ...]] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


class ImageQuiltingSolver:
    """
    Image quilting solver keyed by variable name.

    Example:
        solver = ImageQuiltingSolver(facies={"trainimg": ti, "tilesize": (30, 30)})
        solutions = solver.solve(problem)
    """

    def __init__(self, seed=None, workers=None, config=None, **params):
        self.seed = seed
        self.workers = workers
        self.config = config
        self.params = {}
        for name, value in params.items():
            try:
                self.params[name] = value if isinstance(value, VariableParams) else VariableParams(**value)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid parameters for variable {name!r}: {e}") from e

    def hard_data(self, problem, name, params):
        """Point observations plus inactive coordinates as NaN hard data."""
        hard = dict(problem.data.get(name, {}))
        for coord in params.inactive:
            coord = tuple(int(c) for c in coord)
            if coord in hard:
                raise ConflictError(f"Coordinate {coord} of {name!r} is both observed and inactive")
            hard[coord] = float("nan")
        return hard

    @trace(label="solve")
    def solve(self, problem):
        """
        Run every problem variable through the engine.

        Returns a list of length `problem.nreal` of {variable: ndarray}.
        Raises ConfigurationError when a variable has no parameters.
        """
        tracer = get_tracer()

        missing = [v for v in problem.variables if v not in self.params]
        if missing:
            raise ConfigurationError(f"No quilting parameters for variables: {missing}")

        solutions = [{} for _ in range(problem.nreal)]
        for name in problem.variables:
            params = self.params[name]
            with tracer.span(f"variable_{name}", module="solver"):
                reals = simulate(
                    params.trainimg, params.tilesize, problem.domain_shape,
                    hard=self.hard_data(problem, name, params),
                    soft=params.soft,
                    tol=params.tol,
                    nreal=problem.nreal,
                    overlap=params.overlap,
                    path=params.path.value,
                    debug=False,
                    seed=self.seed,
                    workers=self.workers,
                    config=self.config,
                )
            for solution, real in zip(solutions, reals):
                solution[name] = real

        return solutions
