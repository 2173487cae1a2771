"""Tests for the problem/solver adapter."""

import numpy as np
import pytest

from quiltsim.errors import ConfigurationError, ConflictError


@pytest.fixture
def facies_ti():
    """Random 2-D categorical training image."""
    return np.random.default_rng(11).integers(0, 3, size=(50, 50)).astype(float)


class TestImageQuiltingSolver:
    """Tests for ImageQuiltingSolver.solve."""

    def test_unconditional_with_inactive_block(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver, SimulationProblem

        problem = SimulationProblem(domain_shape=(100, 100), variables=["facies"], nreal=3)
        inactive = [(i, j) for i in range(30) for j in range(30)]
        solver = ImageQuiltingSolver(
            seed=2,
            facies={"trainimg": facies_ti, "tilesize": (20, 20), "inactive": inactive},
        )

        solutions = solver.solve(problem)

        assert len(solutions) == 3
        for solution in solutions:
            real = solution["facies"]
            assert real.shape == (100, 100)
            assert np.isnan(real[:30, :30]).all()
            real[:30, :30] = 0.0
            assert not np.isnan(real).any()

    def test_point_data_honored(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver, SimulationProblem

        data = {(5, 5): 2.0, (60, 40): 1.0, (99, 99): 0.0}
        problem = SimulationProblem(
            domain_shape=(100, 100), variables=["facies"], nreal=2, data={"facies": data},
        )
        solver = ImageQuiltingSolver(seed=4, facies={"trainimg": facies_ti, "tilesize": (20, 20), "path": "data"})

        for solution in solver.solve(problem):
            for coord, value in data.items():
                assert solution["facies"][coord] == value

    def test_several_variables(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver, SimulationProblem

        problem = SimulationProblem(domain_shape=(20, 20), variables=["a", "b"])
        solver = ImageQuiltingSolver(
            seed=1,
            a={"trainimg": facies_ti, "tilesize": (10, 10)},
            b={"trainimg": np.ones((20, 20)), "tilesize": (10, 10)},
        )

        solutions = solver.solve(problem)

        assert set(solutions[0]) == {"a", "b"}
        assert (solutions[0]["b"] == 1).all()

    def test_missing_parameters(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver, SimulationProblem

        problem = SimulationProblem(domain_shape=(50, 50), variables=["facies", "porosity"])
        solver = ImageQuiltingSolver(facies={"trainimg": facies_ti, "tilesize": (10, 10)})

        with pytest.raises(ConfigurationError):
            solver.solve(problem)

    def test_invalid_parameters(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver

        with pytest.raises(ConfigurationError):
            ImageQuiltingSolver(facies={"trainimg": facies_ti, "tilesize": (10, 10), "tol": -1})
        with pytest.raises(ConfigurationError):
            ImageQuiltingSolver(facies={"trainimg": facies_ti})

    def test_observed_and_inactive(self, facies_ti):
        from quiltsim.solver import ImageQuiltingSolver, SimulationProblem

        problem = SimulationProblem(
            domain_shape=(50, 50), variables=["facies"], data={"facies": {(1, 1): 1.0}},
        )
        solver = ImageQuiltingSolver(
            facies={"trainimg": facies_ti, "tilesize": (10, 10), "inactive": [(1, 1)]},
        )

        with pytest.raises(ConflictError):
            solver.solve(problem)


class TestSimulationProblem:
    """Tests for problem validation."""

    def test_requires_variables(self):
        from pydantic import ValidationError

        from quiltsim.solver import SimulationProblem

        with pytest.raises(ValidationError):
            SimulationProblem(domain_shape=(10, 10), variables=[])

    def test_positive_domain(self):
        from pydantic import ValidationError

        from quiltsim.solver import SimulationProblem

        with pytest.raises(ValidationError):
            SimulationProblem(domain_shape=(10, 0), variables=["x"])
