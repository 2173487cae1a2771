"""Tests for the minimum-error seam cut."""

import numpy as np
import pytest

from quiltsim.errors import ConfigurationError


class TestMinCut:
    """Tests for min_cut."""

    def test_uniform_axis0_keeps_first_row(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.ones((20, 20)), np.ones((20, 20)), 0)

        assert (C[0, :] == 1).all()
        assert (C[1:, :] == 0).all()

    def test_uniform_axis1_keeps_first_column(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.ones((20, 20)), np.ones((20, 20)), 1)

        assert (C[:, 0] == 1).all()
        assert (C[:, 1:] == 0).all()

    def test_uniform_nonzero_energy_keeps_first_slice(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.zeros((6, 4)), np.full((6, 4), 3.0), 0)

        assert (C[0] == 1).all()
        assert (C[1:] == 0).all()

    def test_3d_uniform_axis2(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.ones((4, 5, 3)), np.ones((4, 5, 3)), 2)

        assert (C[:, :, 0] == 1).all()
        assert (C[:, :, 1:] == 0).all()

    def test_cut_follows_cheap_column(self):
        """The seam runs where A and B agree."""
        from quiltsim.seams.min_cut import min_cut

        A = np.zeros((6, 5))
        B = np.ones((6, 5))
        # A and B agree only on column 3
        B[:, 3] = 0.0

        C = min_cut(A, B, 1)

        assert (C[:, :3] == 1).all()
        assert (C[:, 4] == 0).all()

    def test_selector_is_binary_and_shaped(self, rng):
        from quiltsim.seams.min_cut import min_cut

        A = rng.random((5, 8))
        B = rng.random((5, 8))
        C = min_cut(A, B, 1)

        assert C.shape == (5, 8)
        assert set(np.unique(C)) <= {0, 1}
        assert (C[:, 0] == 1).all()
        assert (C[:, -1] == 0).all()

    def test_unknown_voxels_cost_nothing(self):
        from quiltsim.seams.min_cut import min_cut

        A = np.ones((4, 4))
        B = np.full((4, 4), 5.0)
        A[:, 2] = np.nan

        C = min_cut(A, B, 1)

        assert set(np.unique(C)) <= {0, 1}
        assert (C[:, 0] == 1).all()

    def test_single_slice_keeps_old(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.zeros((1, 6)), np.ones((1, 6)), 0)

        assert (C == 1).all()

    def test_empty_band(self):
        from quiltsim.seams.min_cut import min_cut

        C = min_cut(np.zeros((0, 3)), np.zeros((0, 3)), 0)

        assert C.shape == (0, 3)

    def test_shape_mismatch(self):
        from quiltsim.seams.min_cut import min_cut

        with pytest.raises(ConfigurationError):
            min_cut(np.zeros((3, 3)), np.zeros((3, 4)), 0)

    def test_bad_axis(self):
        from quiltsim.seams.min_cut import min_cut

        with pytest.raises(ConfigurationError):
            min_cut(np.zeros((3, 3)), np.zeros((3, 3)), 2)


class TestSeamSelector:
    """Tests for oriented seams."""

    def test_high_side_keeps_last_slice(self):
        from quiltsim.seams.min_cut import seam_selector

        C = seam_selector(np.ones((5, 5)), np.ones((5, 5)), 0, "high")

        assert (C[-1] == 1).all()
        assert (C[:-1] == 0).all()

    def test_unknown_side(self):
        from quiltsim.seams.min_cut import seam_selector

        with pytest.raises(ConfigurationError):
            seam_selector(np.ones((2, 2)), np.ones((2, 2)), 0, "left")


class TestFlowGraph:
    """Tests for flow network construction."""

    def test_grid_graph_size(self):
        from quiltsim.seams.min_cut import SINK, SOURCE, build_flow_graph

        graph = build_flow_graph(np.ones((3, 4)), 0)

        # 3x4 voxels, plus terminals
        assert graph.number_of_nodes() == 14
        # (2*4 + 3*3) adjacent pairs in both directions, 4 source and 4 sink arcs
        assert graph.number_of_edges() == 2 * 17 + 8
        assert graph.out_degree(SOURCE) == 4
        assert graph.in_degree(SINK) == 4

    def test_capacity_sums_endpoint_energy(self):
        from quiltsim.seams.min_cut import build_flow_graph

        energy = np.array([[1.0, 2.0]])
        graph = build_flow_graph(energy, 1)

        assert graph[0][1]["capacity"] == 3.0
        assert graph[1][0]["capacity"] == 3.0
