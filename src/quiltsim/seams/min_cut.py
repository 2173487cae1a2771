"""
Minimum-error boundary cut through an overlap band.

The band is a flow network: one node per voxel, arcs between axis-adjacent
voxels weighted by the mismatch energy of both endpoints, an infinite source
arc into every voxel of the first slice along the cut axis (the old patch
side) and an infinite sink arc out of every voxel of the last slice. The
minimum s-t cut separates voxels kept from the old patch from voxels taken
from the new one.
"""

from collections import deque

import networkx as nx
import numpy as np
from networkx.algorithms.flow import boykov_kolmogorov

from quiltsim.errors import ConfigurationError
from quiltsim.tracer import get_tracer, trace

SOURCE = "source"
SINK = "sink"


def band_energy(A, B):
    """Per-voxel mismatch |A - B|, zero wherever either side is unknown."""
    energy = np.abs(A - B)
    energy[~np.isfinite(energy)] = 0.0
    return energy


def build_flow_graph(energy, axis):
    """
    Directed grid graph over the band.

    Nodes are C-order linear voxel indices plus SOURCE and SINK.
    """
    graph = nx.DiGraph()
    ids = np.arange(energy.size).reshape(energy.shape)
    flat = energy.ravel()
    graph.add_nodes_from(range(energy.size))

    for k in range(energy.ndim):
        if energy.shape[k] < 2:
            continue
        lo = [slice(None)] * energy.ndim
        hi = [slice(None)] * energy.ndim
        lo[k] = slice(None, -1)
        hi[k] = slice(1, None)
        u = ids[tuple(lo)].ravel()
        v = ids[tuple(hi)].ravel()
        cap = flat[u] + flat[v]
        graph.add_edges_from(
            (int(a), int(b), {"capacity": float(c)}) for a, b, c in zip(u, v, cap)
        )
        graph.add_edges_from(
            (int(b), int(a), {"capacity": float(c)}) for a, b, c in zip(u, v, cap)
        )

    first = np.take(ids, 0, axis=axis).ravel()
    last = np.take(ids, -1, axis=axis).ravel()
    graph.add_edges_from((SOURCE, int(n), {"capacity": float("inf")}) for n in first)
    graph.add_edges_from((int(n), SINK, {"capacity": float("inf")}) for n in last)
    return graph


def source_side(residual, eps):
    """Nodes reachable from SOURCE through arcs with residual capacity."""
    seen = {SOURCE}
    queue = deque([SOURCE])
    while queue:
        u = queue.popleft()
        for v, attr in residual[u].items():
            if v not in seen and attr["capacity"] - attr["flow"] > eps:
                seen.add(v)
                queue.append(v)
    return seen


@trace(label="min_cut", level="DEBUG")
def min_cut(A, B, axis):
    """
    Binary selector for the seam between an old band A and a new band B.

    1 keeps A, 0 takes B. The old side is the start of `axis`. The selector
    is the minimal source side of the cut, so uniform energy keeps exactly
    the first slice along `axis`.
    """
    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if A.shape != B.shape:
        raise ConfigurationError(f"Cut arrays differ in shape: {A.shape} vs {B.shape}")
    if not -A.ndim <= axis < A.ndim:
        raise ConfigurationError(f"Cut axis {axis} invalid for rank {A.ndim}")
    axis = axis % A.ndim

    if A.size == 0:
        return np.zeros(A.shape, dtype=np.int8)
    if A.shape[axis] == 1:
        return np.ones(A.shape, dtype=np.int8)

    energy = band_energy(A, B)
    graph = build_flow_graph(energy, axis)
    residual = boykov_kolmogorov(graph, SOURCE, SINK, capacity="capacity")

    eps = 1e-12 * max(float(energy.max()), 1.0)
    keep = source_side(residual, eps)
    keep.discard(SOURCE)
    keep.discard(SINK)

    selector = np.zeros(A.size, dtype=np.int8)
    selector[np.fromiter(keep, dtype=np.intp, count=len(keep))] = 1

    get_tracer().event(
        "Cut", level="DEBUG",
        flow=residual.graph["flow_value"], kept=len(keep), voxels=A.size,
    )
    return selector.reshape(A.shape)


def seam_selector(A, B, axis, old_side="low"):
    """
    Cut a band whose previously placed patch sits at either end of `axis`.

    For old_side="high" the band is mirrored so the old patch is at the
    start, cut, and mirrored back.
    """
    if old_side == "low":
        return min_cut(A, B, axis)
    if old_side == "high":
        return np.flip(min_cut(np.flip(A, axis), np.flip(B, axis), axis), axis)
    raise ConfigurationError(f"Unknown seam side {old_side!r}")
