"""Pytest fixtures for quiltsim tests."""

import tempfile

import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def rng():
    """Seeded generator so random draws are reproducible."""
    return np.random.default_rng(2017)


@pytest.fixture
def constant_ti():
    """Homogeneous 3-D training image."""
    return np.ones((20, 20, 20))


@pytest.fixture
def categorical_ti():
    """Random 3-D training image with four categories."""
    return np.random.default_rng(7).integers(0, 4, size=(20, 20, 20))


@pytest.fixture
def striped_ti():
    """2-D training image of vertical stripes, 3 voxels wide."""
    cols = (np.arange(30) // 3) % 2
    return np.tile(cols, (30, 1)).astype(float)


@pytest.fixture
def masked_ti():
    """Homogeneous training image with an unknown plane at column 4."""
    ti = np.ones((20, 20, 20))
    ti[:, 4, :] = np.nan
    return ti


@pytest.fixture
def default_config():
    """Create default engine configuration."""
    from quiltsim.config import QuiltingConfig
    return QuiltingConfig()
