"""
Exception hierarchy for quiltsim.

Fatal problems are detected before any realization starts, so a raised error
never comes with partial results.
"""


class QuiltingError(Exception):
    """Base class for all quilting errors."""


class ConfigurationError(QuiltingError, ValueError):
    """
    Inputs cannot be simulated as given.

    Incompatible ranks or shapes, a tile larger than the grid or training
    image, invalid option values, or no valid training-image anchor.
    """


class ConflictError(QuiltingError, ValueError):
    """
    Conditioning inputs contradict each other or the grid state.

    A hard-data coordinate with two different values, soft-data arrays whose
    shapes do not match the grid or training image, or a write to an
    inactive voxel.
    """
