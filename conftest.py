"""Shared pytest fixtures; living at the root also puts the project on sys.path."""

import numpy as np
import pytest

from src.preprocessing import ImageProcessingSettings


@pytest.fixture
def min_max_settings():
    """4x4 min-max settings over [0, 10], sample-first layout"""
    return ImageProcessingSettings(
        normalization='min-max',
        min_limit=0,
        max_limit=10,
        width=4,
        height=4,
        index_dim=1
    )


@pytest.fixture
def rng():
    return np.random.default_rng(0)
