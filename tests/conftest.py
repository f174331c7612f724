"""Pytest configuration and fixtures."""

import numpy as np
import pytest


@pytest.fixture
def two_pairs():
    """Four points forming two well-separated pairs."""
    return np.array([
        [0.0, 0.0, 0.0, 1.0],
        [0.1, 0.1, 0.1, 1.0],
        [10.0, 10.0, 10.0, 1.0],
        [10.1, 10.1, 10.1, 1.0],
    ])


@pytest.fixture
def blobs():
    """Three tight, well-separated blobs of 4D points (60 points each)."""
    rng = np.random.default_rng(1234)
    centers = np.array([
        [0.0, 0.0, 0.0, 1.0],
        [20.0, 0.0, 10.0, 1.0],
        [0.0, 30.0, -10.0, 0.5],
    ])
    points = np.concatenate([
        center + rng.normal(scale=0.5, size=(60, 4)) for center in centers
    ])
    return points, centers


@pytest.fixture
def srgb_samples():
    """Chromatic in-gamut sRGB colors."""
    return np.array([
        [0.8, 0.2, 0.1],
        [0.1, 0.7, 0.3],
        [0.2, 0.3, 0.9],
        [0.95, 0.9, 0.15],
        [0.5, 0.1, 0.6],
        [0.3, 0.6, 0.65],
    ])
