"""Pytest fixtures for rasterpaths tests."""

import os
import tempfile

import cv2
import numpy as np
import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def two_level_grid():
    """16-bit grid, left half at 10, right half at 60000."""
    grid = np.full((40, 60), 60000, dtype=np.uint16)
    grid[:, :30] = 10
    return grid


@pytest.fixture
def uniform_grid():
    """Flat 16-bit grid."""
    return np.full((80, 80), 40000, dtype=np.uint16)


@pytest.fixture
def line_drawing_grid():
    """White 16-bit page with a dark rectangle outline and a diagonal."""
    img = np.full((120, 160), 255, dtype=np.uint8)
    cv2.rectangle(img, (20, 20), (140, 100), 0, 2)
    cv2.line(img, (20, 20), (140, 100), 0, 2)
    return img.astype(np.uint16) * 257


@pytest.fixture
def checker_mask():
    """Small asymmetric binary mask for exact pixel comparisons."""
    from rasterpaths.models import BACKGROUND, FOREGROUND

    mask = np.full((12, 15), BACKGROUND, dtype=np.uint8)
    mask[2:5, 3:9] = FOREGROUND
    mask[8, 1] = FOREGROUND
    mask[11, 14] = FOREGROUND
    return mask


@pytest.fixture
def default_config():
    """Create default pipeline configuration."""
    from rasterpaths.config import PipelineConfig
    return PipelineConfig()


@pytest.fixture
def synthetic_input_file(temp_dir):
    """8-bit PNG with a thick dark square outline on white."""
    img = np.full((100, 100), 255, dtype=np.uint8)
    cv2.rectangle(img, (20, 20), (80, 80), 0, 3)
    path = os.path.join(temp_dir, "input.png")
    cv2.imwrite(path, img)
    return path
