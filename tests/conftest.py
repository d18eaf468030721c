"""Pytest fixtures for strokefit tests."""

import json
import os
import tempfile

import numpy as np
import pytest


def clothoid_points(k0=0.05, dk=0.002, length=40.0, step=2.0, jitter=0.0):
    """Points sampled on a clothoid starting at the origin heading along +x."""
    from strokefit.geometry.curves import CurvePrimitive

    curve = CurvePrimitive.clothoid((0.0, 0.0), 0.0, length, k0, dk)
    s = np.arange(0.0, length + 1e-9, step)
    pts = curve.pos(s)
    if jitter:
        normals = curve.der(s) @ np.array([[0.0, 1.0], [-1.0, 0.0]])
        signs = np.where(np.arange(len(s)) % 2 == 0, 1.0, -1.0)
        pts = pts + jitter * signs[:, None] * normals
    return pts


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def straight_points():
    """Eleven collinear points along a diagonal."""
    t = np.linspace(0.0, 1.0, 11)
    return np.column_stack([3.0 + 40.0 * t, 2.0 + 30.0 * t])


@pytest.fixture
def arc_points():
    """Counter-clockwise quarter circle of radius 20, 16 points."""
    t = np.linspace(0.0, np.pi / 2, 16)
    return np.column_stack([20.0 * np.cos(t), 20.0 * np.sin(t)])


@pytest.fixture
def s_curve_points():
    """A sine wave with one inflection in the middle."""
    t = np.linspace(0.0, 2.0 * np.pi, 25)
    return np.column_stack([8.0 * t, 8.0 * np.sin(t)])


@pytest.fixture
def noisy_clothoid_points():
    return clothoid_points(jitter=0.3)


@pytest.fixture
def default_config():
    """Create default configuration."""
    from strokefit.config import PipelineConfig
    return PipelineConfig()


@pytest.fixture
def stroke_file(temp_dir, arc_points):
    """A stroke JSON file holding the quarter circle."""
    path = os.path.join(temp_dir, "stroke.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"points": arc_points.tolist(), "closed": False}, f)
    return path
