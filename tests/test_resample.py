"""Tests for stroke resampling and corner detection."""

import numpy as np
import pytest

from strokefit.strokes.resample import (
    detect_corners,
    remove_duplicate_points,
    resample_stroke,
    turning_angles,
)


class TestRemoveDuplicates:
    """Tests for duplicate point removal."""

    def test_consecutive_duplicates_removed(self):
        pts = [[0, 0], [0, 0], [1, 0], [1, 0], [2, 0]]

        out = remove_duplicate_points(pts)

        np.testing.assert_array_equal(out, [[0, 0], [1, 0], [2, 0]])

    def test_closing_duplicate_removed_on_closed_strokes(self):
        pts = [[0, 0], [1, 0], [1, 1], [0, 0]]

        assert len(remove_duplicate_points(pts, closed=True)) == 3
        assert len(remove_duplicate_points(pts, closed=False)) == 4


class TestCornerDetection:
    """Tests for turning angles and corner flags."""

    def test_right_angle(self):
        pts = [[0, 0], [1, 0], [1, 1]]

        angles = turning_angles(pts)

        assert angles[1] == pytest.approx(np.pi / 2)
        assert angles[0] == 0.0

    def test_open_endpoints_are_corners(self):
        pts = np.column_stack([np.arange(5.0), np.zeros(5)])

        corners = detect_corners(pts, closed=False)

        np.testing.assert_array_equal(corners, [True, False, False, False, True])

    def test_gentle_turn_is_not_a_corner(self):
        pts = [[0, 0], [1, 0], [2, 0.5]]

        assert not detect_corners(pts, corner_angle_deg=60.0)[1]


class TestResampleStroke:
    """Tests for corner-preserving resampling."""

    def test_straight_stroke_evenly_spaced(self):
        pts = [[0, 0], [7, 0], [23, 0], [61, 0], [100, 0]]

        out, corners = resample_stroke(pts, spacing=10.0)

        assert len(out) == 11
        np.testing.assert_allclose(np.diff(out[:, 0]), 10.0)
        np.testing.assert_array_equal(np.flatnonzero(corners), [0, 10])

    def test_corner_survives_as_vertex(self):
        pts = [[10.0 * i, 0.0] for i in range(6)] + [[50.0, 10.0 * i] for i in range(1, 6)]

        out, corners = resample_stroke(pts, spacing=10.0)

        assert len(out) == 11
        np.testing.assert_array_equal(np.flatnonzero(corners), [0, 5, 10])
        np.testing.assert_allclose(out[5], [50.0, 0.0])

    def test_closed_square(self):
        pts = [[0, 0], [20, 0], [20, 20], [0, 20]]

        out, corners = resample_stroke(pts, closed=True, spacing=10.0)

        assert len(out) == 8
        np.testing.assert_array_equal(np.flatnonzero(corners), [0, 2, 4, 6])
        np.testing.assert_allclose(out[2], [20.0, 0.0])

    def test_closed_loop_without_corners(self):
        t = np.linspace(0.0, 2 * np.pi, 72, endpoint=False)
        circle = 30.0 * np.column_stack([np.cos(t), np.sin(t)])

        out, corners = resample_stroke(circle, closed=True, spacing=5.0)

        assert not corners.any()
        assert len(out) == pytest.approx(2 * np.pi * 30.0 / 5.0, abs=2)

    def test_degenerate_stroke_raises(self):
        with pytest.raises(ValueError):
            resample_stroke([[1, 1], [1, 1], [1, 1]])
