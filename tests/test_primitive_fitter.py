"""Tests for candidate enumeration and the algorithm registry."""

from collections import defaultdict

import numpy as np
import pytest

from strokefit.config import INFINITY, FittingConfig
from strokefit.debugging import CurveRecorder
from strokefit.fitting.error_computer import ErrorComputer
from strokefit.fitting.primitive_fitter import (
    FittingParams,
    PrimitiveFitter,
    available_algorithms,
    fit_primitives,
    get_algorithm,
)
from strokefit.geometry.curves import CurveType, TYPE_NAMES
from strokefit.geometry.polyline import Polyline


def _endpoint_corners(n):
    corners = np.zeros(n, dtype=bool)
    corners[0] = corners[-1] = True
    return corners


def _run(points, params, algorithm="Default", closed=False, corners=None, sink=None):
    poly = Polyline(points, closed=closed)
    if corners is None:
        corners = np.zeros(len(points), dtype=bool) if closed else _endpoint_corners(len(points))
    fits = fit_primitives(poly, corners, ErrorComputer(poly), params, algorithm, sink)
    return poly, fits


@pytest.fixture
def l_shape_points():
    horizontal = [[10.0 * i, 0.0] for i in range(6)]
    vertical = [[50.0, 10.0 * i] for i in range(1, 6)]
    return np.array(horizontal + vertical)


class TestFittingParams:
    """Tests for derived fitting flags."""

    def test_from_config_scales_threshold(self):
        config = FittingConfig(error_threshold=2.0, scale=1.5)

        params = FittingParams.from_config(config)

        assert params.error_threshold == pytest.approx(3.0)

    def test_flags(self):
        params = FittingParams(inflection_cost=0.0, clothoid_cost=INFINITY)

        assert not params.inflection_accounting
        assert params.need_type(CurveType.LINE)
        assert not params.need_type(CurveType.CLOTHOID)


class TestCandidateEnumeration:
    """Tests for which windows become candidates."""

    @pytest.mark.parametrize("algorithm", ["Default", "Adjust"])
    def test_candidates_respect_threshold(self, noisy_clothoid_points, algorithm):
        params = FittingParams(error_threshold=1.0)

        poly, fits = _run(noisy_clothoid_points, params, algorithm)

        assert fits
        for fit in fits:
            length = poly.length_from_to(fit.start_idx, fit.end_idx)
            assert fit.error / length <= 1.0 + 1e-12

    def test_windows_grow_contiguously(self, noisy_clothoid_points):
        params = FittingParams(error_threshold=1.0, inflection_cost=0.0)

        _, fits = _run(noisy_clothoid_points, params)

        ends = defaultdict(list)
        for fit in fits:
            ends[(fit.start_idx, fit.curve.kind)].append(fit.end_idx)

        for (start, kind), found in ends.items():
            assert found == list(range(start + 1 + kind, start + 1 + kind + len(found)))

    def test_num_pts_matches_window(self, noisy_clothoid_points):
        _, fits = _run(noisy_clothoid_points, FittingParams(inflection_cost=0.0))

        for fit in fits:
            assert fit.num_pts == fit.end_idx - fit.start_idx + 1
            assert fit.num_pts >= 2 + fit.curve.kind

    def test_tight_threshold_limits_window_length(self, arc_points):
        loose = _run(arc_points, FittingParams(error_threshold=5.0, inflection_cost=0.0))[1]
        tight = _run(arc_points, FittingParams(error_threshold=0.2, inflection_cost=0.0))[1]

        def longest_line(fits):
            return max(f.num_pts for f in fits if f.curve.kind == CurveType.LINE)

        assert longest_line(tight) < longest_line(loose)

    def test_no_window_crosses_a_corner(self, l_shape_points):
        corners = np.zeros(len(l_shape_points), dtype=bool)
        corners[[0, 5, 10]] = True

        _, fits = _run(l_shape_points, FittingParams(error_threshold=1.0), corners=corners)

        assert any(f.end_idx == 5 for f in fits)
        assert any(f.start_idx == 5 for f in fits)
        for fit in fits:
            assert not (fit.start_idx < 5 < fit.end_idx)

    def test_closed_windows_wrap(self):
        t = np.linspace(0.0, 2 * np.pi, 12, endpoint=False)
        circle = 20.0 * np.column_stack([np.cos(t), np.sin(t)])

        _, fits = _run(circle, FittingParams(error_threshold=1.0), closed=True)

        assert any(f.end_idx < f.start_idx for f in fits)

    @pytest.fixture
    def circle_points(self):
        t = np.linspace(0.0, 2 * np.pi, 12, endpoint=False)
        return 20.0 * np.column_stack([np.cos(t), np.sin(t)])

    def test_closed_windows_stop_at_corner(self, circle_points):
        n = len(circle_points)
        corners = np.zeros(n, dtype=bool)
        corners[4] = True

        _, fits = _run(circle_points, FittingParams(error_threshold=1.0), closed=True, corners=corners)

        assert any(f.start_idx > 4 and f.end_idx == 4 and f.curve.kind == CurveType.ARC for f in fits)
        assert any(f.start_idx == 4 and f.num_pts == n for f in fits)
        for fit in fits:
            span = (fit.end_idx - fit.start_idx) % n
            corner_offset = (4 - fit.start_idx) % n
            assert not (0 < corner_offset < span)

    def test_closed_windows_grow_contiguously(self, circle_points):
        n = len(circle_points)
        corners = np.zeros(n, dtype=bool)
        corners[4] = True
        params = FittingParams(error_threshold=1.0, inflection_cost=0.0)

        _, fits = _run(circle_points, params, closed=True, corners=corners)

        sizes = defaultdict(list)
        for fit in fits:
            assert fit.end_idx == (fit.start_idx + fit.num_pts - 1) % n
            sizes[(fit.start_idx, fit.curve.kind)].append(fit.num_pts)

        for (start, kind), found in sizes.items():
            assert found == list(range(2 + kind, 2 + kind + len(found)))

    def test_corner_count_mismatch_raises(self, arc_points):
        poly = Polyline(arc_points)

        with pytest.raises(ValueError):
            PrimitiveFitter().run(poly, [True, False], ErrorComputer(poly), FittingParams())


class TestUnneededFamilies:
    """Tests for families with infinite cost."""

    def test_infinite_clothoid_cost_skips_clothoids(self, noisy_clothoid_points):
        params = FittingParams(clothoid_cost=INFINITY)

        _, fits = _run(noisy_clothoid_points, params)

        assert not any(f.curve.kind == CurveType.CLOTHOID for f in fits)

    def test_infinite_arc_cost_keeps_shortest_arcs(self, noisy_clothoid_points):
        params = FittingParams(arc_cost=INFINITY, inflection_cost=0.0)

        _, fits = _run(noisy_clothoid_points, params)

        arcs = [f for f in fits if f.curve.kind == CurveType.ARC]
        assert arcs
        assert all(f.num_pts == 3 for f in arcs)

    def test_infinite_line_cost_keeps_two_point_lines(self, noisy_clothoid_points):
        params = FittingParams(line_cost=INFINITY, inflection_cost=0.0)

        _, fits = _run(noisy_clothoid_points, params)

        lines = [f for f in fits if f.curve.kind == CurveType.LINE]
        assert len(lines) == len(noisy_clothoid_points) - 1
        assert all(f.num_pts == 2 for f in lines)


class TestInflectionAccounting:
    """Tests for curvature sign handling."""

    def test_lines_emitted_with_both_signs(self, noisy_clothoid_points):
        _, fits = _run(noisy_clothoid_points, FittingParams(inflection_cost=5.0))

        lines = [f for f in fits if f.curve.kind == CurveType.LINE]
        assert len(lines) % 2 == 0
        for first, second in zip(lines[0::2], lines[1::2]):
            assert (first.start_idx, first.end_idx) == (second.start_idx, second.end_idx)
            assert first.start_curv_sign == -second.start_curv_sign
            assert first.end_curv_sign == -second.end_curv_sign

    def test_no_line_duplicates_without_accounting(self, noisy_clothoid_points):
        _, fits = _run(noisy_clothoid_points, FittingParams(inflection_cost=0.0))

        windows = [(f.start_idx, f.end_idx) for f in fits if f.curve.kind == CurveType.LINE]
        assert len(windows) == len(set(windows))

    def test_s_curve_produces_split_candidates(self, s_curve_points):
        _, fits = _run(s_curve_points, FittingParams(error_threshold=5.0, inflection_cost=5.0))

        clothoids = [f for f in fits if f.curve.kind == CurveType.CLOTHOID]
        assert any(f.start_curv_sign != f.end_curv_sign for f in clothoids)

        splits = [
            f for f in clothoids
            if f.start_curv_sign == f.end_curv_sign
            and min(abs(f.curve.start_curvature), abs(f.curve.end_curvature)) < 1e-9
        ]
        assert splits

    def test_split_groups(self, s_curve_points):
        _, fits = _run(s_curve_points, FittingParams(error_threshold=5.0, inflection_cost=5.0))

        groups = defaultdict(list)
        for fit in fits:
            if fit.curve.kind == CurveType.CLOTHOID:
                groups[(fit.start_idx, fit.end_idx)].append(fit)

        for group in groups.values():
            assert len(group) <= 3
            if len(group) > 1:
                assert group[0].start_curv_sign != group[0].end_curv_sign
                for split in group[1:]:
                    assert split.start_curv_sign == split.end_curv_sign


class TestDebugSink:
    """Tests for the visualization side channel."""

    def test_sink_receives_every_candidate(self, arc_points):
        recorder = CurveRecorder()

        _, fits = _run(arc_points, FittingParams(), sink=recorder)

        assert len(recorder) == len(fits)
        assert set(recorder.by_name()) <= set(TYPE_NAMES.values())
        for (curve, color, name), fit in zip(recorder.curves, fits):
            assert curve is fit.curve
            assert color[fit.curve.kind] == 1.0
            assert name == TYPE_NAMES[fit.curve.kind]


class TestRegistry:
    """Tests for algorithm lookup."""

    def test_builtin_algorithms(self):
        names = available_algorithms()

        assert set(names) == {"Default", "Adjust"}

    def test_lookup_is_case_insensitive(self):
        assert get_algorithm("adjust").adjust
        assert not get_algorithm("DEFAULT").adjust

    def test_none_means_default(self):
        assert get_algorithm(None).name == "Default"

    def test_unknown_algorithm_raises(self):
        with pytest.raises(ValueError):
            get_algorithm("spline")

    def test_results_are_deterministic(self, arc_points):
        first = _run(arc_points, FittingParams(), "Adjust")[1]
        second = _run(arc_points, FittingParams(), "Adjust")[1]

        assert len(first) == len(second)
        for a, b in zip(first, second):
            np.testing.assert_array_equal(a.curve.params(), b.curve.params())
            assert (a.start_idx, a.end_idx, a.error) == (b.start_idx, b.end_idx, b.error)
