"""
Incremental primitive builders.

Each builder accepts points one at a time and returns the best fit of its
family for every point added so far. Points must arrive in walk order:
reordering changes the result.

The line builder is a total-least-squares fit kept as running moments.
Arc and clothoid builders regress the unwrapped tangent angle of each
segment against arc length (degree 1 and 2), weighted by segment length,
then place the curve so its weighted mean offset from the points is zero.
"""

import math

import numpy as np

from strokefit.geometry.curves import CurvePrimitive, CurveType


def _wrap_angle(angle):
    """Wrap to (-pi, pi]."""
    return angle - 2.0 * math.pi * math.floor((angle + math.pi) / (2.0 * math.pi))


def _solve_normal_equations(lhs, rhs):
    try:
        return np.linalg.solve(lhs, rhs)
    except np.linalg.LinAlgError:
        return np.linalg.pinv(lhs) @ rhs


class FitterBase:
    """Common bookkeeping for incremental builders."""

    kind = None
    MIN_POINTS = 2

    def __init__(self):
        self._count = 0

    @property
    def num_points(self):
        return self._count

    def add_point(self, point):
        raise NotImplementedError

    def get_primitive(self):
        raise NotImplementedError

    def _check_ready(self):
        if self._count < self.MIN_POINTS:
            raise ValueError(
                f"{type(self).__name__} needs at least {self.MIN_POINTS} points, has {self._count}"
            )


class LineFitter(FitterBase):
    """Total least squares line through running second moments."""

    kind = CurveType.LINE
    MIN_POINTS = 2

    def __init__(self):
        super().__init__()
        self._sum = np.zeros(2)
        self._sum_sq = np.zeros((2, 2))
        self._first = None
        self._last = None

    def add_point(self, point):
        p = np.asarray(point, dtype=float)
        if self._first is None:
            self._first = p.copy()
        self._last = p.copy()
        self._sum += p
        self._sum_sq += np.outer(p, p)
        self._count += 1

    def get_primitive(self):
        self._check_ready()

        mean = self._sum / self._count
        cov = self._sum_sq / self._count - np.outer(mean, mean)
        chord = self._last - self._first

        eigvals, eigvecs = np.linalg.eigh(cov)
        direction = eigvecs[:, np.argmax(eigvals)]
        if eigvals.max() <= 1e-18:
            norm = np.linalg.norm(chord)
            direction = chord / norm if norm > 0 else np.array([1.0, 0.0])

        if np.dot(direction, chord) < 0:
            direction = -direction

        t0 = np.dot(self._first - mean, direction)
        t1 = np.dot(self._last - mean, direction)
        start = mean + t0 * direction
        angle = math.atan2(direction[1], direction[0])

        return CurvePrimitive.line(start, angle, t1 - t0)


class _TangentAngleFitter(FitterBase):
    """
    Polynomial regression of tangent angle against arc length.

    Each segment contributes its direction at its arc-length midpoint,
    weighted by its length. Moments are accumulated per point; placement
    against the stored points happens on query.
    """

    DEGREE = 1

    def __init__(self):
        super().__init__()
        self._points = []
        self._params = []
        self._arc_length = 0.0
        self._prev_angle = None
        # sum w s^j for j <= 2 * DEGREE, sum w theta s^j for j <= DEGREE
        self._moments = np.zeros(2 * self.DEGREE + 1)
        self._angle_moments = np.zeros(self.DEGREE + 1)

    def add_point(self, point):
        p = np.asarray(point, dtype=float)
        if self._points:
            delta = p - self._points[-1]
            seg_len = float(np.hypot(delta[0], delta[1]))
            if seg_len > 0:
                raw = math.atan2(delta[1], delta[0])
                if self._prev_angle is None:
                    angle = raw
                else:
                    angle = self._prev_angle + _wrap_angle(raw - self._prev_angle)
                self._prev_angle = angle

                mid = self._arc_length + 0.5 * seg_len
                powers = mid ** np.arange(len(self._moments))
                self._moments += seg_len * powers
                self._angle_moments += seg_len * angle * powers[:len(self._angle_moments)]
            self._arc_length += seg_len

        self._points.append(p)
        self._params.append(self._arc_length)
        self._count += 1

    def _angle_coefficients(self):
        size = self.DEGREE + 1
        lhs = np.array([[self._moments[i + j] for j in range(size)] for i in range(size)])
        return _solve_normal_equations(lhs, self._angle_moments)

    def _place(self, angle, curvature, dcurvature):
        """Build the curve and translate it onto the accumulated points."""
        if self.kind == CurveType.ARC:
            curve = CurvePrimitive.arc((0.0, 0.0), angle, self._arc_length, curvature)
        else:
            curve = CurvePrimitive.clothoid((0.0, 0.0), angle, self._arc_length, curvature, dcurvature)

        pts = np.array(self._points)
        params = np.array(self._params)
        seg = np.diff(params)
        weights = np.zeros(len(pts))
        weights[:-1] += 0.5 * seg
        weights[1:] += 0.5 * seg
        if weights.sum() <= 0:
            weights[:] = 1.0

        offsets = pts - curve.pos(params)
        start = np.average(offsets, axis=0, weights=weights)

        values = curve.params()
        values[:2] = start
        curve.set_params(values)
        return curve


class ArcFitter(_TangentAngleFitter):
    """Circular arc: tangent angle linear in arc length."""

    kind = CurveType.ARC
    MIN_POINTS = 3
    DEGREE = 1

    def get_primitive(self):
        self._check_ready()
        angle, curvature = self._angle_coefficients()
        return self._place(angle, curvature, 0.0)


class ClothoidFitter(_TangentAngleFitter):
    """Clothoid: tangent angle quadratic in arc length."""

    kind = CurveType.CLOTHOID
    MIN_POINTS = 4
    DEGREE = 2

    def get_primitive(self):
        self._check_ready()
        angle, curvature, half_dcurvature = self._angle_coefficients()
        return self._place(angle, curvature, 2.0 * half_dcurvature)

    def get_curve_with_zero_curvature(self, s):
        """
        Refit with curvature pinned to zero at arc-length offset s.

        The angle model becomes angle + dcurvature * (u^2 / 2 - s u), a two
        parameter fit expressed through the same moments.
        """
        self._check_ready()
        m = self._moments
        b = self._angle_moments

        basis_sum = 0.5 * m[2] - s * m[1]
        basis_sq = 0.25 * m[4] - s * m[3] + s * s * m[2]
        basis_angle = 0.5 * b[2] - s * b[1]

        lhs = np.array([[m[0], basis_sum], [basis_sum, basis_sq]])
        rhs = np.array([b[0], basis_angle])
        angle, dcurvature = _solve_normal_equations(lhs, rhs)

        return self._place(angle, -dcurvature * s, dcurvature)


FITTERS = {
    CurveType.LINE: LineFitter,
    CurveType.ARC: ArcFitter,
    CurveType.CLOTHOID: ClothoidFitter,
}


def create_fitter(kind):
    return FITTERS[CurveType(kind)]()
