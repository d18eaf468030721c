"""
Curve primitives: lines, circular arcs and clothoids.

All three families share one arc-length parameterization. A primitive starts
at (X, Y) with tangent angle ANGLE and runs for LENGTH; its tangent angle at
arc length s is

    theta(s) = ANGLE + CURVATURE * s + DCURVATURE * s^2 / 2

Lines use the first four parameter slots, arcs five and clothoids all six.
The family is a tag on a single class rather than a class hierarchy, since
the set of families is fixed and callers switch on it.
"""

from enum import IntEnum

import numpy as np
from scipy.special import fresnel


class CurveType(IntEnum):
    LINE = 0
    ARC = 1
    CLOTHOID = 2


class Param(IntEnum):
    X = 0
    Y = 1
    ANGLE = 2
    LENGTH = 3
    CURVATURE = 4
    DCURVATURE = 5


PARAM_COUNT = {
    CurveType.LINE: 4,
    CurveType.ARC: 5,
    CurveType.CLOTHOID: 6,
}

TYPE_NAMES = {
    CurveType.LINE: "Lines",
    CurveType.ARC: "Arcs",
    CurveType.CLOTHOID: "Clothoids",
}

# Below this total angle contribution the clothoid term is evaluated as an arc
_CLOTHOID_EPS = 1e-8

# Fresnel integrals lose precision past this argument; integrate the tangent instead
_FRESNEL_MAX_ARG = 10.0

# Largest tangent rotation across one quadrature panel, in radians
_PANEL_ANGLE = 1.0

_GL_NODES, _GL_WEIGHTS = np.polynomial.legendre.leggauss(24)


def _rot90(v):
    """Rotate (..., 2) vectors by +90 degrees."""
    return np.stack([-v[..., 1], v[..., 0]], axis=-1)


def _arc_offset(angle, curvature, s):
    """Displacement along an arc of constant curvature, stable as curvature -> 0."""
    half = 0.5 * curvature * s
    # np.sinc is the normalized sinc, sin(pi x) / (pi x)
    chord = s * np.sinc(half / np.pi)
    mid = angle + half
    return np.stack([chord * np.cos(mid), chord * np.sin(mid)], axis=-1)


def _clothoid_offset(angle, curvature, dcurvature, s):
    """Displacement along a clothoid via Fresnel integrals."""
    scale = np.sqrt(abs(dcurvature) / np.pi)
    sign = 1.0 if dcurvature > 0 else -1.0
    shift = curvature / dcurvature
    phase = angle - 0.5 * curvature * shift

    t0 = shift * scale
    t1 = (s + shift) * scale
    s0, c0 = fresnel(t0)
    s1, c1 = fresnel(t1)
    dc = c1 - c0
    ds = sign * (s1 - s0)

    factor = 1.0 / scale
    cos_p, sin_p = np.cos(phase), np.sin(phase)
    x = factor * (cos_p * dc - sin_p * ds)
    y = factor * (sin_p * dc + cos_p * ds)
    return np.stack([x, y], axis=-1)


class CurvePrimitive:
    """A single line, arc or clothoid with a flat parameter vector."""

    def __init__(self, kind, params):
        self.kind = CurveType(kind)
        self._params = np.zeros(PARAM_COUNT[self.kind])
        self.set_params(params)

    @classmethod
    def line(cls, start, angle, length):
        return cls(CurveType.LINE, [start[0], start[1], angle, length])

    @classmethod
    def arc(cls, start, angle, length, curvature):
        return cls(CurveType.ARC, [start[0], start[1], angle, length, curvature])

    @classmethod
    def clothoid(cls, start, angle, length, curvature, dcurvature):
        return cls(CurveType.CLOTHOID, [start[0], start[1], angle, length, curvature, dcurvature])

    def __repr__(self):
        values = ", ".join(f"{Param(i).name.lower()}={v:.4g}" for i, v in enumerate(self._params))
        return f"CurvePrimitive({self.kind.name}, {values})"

    def copy(self):
        return CurvePrimitive(self.kind, self._params)

    def params(self):
        return self._params.copy()

    def set_params(self, params):
        params = np.asarray(params, dtype=float).ravel()
        if len(params) != len(self._params):
            raise ValueError(
                f"{self.kind.name} takes {len(self._params)} parameters, got {len(params)}"
            )
        self._params[:] = params

    @property
    def num_params(self):
        return len(self._params)

    def _get(self, slot):
        if slot < len(self._params):
            return float(self._params[slot])
        return 0.0

    @property
    def length(self):
        return self._get(Param.LENGTH)

    @property
    def start_pos(self):
        return self._params[:2].copy()

    @property
    def start_angle(self):
        return self._get(Param.ANGLE)

    @property
    def start_curvature(self):
        return self._get(Param.CURVATURE)

    @property
    def dcurvature(self):
        return self._get(Param.DCURVATURE)

    @property
    def end_curvature(self):
        return self.start_curvature + self.length * self.dcurvature

    @property
    def end_pos(self):
        return self.pos(self.length)

    @property
    def end_angle(self):
        return float(self.angle(self.length))

    def angle(self, s):
        s = np.asarray(s, dtype=float)
        return self.start_angle + self.start_curvature * s + 0.5 * self.dcurvature * s * s

    def curvature(self, s):
        s = np.asarray(s, dtype=float)
        return self.start_curvature + self.dcurvature * s

    def der(self, s):
        """Unit tangent at arc length s."""
        theta = self.angle(s)
        return np.stack([np.cos(theta), np.sin(theta)], axis=-1)

    def pos(self, s):
        s = np.asarray(s, dtype=float)
        angle = self.start_angle
        curvature = self.start_curvature
        dcurvature = self.dcurvature

        if self.kind == CurveType.LINE:
            offset = _arc_offset(angle, 0.0, s)
        elif self.kind == CurveType.ARC or abs(dcurvature) * max(self.length, 1.0) ** 2 < _CLOTHOID_EPS:
            offset = _arc_offset(angle, curvature, s)
        elif self._fresnel_argument() > _FRESNEL_MAX_ARG:
            offset = self._tangent_integral(s).reshape(s.shape + (2,))
        else:
            offset = _clothoid_offset(angle, curvature, dcurvature, s)

        return self.start_pos + offset

    def _fresnel_argument(self):
        """Largest Fresnel argument reached over [0, length]."""
        dcurvature = self.dcurvature
        shift = self.start_curvature / dcurvature
        scale = np.sqrt(abs(dcurvature) / np.pi)
        return max(abs(shift), abs(self.length + shift)) * scale

    def _quadrature(self, s):
        """
        Composite Gauss-Legendre nodes and weights over [0, s] for each s.

        Panels are sized so the tangent turns by at most _PANEL_ANGLE across
        each one. Returns two (len(s), panels * 24) arrays.
        """
        extent = float(np.max(np.abs(s))) if len(s) else 0.0
        k0 = self.start_curvature
        rate = max(abs(k0), abs(k0 + self.dcurvature * extent))
        panels = max(1, int(np.ceil(rate * extent / _PANEL_ANGLE)))

        fractions = (np.arange(panels)[:, None] + 0.5 * (_GL_NODES[None, :] + 1.0)).ravel() / panels
        u = s[:, None] * fractions[None, :]
        w = 0.5 * s[:, None] * np.tile(_GL_WEIGHTS, panels)[None, :] / panels
        return u, w

    def _tangent_integral(self, s):
        """Displacement over [0, s] by integrating the unit tangent."""
        s = np.asarray(s, dtype=float).ravel()
        u, w = self._quadrature(s)
        theta = self.angle(u)
        return np.stack([np.sum(w * np.cos(theta), axis=1), np.sum(w * np.sin(theta), axis=1)], axis=-1)

    def _weighted_normal_integral(self, s, power):
        """Integral over [0, s] of u^power / power! times the left normal at u."""
        s = np.atleast_1d(np.asarray(s, dtype=float))
        u, w = self._quadrature(s)
        theta = self.angle(u)
        weight = w * u ** power
        if power == 2:
            weight = 0.5 * weight
        nx = np.sum(weight * -np.sin(theta), axis=1)
        ny = np.sum(weight * np.cos(theta), axis=1)
        return np.stack([nx, ny], axis=-1)

    def param_derivatives(self, s):
        """
        Derivatives of pos(s) with respect to every parameter at fixed s.

        Returns an array of shape (len(s), 2, num_params). The LENGTH column
        is zero: moving the end of the curve does not move interior points.
        """
        s = np.atleast_1d(np.asarray(s, dtype=float))
        out = np.zeros((len(s), 2, self.num_params))
        out[:, 0, Param.X] = 1.0
        out[:, 1, Param.Y] = 1.0
        out[:, :, Param.ANGLE] = _rot90(self.pos(s) - self.start_pos)

        if self.kind >= CurveType.ARC:
            out[:, :, Param.CURVATURE] = self._weighted_normal_integral(s, 1)
        if self.kind == CurveType.CLOTHOID:
            out[:, :, Param.DCURVATURE] = self._weighted_normal_integral(s, 2)
        return out

    def closest_params(self, points, guesses=None, iterations=6):
        """
        Arc-length parameters of the curve points closest to `points`.

        Newton iteration on (pos(s) - q) . der(s) = 0 from the given guesses,
        clamped to [0, length].
        """
        points = np.atleast_2d(np.asarray(points, dtype=float))
        length = self.length
        if guesses is None:
            s = np.full(len(points), 0.5 * length)
        else:
            s = np.clip(np.asarray(guesses, dtype=float), 0.0, length)

        for _ in range(iterations):
            diff = points - self.pos(s)
            tangent = self.der(s)
            along = np.sum(diff * tangent, axis=1)
            across = np.sum(diff * _rot90(tangent), axis=1)
            slope = 1.0 - self.curvature(s) * across
            # Near the center of curvature Newton is unreliable; fall back to a plain step
            slope = np.where(slope > 0.1, slope, 1.0)
            s = np.clip(s + along / slope, 0.0, length)

        return s

    def sample(self, n=32):
        """n points evenly spaced in arc length, for drawing."""
        return self.pos(np.linspace(0.0, self.length, max(int(n), 2)))
