"""
Fit error of a curve primitive against a window of the polyline.

The error is a length-weighted sum of squared distances: every window
point carries a trapezoid share of the window's arc length, so dividing
the error by the window length gives a mean squared distance. The first
and last window points are measured against the curve's start and end;
interior points against their closest point on the curve.
"""

import numpy as np

from strokefit.geometry.curves import Param


class ErrorComputer:
    """Scores curves against windows of one polyline."""

    def __init__(self, polyline):
        self.polyline = polyline

    def window(self, start, end):
        """Points, arc-length offsets and trapezoid weights for the window [start, end]."""
        indices = self.polyline.window_indices(start, end)
        if len(indices) < 2:
            raise ValueError(f"Window [{start}, {end}] covers fewer than two points")

        pts = self.polyline.pts().array[indices]
        # Segment i joins point i to its successor, wrapping on closed polylines
        seg = self.polyline.segment_lengths[indices[:-1]]
        offsets = np.concatenate([[0.0], np.cumsum(seg)])

        weights = np.zeros(len(pts))
        weights[:-1] += 0.5 * seg
        weights[1:] += 0.5 * seg
        return pts, offsets, weights

    def compute_error(self, curve, start, end):
        residuals, _ = self.compute_error_vector(curve, start, end, with_jacobian=False)
        return float(np.dot(residuals, residuals))

    def compute_error_vector(self, curve, start, end, with_jacobian=True):
        """
        Residual vector and its Jacobian with respect to the curve parameters.

        Layout: two components for the start point, one signed distance per
        interior point, two components for the end point. The sum of squares
        equals compute_error().
        """
        pts, offsets, weights = self.window(start, end)
        root_w = np.sqrt(weights)
        length = curve.length
        n_params = curve.num_params

        start_diff = pts[0] - curve.start_pos
        end_diff = pts[-1] - curve.end_pos

        inner_pts = pts[1:-1]
        window_length = offsets[-1]
        scale = length / window_length if window_length > 0 else 0.0
        s = curve.closest_params(inner_pts, offsets[1:-1] * scale)

        inner_diff = inner_pts - curve.pos(s)
        dist = np.linalg.norm(inner_diff, axis=1)
        normal = curve.der(s) @ np.array([[0.0, 1.0], [-1.0, 0.0]])
        side = np.where(np.sum(inner_diff * normal, axis=1) < 0, -1.0, 1.0)
        inner_res = side * dist

        residuals = np.concatenate([
            root_w[0] * start_diff,
            root_w[1:-1] * inner_res,
            root_w[-1] * end_diff,
        ])

        if not with_jacobian:
            return residuals, None

        jac = np.zeros((len(residuals), n_params))
        end_tangent = curve.der(length)

        jac[0:2] = -root_w[0] * curve.param_derivatives([0.0])[0]

        end_der = curve.param_derivatives([length])[0]
        end_der[:, Param.LENGTH] = end_tangent
        jac[-2:] = -root_w[-1] * end_der

        if len(inner_pts):
            # Residual direction: unit offset when it is defined, curve normal otherwise
            direction = np.where(
                dist[:, None] > 1e-12,
                inner_diff / np.maximum(dist, 1e-12)[:, None] * side[:, None],
                normal,
            )
            derivs = curve.param_derivatives(s)
            at_end = s >= length
            derivs[at_end, :, Param.LENGTH] = end_tangent
            jac[2:-2] = -root_w[1:-1, None] * np.einsum("ij,ijk->ik", direction, derivs)

        return residuals, jac
