"""
Arc-length parameterized polyline over a PointSequence.

Closed polylines carry an extra closing segment from the last point back
to the first, and their parameter wraps modulo the total length.
"""

import numpy as np

from strokefit.geometry.point_sequence import PointSequence


class Polyline:
    """Polyline with cached cumulative arc length."""

    def __init__(self, points, closed=None):
        if isinstance(points, PointSequence):
            if closed is not None and bool(closed) != points.closed:
                raise ValueError("closed flag disagrees with the point sequence")
            self._pts = points
        else:
            self._pts = PointSequence(points, closed=bool(closed))

        pts = self._pts.array
        if len(pts) < 2:
            raise ValueError("A polyline needs at least two points")

        if self._pts.closed:
            ends = np.vstack([pts[1:], pts[:1]])
        else:
            ends = pts[1:]

        self._segment_lengths = np.linalg.norm(ends - pts[:len(ends)], axis=1)
        # One entry per point, plus the wrap-around end for closed polylines
        self._lengths = np.concatenate([[0.0], np.cumsum(self._segment_lengths)])

    def pts(self):
        return self._pts

    @property
    def closed(self):
        return self._pts.closed

    @property
    def num_segments(self):
        return len(self._segment_lengths)

    @property
    def segment_lengths(self):
        return self._segment_lengths

    def length(self):
        return float(self._lengths[-1])

    def idx_to_param(self, idx):
        return float(self._lengths[self._pts.to_index(idx)])

    def param_to_idx(self, param):
        """
        Index of the last vertex at or before `param`.

        This is the segment containing `param`, except that the very end of
        the polyline maps one past the last segment: the last point for open
        polylines, the point count for closed ones.
        """
        total = self.length()
        if self.closed and total > 0 and (param < 0 or param > total):
            param = param % total

        idx = int(np.searchsorted(self._lengths, param, side="right")) - 1
        return min(max(idx, 0), len(self._lengths) - 1)

    def _segment(self, idx):
        start = self._pts[idx]
        end = self._pts[idx + 1]
        return start, end, self._segment_lengths[idx]

    def _segment_index(self, param):
        return min(self.param_to_idx(param), self.num_segments - 1)

    def pos(self, param):
        idx = self._segment_index(param)
        start, end, seg_len = self._segment(idx)
        if seg_len <= 0:
            return start.copy()

        if self.closed:
            param = self._wrap(param)
        t = (param - self._lengths[idx]) / seg_len
        return start + t * (end - start)

    def der(self, param):
        """Unit tangent of the segment containing `param`."""
        idx = self._segment_index(param)
        start, end, seg_len = self._segment(idx)
        if seg_len <= 0:
            return np.zeros(2)
        return (end - start) / seg_len

    def _wrap(self, param):
        total = self.length()
        if param < 0 or param > total:
            return param % total
        return param

    def length_from_to(self, from_idx, to_idx):
        """Arc length walked forward from one index to another."""
        from_idx = self._pts.to_index(from_idx)
        to_idx = self._pts.to_index(to_idx)

        if to_idx >= from_idx:
            return float(self._lengths[to_idx] - self._lengths[from_idx])
        if not self.closed:
            raise ValueError(f"Cannot walk backwards from {from_idx} to {to_idx} on an open polyline")
        return float(self.length() - self._lengths[from_idx] + self._lengths[to_idx])

    def window_indices(self, start, end):
        """Point indices walked forward from start to end, inclusive."""
        n = len(self._pts)
        start = self._pts.to_index(start)
        end = self._pts.to_index(end)
        if end >= start:
            return np.arange(start, end + 1)
        if not self.closed:
            raise ValueError(f"Window [{start}, {end}] runs backwards on an open polyline")
        return np.arange(start, end + n + 1) % n
