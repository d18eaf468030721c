"""
Stroke preparation ahead of primitive fitting.

Removes near-duplicate points, marks corners where the stroke turns
sharply, and resamples to roughly uniform spacing between corners. Corners
survive resampling as vertices.
"""

import math

import numpy as np

from strokefit.tracer import get_tracer, trace


def remove_duplicate_points(points, closed=False, tolerance=1e-6):
    """
    Remove consecutive duplicate or near-duplicate points.

    On closed strokes the last point is also dropped when it repeats the first.
    """
    points = np.asarray(points, dtype=float)
    if len(points) <= 1:
        return points

    keep = [0]
    for i in range(1, len(points)):
        if np.linalg.norm(points[i] - points[keep[-1]]) > tolerance:
            keep.append(i)

    if closed and len(keep) > 1 and np.linalg.norm(points[keep[-1]] - points[0]) <= tolerance:
        keep.pop()

    return points[keep]


def turning_angles(points, closed=False):
    """Absolute turning angle at every point; open endpoints get 0."""
    points = np.asarray(points, dtype=float)
    n = len(points)
    angles = np.zeros(n)
    if n < 3:
        return angles

    for i in range(n):
        if not closed and (i == 0 or i == n - 1):
            continue
        prev_vec = points[i] - points[(i - 1) % n]
        next_vec = points[(i + 1) % n] - points[i]
        cross = prev_vec[0] * next_vec[1] - prev_vec[1] * next_vec[0]
        dot = float(np.dot(prev_vec, next_vec))
        angles[i] = abs(math.atan2(cross, dot))

    return angles


def detect_corners(points, closed=False, corner_angle_deg=60.0):
    """
    One bool per point: true where the stroke turns by more than the angle.

    Endpoints of open strokes are always corners.
    """
    points = np.asarray(points, dtype=float)
    corners = turning_angles(points, closed) > math.radians(corner_angle_deg)
    if not closed and len(points):
        corners[0] = True
        corners[-1] = True
    return corners


def _resample_run(points, spacing):
    """Uniformly resample one corner-to-corner run, keeping both ends."""
    seg = np.linalg.norm(np.diff(points, axis=0), axis=1)
    cumulative = np.concatenate([[0.0], np.cumsum(seg)])
    total = cumulative[-1]
    if total == 0:
        return points[:1]

    count = max(1, int(round(total / spacing)))
    targets = np.linspace(0.0, total, count + 1)

    xs = np.interp(targets, cumulative, points[:, 0])
    ys = np.interp(targets, cumulative, points[:, 1])
    return np.column_stack([xs, ys])


@trace(label="resample_stroke")
def resample_stroke(points, closed=False, spacing=3.0, corner_angle_deg=60.0, duplicate_tolerance=1e-6):
    """
    Prepare a raw stroke for fitting.

    Args:
        points: raw stroke points [[x, y], ...]
        closed: whether the stroke is a closed loop
        spacing: target distance between resampled points
        corner_angle_deg: turning angle above which a point is a corner
        duplicate_tolerance: points closer than this are merged

    Returns:
        (points, corners): resampled (N, 2) array and one bool per point
    """
    tracer = get_tracer()

    pts = remove_duplicate_points(points, closed, duplicate_tolerance)
    if len(pts) < 2:
        raise ValueError("Stroke has fewer than two distinct points")

    raw_corners = detect_corners(pts, closed, corner_angle_deg)
    corner_idx = list(np.flatnonzero(raw_corners))

    offset = 0
    if closed:
        if not corner_idx:
            # A loop without corners is cut at its first point, which stays unmarked
            corner_idx = [0]
        offset = corner_idx[0]
        source = np.vstack([pts[offset:], pts[:offset + 1]])
        run_bounds = [c - offset for c in corner_idx] + [len(pts)]
    else:
        source = pts
        run_bounds = corner_idx

    out_pts = []
    out_corners = []
    for a, b in zip(run_bounds[:-1], run_bounds[1:]):
        run = _resample_run(source[a:b + 1], spacing)
        if len(run) < 2:
            continue
        out_pts.extend(run[:-1])
        out_corners.append(bool(raw_corners[(a + offset) % len(pts)]))
        out_corners.extend([False] * (len(run) - 2))

    if not closed:
        out_pts.append(source[-1])
        out_corners.append(True)

    resampled = np.array(out_pts)
    corners = np.array(out_corners, dtype=bool)

    tracer.event(
        f"Resampled {len(points)} -> {len(resampled)} points",
        corners=int(corners.sum()),
    )
    return resampled, corners
