"""
SVG emission for strokefit debug output.

Draws the input polyline, its corners and every recorded candidate curve,
one group per primitive family.
"""

import numpy as np
import svgwrite

from strokefit.tracer import get_tracer, trace


def _rgb(color):
    r, g, b = (int(round(255 * c)) for c in color)
    return svgwrite.rgb(r, g, b)


def _bounds(polyline_pts, curves, samples):
    arrays = [np.asarray(polyline_pts, dtype=float)]
    arrays.extend(curve.sample(samples) for curve, _, _ in curves)
    stacked = np.vstack(arrays)
    return stacked.min(axis=0), stacked.max(axis=0)


@trace(label="emit_candidates_svg")
def emit_candidates_svg(polyline, corners, recorder, samples_per_curve=32, margin=10.0,
                        stroke_width=0.5):
    """
    Create an SVG document with the polyline and the recorded candidates.

    Args:
        polyline: the fitted Polyline
        corners: one bool per polyline point
        recorder: CurveRecorder holding (curve, color, name) triples
        samples_per_curve: points per drawn candidate
        margin: padding around the drawing, in stroke units

    Returns:
        svgwrite.Drawing object
    """
    tracer = get_tracer()

    pts = polyline.pts().array
    lo, hi = _bounds(pts, recorder.curves, samples_per_curve)
    lo = lo - margin
    size = (hi + margin) - lo

    dwg = svgwrite.Drawing(size=(f"{size[0]:.1f}px", f"{size[1]:.1f}px"))
    dwg.viewbox(lo[0], lo[1], size[0], size[1])

    outline = [(float(x), float(y)) for x, y in pts]
    if polyline.closed:
        shape = dwg.polygon(outline, id="polyline")
    else:
        shape = dwg.polyline(outline, id="polyline")
    input_group = dwg.g(id="input", fill="none", stroke="gray", stroke_width=stroke_width * 2)
    input_group.add(shape)
    for i in np.flatnonzero(corners):
        input_group.add(dwg.circle(center=(float(pts[i][0]), float(pts[i][1])), r=stroke_width * 3, fill="black"))
    dwg.add(input_group)

    for name, entries in recorder.by_name().items():
        group = dwg.g(id=name.lower(), fill="none", stroke_width=stroke_width, opacity=0.6)
        for curve, color in entries:
            sampled = [(float(x), float(y)) for x, y in curve.sample(samples_per_curve)]
            group.add(dwg.polyline(sampled, stroke=_rgb(color)))
        dwg.add(group)

    tracer.event(f"SVG emitted with {len(recorder)} candidate curves")

    return dwg
