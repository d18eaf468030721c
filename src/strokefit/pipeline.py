"""
Fitting pipeline for a single stroke.

Prepares the stroke (resampling and corners), binds the polyline to an
error computer, runs the configured primitive fitter and packages the
accepted candidates into a FitReport.
"""

import os

import numpy as np

from strokefit.config import load_config
from strokefit.debugging import CurveRecorder
from strokefit.fitting.error_computer import ErrorComputer
from strokefit.fitting.primitive_fitter import FittingParams, get_algorithm
from strokefit.geometry.polyline import Polyline
from strokefit.io.load_stroke import load_stroke
from strokefit.io.save_artifacts import DebugArtifactWriter, save_json
from strokefit.models import FitReport, generate_report_id, primitive_to_record
from strokefit.strokes.resample import detect_corners, resample_stroke
from strokefit.strokes.svg_emit import emit_candidates_svg
from strokefit.tracer import get_tracer, trace


def prepare_stroke(points, closed, corners, config):
    """
    Resampled points and corner flags for fitting.

    Caller-supplied corners index the given points: they are used as-is and
    the points are not resampled.
    """
    points = np.asarray(points, dtype=float)
    resample = config.resample

    if corners is not None:
        return points, np.asarray(corners, dtype=bool)

    if resample.enabled:
        return resample_stroke(
            points, closed,
            spacing=resample.spacing,
            corner_angle_deg=resample.corner_angle_deg,
            duplicate_tolerance=resample.duplicate_tolerance,
        )

    return points, detect_corners(points, closed, resample.corner_angle_deg)


def build_polyline(points, closed):
    """
    Polyline for fitting.

    Raises ValueError on zero-length segments: fitting windows must have
    positive arc length.
    """
    polyline = Polyline(points, closed=closed)
    degenerate = np.flatnonzero(polyline.segment_lengths <= 0)
    if len(degenerate):
        raise ValueError(f"Zero-length segments start at points {degenerate.tolist()}")
    return polyline


@trace(label="run_fitting")
def run_fitting(points, closed=False, corners=None, config=None, config_path=None,
                out_dir=None, debug=False):
    """
    Fit candidate primitives to one stroke.

    Args:
        points: stroke points [[x, y], ...]
        closed: whether the stroke is a closed loop
        corners: optional bool per point; detected when omitted
        config: PipelineConfig (optional)
        config_path: path to YAML config file (optional)
        out_dir: when given, primitives.json (and debug output) is written here
        debug: enable debug artifact generation

    Returns:
        (FitReport, list of FitPrimitive)
    """
    tracer = get_tracer()

    if config is None:
        config = load_config(config_path)
    debug_enabled = config.debug.enabled or debug

    with tracer.span("prepare", module="pipeline"):
        pts, corner_flags = prepare_stroke(points, closed, corners, config)
        polyline = build_polyline(pts, closed)

    error_computer = ErrorComputer(polyline)
    params = FittingParams.from_config(config.fitting)
    algorithm = get_algorithm(config.fitting.algorithm)
    recorder = CurveRecorder() if debug_enabled else None

    with tracer.span("fit", module="pipeline", algorithm=algorithm.name):
        fits = algorithm.run(polyline, corner_flags, error_computer, params, recorder)

    report = FitReport(
        report_id=generate_report_id(pts, closed),
        algorithm=algorithm.name,
        closed=closed,
        point_count=len(pts),
        polyline=pts.tolist(),
        corner_indices=np.flatnonzero(corner_flags).tolist(),
        primitives=[primitive_to_record(fit) for fit in fits],
    )

    if out_dir:
        save_json(report, os.path.join(out_dir, "primitives.json"))

        if debug_enabled:
            writer = DebugArtifactWriter(out_dir, report.report_id)
            dwg = emit_candidates_svg(
                polyline, corner_flags, recorder,
                samples_per_curve=config.debug.samples_per_curve,
                margin=config.debug.margin,
            )
            writer.save_svg(dwg, "candidates.svg")
            writer.save_json(report.counts, "counts.json")

    tracer.event(f"Fitting complete: {len(fits)} candidates", counts=report.counts)

    return report, fits


def run_fitting_file(stroke_path, out_dir=None, config=None, config_path=None, debug=False):
    """Load a stroke JSON file and fit it."""
    stroke = load_stroke(stroke_path)
    return run_fitting(
        stroke.points, closed=stroke.closed, corners=stroke.corners,
        config=config, config_path=config_path, out_dir=out_dir, debug=debug,
    )
