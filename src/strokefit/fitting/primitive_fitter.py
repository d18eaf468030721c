"""
Primitive fitting: enumerate candidate primitives over polyline windows.

For every start index and every family, points are walked forward and fed
to a fresh incremental builder. Each window of at least the family's
minimum size yields a candidate that is optionally adjusted, scored and
either accepted or, once it exceeds the error threshold, ends the walk for
that start index and family. Corners end every walk that reaches them.

The result is every accepted candidate; choosing among them is left to a
later path-selection stage.
"""

from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from strokefit.config import INFINITY
from strokefit.debugging import NullDebugSink
from strokefit.fitting.adjust import adjust_primitive
from strokefit.fitting.builders import create_fitter
from strokefit.geometry.curves import CurvePrimitive, CurveType, TYPE_NAMES
from strokefit.tracer import get_tracer, trace


@dataclass
class FitPrimitive:
    """A candidate primitive covering polyline indices [start_idx, end_idx]."""
    curve: CurvePrimitive
    start_idx: int
    end_idx: int
    num_pts: int
    error: float = 0.0
    start_curv_sign: int = 1
    end_curv_sign: int = 1


@dataclass
class FittingParams:
    """Numeric inputs of a fitting pass."""
    error_threshold: float = 1.0
    line_cost: float = 0.0
    arc_cost: float = 5.0
    clothoid_cost: float = 10.0
    inflection_cost: float = 5.0
    curve_adjust_damping: float = 0.5

    @classmethod
    def from_config(cls, fitting_config):
        return cls(
            error_threshold=fitting_config.scaled_error_threshold,
            line_cost=fitting_config.line_cost,
            arc_cost=fitting_config.arc_cost,
            clothoid_cost=fitting_config.clothoid_cost,
            inflection_cost=fitting_config.inflection_cost,
            curve_adjust_damping=fitting_config.curve_adjust_damping,
        )

    @property
    def inflection_accounting(self):
        return self.inflection_cost > 0.0

    def cost(self, kind):
        return (self.line_cost, self.arc_cost, self.clothoid_cost)[kind]

    def need_type(self, kind):
        return self.cost(kind) < INFINITY


def _sign(value):
    return 1 if value >= 0 else -1


def _color(kind):
    color = [0.0, 0.0, 0.0]
    color[kind] = 1.0
    return tuple(color)


class PrimitiveFitter:
    """Candidate enumeration, with or without per-candidate adjustment."""

    def __init__(self, adjust=False):
        self.adjust = adjust

    @property
    def name(self):
        return "Adjust" if self.adjust else "Default"

    @property
    def description(self):
        if self.adjust:
            return "raw builder fits nudged by one constrained damped least-squares step"
        return "raw builder fits"

    @trace(label="fit_primitives")
    def run(self, polyline, corners, error_computer, params, debug_sink=None):
        """
        Enumerate and score candidates over every start index.

        Args:
            polyline: resampled Polyline
            corners: one bool per polyline point
            error_computer: ErrorComputer bound to the same polyline
            params: FittingParams
            debug_sink: receives (curve, color, name) per accepted candidate

        Returns:
            list of accepted FitPrimitive candidates
        """
        tracer = get_tracer()
        sink = NullDebugSink() if debug_sink is None else debug_sink

        pts = polyline.pts()
        if len(corners) != len(pts):
            raise ValueError(f"Got {len(corners)} corner flags for {len(pts)} points")

        threshold_sq = params.error_threshold ** 2
        out = []

        for i in range(len(pts)):
            for kind in CurveType:
                self._fit_from(i, kind, polyline, corners, error_computer, params, threshold_sq, sink, out)

        tracer.event(
            f"{self.name} fitter accepted {len(out)} candidates over {len(pts)} start points",
            counts={TYPE_NAMES[k]: sum(1 for f in out if f.curve.kind == k) for k in CurveType},
        )
        return out

    def _fit_from(self, i, kind, polyline, corners, error_computer, params, threshold_sq, sink, out):
        """Grow windows of one family from start index i."""
        pts = polyline.pts()
        need_type = params.need_type(kind)
        inflection = params.inflection_accounting
        min_points = 2 + kind

        fitter = create_fitter(kind)
        # Split candidates are refit by a clothoid builder walking the same points
        clothoid_fitter = fitter if kind == CurveType.CLOTHOID else None

        fit_so_far = 0
        for idx in pts.circulator(i):
            fit_so_far += 1

            # Families that are not needed only get their shortest window
            if not need_type and (kind == CurveType.CLOTHOID or fit_so_far >= 3 + kind):
                break

            fitter.add_point(pts[idx])

            if fit_so_far >= min_points:
                curve = fitter.get_primitive()
                fit = FitPrimitive(
                    curve=curve,
                    start_idx=i,
                    end_idx=idx,
                    num_pts=fit_so_far,
                    start_curv_sign=_sign(curve.start_curvature),
                    end_curv_sign=_sign(curve.end_curvature),
                )

                if self.adjust:
                    adjust_primitive(fit, error_computer, inflection, params.curve_adjust_damping)

                fit.error = error_computer.compute_error(curve, i, idx)
                length = polyline.length_from_to(i, idx)
                # Written so that a NaN error also ends the walk
                if not fit.error / length <= threshold_sq:
                    break

                self._accept(fit, sink, out)

                if kind == CurveType.LINE and inflection:
                    # A line can stand in for either curvature sense at an inflection
                    self._accept(replace(fit, start_curv_sign=-fit.start_curv_sign,
                                         end_curv_sign=-fit.end_curv_sign), sink, out)

                if inflection and fit.start_curv_sign != fit.end_curv_sign and clothoid_fitter is not None:
                    self._split_inflection(fit, clothoid_fitter, length, error_computer,
                                           params, threshold_sq, sink, out)

            if fit_so_far > 1 and corners[idx]:
                break

    def _split_inflection(self, fit, clothoid_fitter, length, error_computer, params,
                          threshold_sq, sink, out):
        """Emit clothoids with zero curvature at the window start and at its end."""
        start_zero = clothoid_fitter.get_curve_with_zero_curvature(0.0)
        end_zero = clothoid_fitter.get_curve_with_zero_curvature(length)

        # The curvature that is not pinned to zero decides the candidate's sign
        candidates = [
            (start_zero, 1 if start_zero.end_curvature > 0 else -1),
            (end_zero, 1 if end_zero.start_curvature > 0 else -1),
        ]

        for curve, sign in candidates:
            split = replace(fit, curve=curve, start_curv_sign=sign, end_curv_sign=sign)

            if self.adjust:
                adjust_primitive(split, error_computer, params.inflection_accounting,
                                 params.curve_adjust_damping)

            split.error = error_computer.compute_error(curve, split.start_idx, split.end_idx)
            if split.error / length <= threshold_sq:
                self._accept(split, sink, out)

    def _accept(self, fit, sink, out):
        out.append(fit)
        sink.draw_curve(fit.curve, _color(fit.curve.kind), TYPE_NAMES[fit.curve.kind])


# Explicit algorithm registry, filled by initialize_algorithms()
_ALGORITHMS: Dict[str, PrimitiveFitter] = {}


def register_algorithm(algorithm):
    _ALGORITHMS[algorithm.name] = algorithm
    return algorithm


def initialize_algorithms():
    """Register the built-in fitters. Safe to call more than once."""
    if not _ALGORITHMS:
        register_algorithm(PrimitiveFitter(adjust=False))
        register_algorithm(PrimitiveFitter(adjust=True))
    return dict(_ALGORITHMS)


def available_algorithms() -> Dict[str, str]:
    """Registered algorithm names with descriptions."""
    initialize_algorithms()
    return {name: algo.description for name, algo in _ALGORITHMS.items()}


def get_algorithm(name: Optional[str] = None) -> PrimitiveFitter:
    """
    Look up a registered fitter by name (case-insensitive).

    Raises:
        ValueError: if no fitter has that name
    """
    initialize_algorithms()
    if name is None:
        return _ALGORITHMS["Default"]
    for key, algo in _ALGORITHMS.items():
        if key.lower() == name.lower():
            return algo
    raise ValueError(f"Unknown fitting algorithm {name!r}; available: {sorted(_ALGORITHMS)}")


def fit_primitives(polyline, corners, error_computer, params, algorithm="Adjust",
                   debug_sink=None) -> List[FitPrimitive]:
    """Run the named registered fitter."""
    return get_algorithm(algorithm).run(polyline, corners, error_computer, params, debug_sink)
