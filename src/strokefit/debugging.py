"""
Visualization side channel for fitting runs.

The fitter forwards every accepted candidate as (curve, color, family name).
Sinks never influence the fitting result.
"""


class NullDebugSink:
    """Discards everything."""

    def draw_curve(self, curve, color, name):
        pass


class CurveRecorder(NullDebugSink):
    """Keeps drawn curves grouped by family name, for SVG export."""

    def __init__(self):
        self.curves = []

    def draw_curve(self, curve, color, name):
        self.curves.append((curve, tuple(color), name))

    def by_name(self):
        groups = {}
        for curve, color, name in self.curves:
            groups.setdefault(name, []).append((curve, color))
        return groups

    def __len__(self):
        return len(self.curves)
