"""
Output files for fitting runs: the JSON report and debug drawings.

Debug output for one stroke lives under <out_dir>/debug/<report_id>/.
"""

import json
import os

import numpy as np

from strokefit.tracer import get_tracer


def ensure_dir(path):
    if path:
        os.makedirs(path, exist_ok=True)


def _to_builtin(obj):
    """json.dump fallback for numpy values."""
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


def _write_text(path, text):
    ensure_dir(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def save_json(data, path, indent=2):
    """Write a dict, list or pydantic model as JSON."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    _write_text(path, json.dumps(data, indent=indent, default=_to_builtin))
    get_tracer().event(f"Saved JSON: {path}")


def save_svg(drawing, path):
    """Write an svgwrite drawing (or SVG markup) to path."""
    text = drawing.tostring() if hasattr(drawing, "tostring") else str(drawing)
    _write_text(path, text)
    get_tracer().event(f"Saved SVG: {path}")


class DebugArtifactWriter:
    """Debug files for one stroke; does nothing when disabled."""

    def __init__(self, out_dir, stroke_id, enabled=True):
        self.out_dir = out_dir
        self.stroke_id = stroke_id
        self.enabled = enabled

    @property
    def debug_dir(self):
        return os.path.join(self.out_dir, "debug", self.stroke_id)

    def _path(self, filename):
        if not self.enabled:
            return None
        return os.path.join(self.debug_dir, filename)

    def save_json(self, data, filename):
        path = self._path(filename)
        if path:
            save_json(data, path)
        return path

    def save_svg(self, drawing, filename):
        path = self._path(filename)
        if path:
            save_svg(drawing, path)
        return path
