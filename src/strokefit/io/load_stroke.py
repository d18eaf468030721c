"""
Stroke loading for strokefit.

A stroke file is JSON: {"points": [[x, y], ...], "closed": false,
"corners": [true, false, ...] or null}.
"""

import json
import os

import numpy as np

from strokefit.models import StrokeInput
from strokefit.tracer import get_tracer, trace


@trace(label="load_stroke")
def load_stroke(path):
    """
    Load and validate a stroke file.

    Raises FileNotFoundError if path does not exist.
    Raises pydantic.ValidationError if the content is malformed.
    """
    tracer = get_tracer()

    if not os.path.exists(path):
        raise FileNotFoundError(f"Stroke not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    stroke = StrokeInput.model_validate(data)
    validate_stroke(stroke)

    tracer.event(f"Loaded stroke: {len(stroke.points)} points, closed={stroke.closed}")
    return stroke


def validate_stroke(stroke):
    """Check shape constraints pydantic field types cannot express."""
    for i, p in enumerate(stroke.points):
        if len(p) != 2:
            raise ValueError(f"Point {i} has {len(p)} coordinates, expected 2")
        if not np.all(np.isfinite(p)):
            raise ValueError(f"Point {i} is not finite: {p}")

    if stroke.corners is not None and len(stroke.corners) != len(stroke.points):
        raise ValueError(
            f"Got {len(stroke.corners)} corner flags for {len(stroke.points)} points"
        )
