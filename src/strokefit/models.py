"""
Pydantic data models for strokefit input and output.

Input strokes and fit reports cross the process boundary as JSON and are
validated through these models. Content-based ids keep reports
deterministic.
"""

import hashlib
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from strokefit.geometry.curves import CurveType, Param


class CurveKind(str, Enum):
    """Primitive family names used in reports."""
    LINE = "line"
    ARC = "arc"
    CLOTHOID = "clothoid"

    @classmethod
    def from_type(cls, kind):
        return cls(CurveType(kind).name.lower())


class StrokeInput(BaseModel):
    """A raw stroke as read from disk."""
    points: List[List[float]] = Field(..., min_length=2)
    closed: bool = False
    corners: Optional[List[bool]] = None

    model_config = ConfigDict(extra="forbid")


class PrimitiveRecord(BaseModel):
    """One accepted fit candidate."""
    kind: CurveKind
    params: Dict[str, float] = Field(default_factory=dict)
    start_idx: int = Field(..., ge=0)
    end_idx: int = Field(..., ge=0)
    num_pts: int = Field(..., ge=2)
    error: float = Field(..., ge=0.0)
    start_curv_sign: int
    end_curv_sign: int
    start_curvature: float = 0.0
    end_curvature: float = 0.0

    model_config = ConfigDict(extra="forbid")


class FitReport(BaseModel):
    """Everything a fitting run produced for one stroke."""
    report_id: str
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())
    algorithm: str
    closed: bool = False
    point_count: int = 0
    polyline: List[List[float]] = Field(default_factory=list)
    corner_indices: List[int] = Field(default_factory=list)
    primitives: List[PrimitiveRecord] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    @property
    def counts(self):
        """Number of candidates per family."""
        out = {kind.value: 0 for kind in CurveKind}
        for record in self.primitives:
            out[record.kind.value] += 1
        return out


def primitive_to_record(fit):
    """Convert a FitPrimitive into a serializable record."""
    curve = fit.curve
    values = curve.params()
    return PrimitiveRecord(
        kind=CurveKind.from_type(curve.kind),
        params={Param(i).name.lower(): float(v) for i, v in enumerate(values)},
        start_idx=int(fit.start_idx),
        end_idx=int(fit.end_idx),
        num_pts=int(fit.num_pts),
        error=float(fit.error),
        start_curv_sign=int(fit.start_curv_sign),
        end_curv_sign=int(fit.end_curv_sign),
        start_curvature=curve.start_curvature,
        end_curvature=curve.end_curvature,
    )


def generate_report_id(points, closed, round_digits=3):
    """
    Deterministic report id from stroke coordinates.

    Rounds coordinates to avoid floating point instability.
    """
    rounded = [[round(float(p[0]), round_digits), round(float(p[1]), round_digits)] for p in points]
    data = f"{'closed' if closed else 'open'}:{rounded}"
    h = hashlib.sha256(data.encode()).hexdigest()[:12]
    return f"fit_{h}"
