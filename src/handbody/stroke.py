"""Freehand stroke construction from pinch midpoints.

Each confirmed point pair contributes the midpoint of its two tips. The
path runs through the midpoints *between* consecutive draw points, using
the draw points themselves as quadratic control points, which gives a
continuously smoothed curve instead of a jagged polyline.

Path elements are resolution independent (normalized [0, 1] coordinates)
and can be serialized for clients or flattened to a polyline for raster
renderers.

Usage:
    smoother = PathSmoother()
    smoother.add_point(pair, terminal=False)
    ...
    smoother.add_point(pair, terminal=True)   # closes the stroke
    for stroke in smoother.strokes:
        polyline = stroke.flatten()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from handbody.joints import Point, PointsPair, midpoint


@dataclass
class PathElement:
    """A single path element: move, line or quadratic curve."""
    type: str  # "move", "line", "quad"
    x: float
    y: float
    cx: float = 0.0
    cy: float = 0.0

    @property
    def end(self) -> Point:
        return Point(self.x, self.y)

    @property
    def control(self) -> Point:
        return Point(self.cx, self.cy)

    def to_dict(self) -> dict:
        if self.type == "quad":
            return {
                "type": "quad",
                "x": round(self.x, 4),
                "y": round(self.y, 4),
                "cx": round(self.cx, 4),
                "cy": round(self.cy, 4),
            }
        return {"type": self.type, "x": round(self.x, 4), "y": round(self.y, 4)}


@dataclass
class Stroke:
    """One continuous sub-path. Open while points are being appended."""
    elements: list[PathElement] = field(default_factory=list)
    closed: bool = False

    @property
    def segment_count(self) -> int:
        return sum(1 for e in self.elements if e.type != "move")

    def flatten(self, samples_per_curve: int = 8) -> np.ndarray:
        """Sample the stroke into an (N, 2) polyline."""
        points: list[np.ndarray] = []
        current: Optional[np.ndarray] = None

        for element in self.elements:
            end = element.end.as_array()
            if element.type == "quad" and current is not None:
                t = np.linspace(0.0, 1.0, samples_per_curve + 1)[1:, None]
                ctrl = element.control.as_array()
                curve = (1 - t) ** 2 * current + 2 * (1 - t) * t * ctrl + t ** 2 * end
                points.extend(curve)
            else:
                points.append(end)
            current = end

        if not points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.vstack(points)

    def to_dict(self) -> dict:
        return {
            "closed": self.closed,
            "elements": [e.to_dict() for e in self.elements],
        }


class PathSmoother:
    """Builds smoothed strokes from a stream of confirmed tip pairs.

    Keeps every stroke drawn in the session until `clear()`.
    """

    def __init__(self):
        self._strokes: list[Stroke] = []
        self._last_draw_point: Optional[Point] = None
        self._first_segment = False

    def add_point(self, pair: PointsPair, terminal: bool = False):
        """Extend (or close, if `terminal`) the current stroke with `pair`."""
        draw_point = midpoint(pair.thumb_tip, pair.index_tip)

        if terminal:
            if self._last_draw_point is not None:
                last = self._last_draw_point
                self._strokes[-1].elements.append(PathElement("line", last.x, last.y))
                self._strokes[-1].closed = True
            self._last_draw_point = None
            return

        if self._last_draw_point is None:
            self._strokes.append(Stroke(elements=[PathElement("move", draw_point.x, draw_point.y)]))
            self._first_segment = True
        else:
            last = self._last_draw_point
            mid = midpoint(last, draw_point)
            if self._first_segment:
                self._strokes[-1].elements.append(PathElement("line", mid.x, mid.y))
                self._first_segment = False
            else:
                self._strokes[-1].elements.append(
                    PathElement("quad", mid.x, mid.y, cx=last.x, cy=last.y)
                )

        self._last_draw_point = draw_point

    def clear(self):
        """Drop every stroke, including the open one."""
        self._strokes = []
        self._last_draw_point = None
        self._first_segment = False

    @property
    def strokes(self) -> list[Stroke]:
        return list(self._strokes)

    @property
    def current(self) -> Optional[Stroke]:
        """The open stroke, if one is being drawn."""
        if self._last_draw_point is None or not self._strokes:
            return None
        return self._strokes[-1]

    @property
    def is_drawing(self) -> bool:
        return self._last_draw_point is not None

    def get_full_state(self) -> list[dict]:
        return [s.to_dict() for s in self._strokes]
