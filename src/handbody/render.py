"""OpenCV overlay rendering.

Maps normalized points to pixel coordinates of the frame being drawn on
and draws skeletons (joints as filled circles, connectors as lines), the
tracked fingertips with their highlight color, and the pinch stroke.
"""

from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from handbody.config import EngineConfig
from handbody.gesture import Highlight
from handbody.joints import Point, PointsPair
from handbody.skeleton import Body, Hand
from handbody.stroke import Stroke

try:
    import cv2
except ImportError:
    cv2 = None


def hex_to_bgr(color: str) -> tuple[int, int, int]:
    """'#rrggbb' → (b, g, r) as used by OpenCV."""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #rrggbb color, got {color!r}")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return b, g, r


def to_pixels(point: Point, width: int, height: int) -> tuple[int, int]:
    return int(round(point.x * width)), int(round(point.y * height))


class OverlayRenderer:
    """Draws skeletons, tips and strokes onto BGR frames in place."""

    def __init__(self, config: Optional[EngineConfig] = None):
        if cv2 is None:
            raise ImportError(
                "opencv-python is required for rendering. Install with: pip install opencv-python"
            )
        self.config = config or EngineConfig()
        self._joint_color = hex_to_bgr(self.config.joint_color)
        self._connector_color = hex_to_bgr(self.config.connector_color)
        self._stroke_color = hex_to_bgr(self.config.stroke_color)

    def _draw_skeleton(self, frame: np.ndarray, joints: list[Point], segments):
        h, w = frame.shape[:2]
        for a, b in segments:
            cv2.line(
                frame, to_pixels(a, w, h), to_pixels(b, w, h),
                self._connector_color, self.config.line_width, cv2.LINE_AA,
            )
        for p in joints:
            cv2.circle(frame, to_pixels(p, w, h), self.config.joint_radius, self._joint_color, -1, cv2.LINE_AA)

    def draw_hands(self, frame: np.ndarray, hands: Iterable[Hand]) -> np.ndarray:
        for hand in hands:
            if not hand.is_renderable:
                continue
            self._draw_skeleton(frame, hand.joints(), hand.segments())
        return frame

    def draw_bodies(self, frame: np.ndarray, bodies: Iterable[Body]) -> np.ndarray:
        for body in bodies:
            self._draw_skeleton(frame, body.joints(), body.segments())
        return frame

    def draw_tips(
        self, frame: np.ndarray, tips: Optional[PointsPair], highlight: Highlight
    ) -> np.ndarray:
        if tips is None:
            return frame
        h, w = frame.shape[:2]
        color = hex_to_bgr(self.config.highlight_color(highlight))
        for p in (tips.thumb_tip, tips.index_tip):
            cv2.circle(frame, to_pixels(p, w, h), self.config.joint_radius, color, -1, cv2.LINE_AA)
        return frame

    def draw_strokes(self, frame: np.ndarray, strokes: Iterable[Stroke]) -> np.ndarray:
        h, w = frame.shape[:2]
        scale = np.array([w, h], dtype=np.float64)
        for stroke in strokes:
            polyline = stroke.flatten()
            if len(polyline) < 2:
                continue
            pts = np.round(polyline * scale).astype(np.int32).reshape(-1, 1, 2)
            cv2.polylines(frame, [pts], False, self._stroke_color, self.config.stroke_width, cv2.LINE_AA)
        return frame
