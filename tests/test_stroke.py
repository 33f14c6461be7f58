"""Tests for smoothed stroke construction."""

import numpy as np
import pytest

from handbody.joints import Point, PointsPair
from handbody.stroke import PathElement, PathSmoother, Stroke


def _at(x, y):
    """Pair whose midpoint is (x, y)."""
    return PointsPair(Point(x - 0.01, y), Point(x + 0.01, y))


class TestPathSmoother:
    def test_first_point_moves(self):
        s = PathSmoother()
        s.add_point(_at(0.1, 0.1))
        (stroke,) = s.strokes
        assert [e.type for e in stroke.elements] == ["move"]
        assert stroke.elements[0].x == pytest.approx(0.1)
        assert s.is_drawing

    def test_line_then_quads(self):
        s = PathSmoother()
        for x in (0.1, 0.2, 0.3, 0.4):
            s.add_point(_at(x, 0.5))
        elements = s.strokes[0].elements
        assert [e.type for e in elements] == ["move", "line", "quad", "quad"]
        # Line to the midpoint between the first two draw points
        assert elements[1].x == pytest.approx(0.15)
        # Quads end between draw points, controlled by the previous one
        assert elements[2].x == pytest.approx(0.25)
        assert elements[2].cx == pytest.approx(0.2)
        assert elements[3].cx == pytest.approx(0.3)

    def test_terminal_closes_at_last_draw_point(self):
        s = PathSmoother()
        for x in (0.1, 0.2, 0.3):
            s.add_point(_at(x, 0.5))
        s.add_point(_at(0.9, 0.9), terminal=True)
        stroke = s.strokes[0]
        assert stroke.closed
        assert stroke.elements[-1].type == "line"
        assert stroke.elements[-1].x == pytest.approx(0.3)
        assert not s.is_drawing
        assert s.current is None

    def test_terminal_without_stroke_is_noop(self):
        s = PathSmoother()
        s.add_point(_at(0.5, 0.5), terminal=True)
        assert s.strokes == []

    def test_new_stroke_after_terminal(self):
        s = PathSmoother()
        s.add_point(_at(0.1, 0.1))
        s.add_point(_at(0.2, 0.2))
        s.add_point(_at(0.2, 0.2), terminal=True)
        s.add_point(_at(0.6, 0.6))
        assert len(s.strokes) == 2
        assert s.strokes[1].elements[0].type == "move"
        assert s.current is s.strokes[1]

    def test_clear(self):
        s = PathSmoother()
        s.add_point(_at(0.1, 0.1))
        s.add_point(_at(0.2, 0.2))
        s.clear()
        assert s.strokes == []
        assert not s.is_drawing
        s.add_point(_at(0.3, 0.3))
        assert [e.type for e in s.strokes[0].elements] == ["move"]

    def test_full_state(self):
        s = PathSmoother()
        s.add_point(_at(0.1, 0.1))
        s.add_point(_at(0.2, 0.2))
        state = s.get_full_state()
        assert state[0]["closed"] is False
        assert state[0]["elements"][0] == {"type": "move", "x": 0.1, "y": 0.1}


class TestStroke:
    def test_segment_count(self):
        stroke = Stroke(elements=[
            PathElement("move", 0.0, 0.0),
            PathElement("line", 0.1, 0.0),
            PathElement("quad", 0.2, 0.1, cx=0.15, cy=0.0),
        ])
        assert stroke.segment_count == 2

    def test_flatten_samples_curves(self):
        stroke = Stroke(elements=[
            PathElement("move", 0.0, 0.0),
            PathElement("line", 0.1, 0.0),
            PathElement("quad", 0.2, 0.1, cx=0.15, cy=0.0),
        ])
        polyline = stroke.flatten(samples_per_curve=4)
        assert polyline.shape == (2 + 4, 2)
        assert np.allclose(polyline[-1], [0.2, 0.1])

    def test_flatten_empty(self):
        assert Stroke().flatten().shape == (0, 2)

    def test_quad_to_dict_rounds(self):
        element = PathElement("quad", 0.123456, 0.5, cx=0.333333, cy=0.25)
        assert element.to_dict() == {"type": "quad", "x": 0.1235, "y": 0.5, "cx": 0.3333, "cy": 0.25}
