"""Tests for overlay rendering."""

import numpy as np
import pytest

from handbody.gesture import Highlight
from handbody.joints import Point, PointsPair
from handbody.render import hex_to_bgr, to_pixels
from handbody.skeleton import Hand
from handbody.stroke import PathSmoother


class TestHelpers:
    def test_hex_to_bgr(self):
        assert hex_to_bgr("#ff8000") == (0, 128, 255)
        assert hex_to_bgr("00ff00") == (0, 255, 0)

    def test_bad_color(self):
        with pytest.raises(ValueError):
            hex_to_bgr("#fff")

    def test_to_pixels(self):
        assert to_pixels(Point(0.5, 0.25), 640, 480) == (320, 120)


class TestOverlayRenderer:
    @pytest.fixture
    def renderer(self):
        pytest.importorskip("cv2")
        from handbody.render import OverlayRenderer
        return OverlayRenderer()

    def _frame(self):
        return np.zeros((100, 100, 3), dtype=np.uint8)

    def test_hand_without_wrist_not_drawn(self, renderer):
        frame = renderer.draw_hands(self._frame(), [Hand(index=[Point(0.5, 0.5)])])
        assert frame.sum() == 0

    def test_hand_drawn(self, renderer):
        hand = Hand(wrist=Point(0.5, 0.9), index=[Point(0.5, 0.6), Point(0.5, 0.3)])
        assert renderer.draw_hands(self._frame(), [hand]).sum() > 0

    def test_tips_use_highlight_color(self, renderer):
        pair = PointsPair(Point(0.3, 0.5), Point(0.7, 0.5))
        frame = renderer.draw_tips(self._frame(), pair, Highlight.AFFIRMATIVE)
        assert tuple(frame[50, 30]) == (0, 255, 0)

    def test_no_tips(self, renderer):
        assert renderer.draw_tips(self._frame(), None, Highlight.NEGATIVE).sum() == 0

    def test_strokes(self, renderer):
        smoother = PathSmoother()
        for x in (0.2, 0.4, 0.6, 0.8):
            smoother.add_point(PointsPair(Point(x, 0.5), Point(x, 0.5)))
        assert renderer.draw_strokes(self._frame(), smoother.strokes).sum() > 0
