"""Per-frame processing on the producer side.

frame → detection → skeletons (+ tip pair in draw mode) → FrameResult.

Nothing here keeps state between frames; the result is handed to the
consumer, which owns the gesture state (see `handbody.session`).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol, Sequence

import numpy as np

from handbody.config import EngineConfig
from handbody.joints import PointsPair, RawGroup
from handbody.skeleton import Body, Hand, SkeletonBuilder


class Mode(Enum):
    HAND = "hand"    # hand skeletons, up to max_hands
    BODY = "body"    # body skeletons
    DRAW = "draw"    # pinch drawing with a single hand


class Detector(Protocol):
    def detect(self, frame_rgb: np.ndarray) -> list[RawGroup]: ...

    def close(self): ...


@dataclass
class FrameResult:
    """Everything the consumer needs from one frame."""
    mode: Mode
    timestamp: float
    hands: list[Hand] = field(default_factory=list)
    bodies: list[Body] = field(default_factory=list)
    tips: Optional[PointsPair] = None
    raw_groups: list[RawGroup] = field(default_factory=list)


def create_detector(mode: Mode, config: EngineConfig) -> Detector:
    """Build the MediaPipe detector for `mode`."""
    from handbody.detector import BodyPoseDetector, HandPoseDetector

    if mode == Mode.BODY:
        return BodyPoseDetector()
    max_hands = config.draw_max_hands if mode == Mode.DRAW else config.max_hands
    return HandPoseDetector(max_hands=max_hands)


class FrameProcessor:
    """Turns raw joint groups (or camera frames) into FrameResults."""

    def __init__(
        self,
        mode: Mode = Mode.HAND,
        config: Optional[EngineConfig] = None,
        detector: Optional[Detector] = None,
    ):
        self.mode = mode
        self.config = config or EngineConfig()
        self.detector = detector
        self.builder = SkeletonBuilder(threshold=self.config.confidence_threshold)

    @property
    def max_instances(self) -> Optional[int]:
        if self.mode == Mode.DRAW:
            return self.config.draw_max_hands
        if self.mode == Mode.HAND:
            return self.config.max_hands
        return None

    def process_groups(
        self, groups: Sequence[RawGroup], timestamp: Optional[float] = None
    ) -> FrameResult:
        """Build a FrameResult from already-detected raw joint groups."""
        now = timestamp if timestamp is not None else time.monotonic()
        if self.max_instances is not None:
            groups = list(groups)[: self.max_instances]

        result = FrameResult(mode=self.mode, timestamp=now, raw_groups=list(groups))

        if self.mode == Mode.BODY:
            result.bodies = self.builder.build_bodies(groups)
            return result

        result.hands = self.builder.build_hands(groups)
        if self.mode == Mode.DRAW and groups:
            result.tips = self.builder.extract_tips(groups[0])
        return result

    def open_detector(self) -> Detector:
        """Create the MediaPipe detector unless one was given.

        Raises:
            ImportError: mediapipe is not installed.
        """
        if self.detector is None:
            self.detector = create_detector(self.mode, self.config)
        return self.detector

    def process_frame(
        self, frame_rgb: np.ndarray, timestamp: Optional[float] = None
    ) -> FrameResult:
        """Run the detector on an RGB frame, then build the result.

        Raises:
            DetectionFailure: propagated from the detector.
        """
        groups = self.open_detector().detect(frame_rgb)
        return self.process_groups(groups, timestamp)

    def close(self):
        """Release detector resources."""
        if self.detector is not None:
            self.detector.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
