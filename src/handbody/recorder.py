"""Raw joint recording and replay.

Records the detector's raw joint groups frame by frame so a session can
be replayed through the core without a camera or MediaPipe:
- reproducible tests of the gesture machine and skeleton builder
- debugging flicker or dropped strokes from a real session

File format (JSON):
    {"version": 1, "mode": "draw", "frame_count": N, "duration": s,
     "frames": [{"timestamp": t, "groups": [{"thumb_tip": [x, y, conf], ...}]}]}
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Sequence

from handbody.joints import BodyJoint, HandJoint, JointObservation, Point, RawGroup
from handbody.pipeline import Mode

logger = logging.getLogger("handbody.recorder")

FORMAT_VERSION = 1


def encode_group(group: RawGroup) -> dict[str, list[float]]:
    return {
        joint.value: [obs.point.x, obs.point.y, obs.confidence]
        for joint, obs in group.items()
    }


def joint_type_for(mode: Mode) -> type:
    return BodyJoint if mode == Mode.BODY else HandJoint


def decode_group(data: dict[str, list[float]], mode: Mode) -> dict:
    joint_type = joint_type_for(mode)
    group = {}
    for name, (x, y, confidence) in data.items():
        joint = joint_type(name)
        group[joint] = JointObservation(joint, Point(float(x), float(y)), float(confidence))
    return group


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    groups: list[dict] = field(default_factory=list)


class SessionRecorder:
    """Records raw joint groups to a file.

    Usage:
        recorder = SessionRecorder(Mode.DRAW)
        recorder.start()
        # In your frame loop:
        recorder.add_frame(result.raw_groups)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self, mode: Mode = Mode.HAND):
        self.mode = mode
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(self, groups: Sequence[RawGroup], timestamp: Optional[float] = None):
        """Add one frame's raw groups.

        Args:
            groups: Raw joint groups as produced by the detector.
            timestamp: Seconds since start; defaults to the elapsed wall clock.

        Raises:
            ValueError: a group holds joints of another mode than the recording.
        """
        if not self._recording:
            return

        joint_type = joint_type_for(self.mode)
        for group in groups:
            for joint in group:
                if not isinstance(joint, joint_type):
                    raise ValueError(
                        f"{joint.value} does not belong in a {self.mode.value} recording"
                    )

        if timestamp is None:
            timestamp = time.monotonic() - self._start_time

        self._frames.append(RecordedFrame(
            timestamp=timestamp,
            groups=[encode_group(g) for g in groups],
        ))

    def save(self, path: str | Path):
        """Save recording to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "mode": self.mode.value,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [{"timestamp": f.timestamp, "groups": f.groups} for f in self._frames],
        }

        with open(path, "w") as f:
            json.dump(data, f)
        logger.info("Saved %d frames (%.1fs) to %s", len(self._frames), self.duration, path)


class SessionPlayer:
    """Replays a recorded session as decoded raw groups.

    Usage:
        player = SessionPlayer.load("session.json")
        for frame in player.play():
            result = processor.process_groups(frame.groups, frame.timestamp)
    """

    def __init__(self, frames: list[RecordedFrame], mode: Mode = Mode.HAND):
        self._frames = frames
        self.mode = mode

    @classmethod
    def load(cls, path: str | Path) -> SessionPlayer:
        """Load recording from JSON file."""
        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported recording version {version}")

        frames = [
            RecordedFrame(timestamp=f["timestamp"], groups=f.get("groups", []))
            for f in data["frames"]
        ]
        return cls(frames, mode=Mode(data.get("mode", Mode.HAND.value)))

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def _decoded(self, frame: RecordedFrame) -> RecordedFrame:
        return RecordedFrame(
            timestamp=frame.timestamp,
            groups=[decode_group(g, self.mode) for g in frame.groups],
        )

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        for frame in self._frames:
            yield self._decoded(frame)

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor)."""
        if not self._frames:
            return

        start = time.monotonic()

        for frame in self.play():
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[RecordedFrame]:
        if 0 <= index < len(self._frames):
            return self._decoded(self._frames[index])
        return None
