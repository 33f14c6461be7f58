"""Hand and body landmark detection using MediaPipe.

The detectors are thin adapters: they run MediaPipe on an RGB frame and
return raw joint groups (one mapping of joint id → observation per
detected instance). Points are handed over in the detector convention,
bottom-left origin, so the core's vertical flip yields top-left points.

Landmark conversion is split out into pure functions so it can be tested
without MediaPipe or a camera.
"""

from __future__ import annotations

import numpy as np

from handbody.joints import BodyJoint, HandJoint, JointObservation, Point

try:
    import mediapipe as mp
except ImportError:
    mp = None


class DetectionFailure(RuntimeError):
    """The landmark model failed on a frame. Fatal to the capture session."""


# MediaPipe Hands landmark order (21 points)
MP_HAND_JOINTS: list[HandJoint] = [
    HandJoint.WRIST,
    HandJoint.THUMB_CMC, HandJoint.THUMB_MP, HandJoint.THUMB_IP, HandJoint.THUMB_TIP,
    HandJoint.INDEX_MCP, HandJoint.INDEX_PIP, HandJoint.INDEX_DIP, HandJoint.INDEX_TIP,
    HandJoint.MIDDLE_MCP, HandJoint.MIDDLE_PIP, HandJoint.MIDDLE_DIP, HandJoint.MIDDLE_TIP,
    HandJoint.RING_MCP, HandJoint.RING_PIP, HandJoint.RING_DIP, HandJoint.RING_TIP,
    HandJoint.LITTLE_MCP, HandJoint.LITTLE_PIP, HandJoint.LITTLE_DIP, HandJoint.LITTLE_TIP,
]

# MediaPipe Pose landmark index for each body joint (neck/root are synthesized)
MP_POSE_INDEX: dict[BodyJoint, int] = {
    BodyJoint.NOSE: 0,
    BodyJoint.LEFT_EYE: 2,
    BodyJoint.RIGHT_EYE: 5,
    BodyJoint.LEFT_EAR: 7,
    BodyJoint.RIGHT_EAR: 8,
    BodyJoint.LEFT_SHOULDER: 11,
    BodyJoint.RIGHT_SHOULDER: 12,
    BodyJoint.LEFT_ELBOW: 13,
    BodyJoint.RIGHT_ELBOW: 14,
    BodyJoint.LEFT_WRIST: 15,
    BodyJoint.RIGHT_WRIST: 16,
    BodyJoint.LEFT_HIP: 23,
    BodyJoint.RIGHT_HIP: 24,
    BodyJoint.LEFT_KNEE: 25,
    BodyJoint.RIGHT_KNEE: 26,
    BodyJoint.LEFT_ANKLE: 27,
    BodyJoint.RIGHT_ANKLE: 28,
}

NUM_HAND_LANDMARKS = 21
NUM_POSE_LANDMARKS = 33


def _to_detector_point(x: float, y: float) -> Point:
    # MediaPipe is top-left origin; the detector convention is bottom-left.
    return Point(float(x), 1.0 - float(y))


def hand_group_from_landmarks(landmarks: np.ndarray, score: float) -> dict[HandJoint, JointObservation]:
    """Convert one MediaPipe hand to a raw joint group.

    Args:
        landmarks: Array of shape (21, 2) or (21, 3), MediaPipe image coordinates.
        score: Handedness score of the detection, used as every joint's confidence
            since MediaPipe Hands reports no per-landmark confidence.
    """
    group = {}
    for idx, joint in enumerate(MP_HAND_JOINTS):
        x, y = landmarks[idx][0], landmarks[idx][1]
        group[joint] = JointObservation(joint, _to_detector_point(x, y), float(score))
    return group


def body_group_from_landmarks(
    landmarks: np.ndarray, visibility: np.ndarray
) -> dict[BodyJoint, JointObservation]:
    """Convert one MediaPipe pose to a raw joint group.

    Neck and root are the shoulder and hip midpoints, with the lower of
    the two visibilities as confidence.
    """
    group: dict[BodyJoint, JointObservation] = {}
    for joint, idx in MP_POSE_INDEX.items():
        group[joint] = JointObservation(
            joint,
            _to_detector_point(landmarks[idx][0], landmarks[idx][1]),
            float(visibility[idx]),
        )

    for center, (a, b) in (
        (BodyJoint.NECK, (BodyJoint.LEFT_SHOULDER, BodyJoint.RIGHT_SHOULDER)),
        (BodyJoint.ROOT, (BodyJoint.LEFT_HIP, BodyJoint.RIGHT_HIP)),
    ):
        pa, pb = group[a], group[b]
        group[center] = JointObservation(
            center,
            Point((pa.point.x + pb.point.x) / 2.0, (pa.point.y + pb.point.y) / 2.0),
            min(pa.confidence, pb.confidence),
        )
    return group


class HandPoseDetector:
    """Detects up to `max_hands` hands per frame with MediaPipe Hands."""

    def __init__(
        self,
        max_hands: int = 2,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        static_image_mode: bool = False,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        self.max_hands = max_hands
        self._hands = mp.solutions.hands.Hands(
            static_image_mode=static_image_mode,
            max_num_hands=max_hands,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> list[dict[HandJoint, JointObservation]]:
        """Detect hands in an RGB frame (H, W, 3), uint8.

        Returns:
            One raw joint group per detected hand. Empty if none.

        Raises:
            DetectionFailure: MediaPipe raised while processing the frame.
        """
        try:
            results = self._hands.process(frame_rgb)
        except Exception as e:
            raise DetectionFailure(f"hand pose detection failed: {e}") from e

        if not results.multi_hand_landmarks:
            return []

        groups = []
        handedness = results.multi_handedness or []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            landmarks = np.array(
                [[lm.x, lm.y] for lm in hand_landmarks.landmark],
                dtype=np.float32,
            )
            score = handedness[i].classification[0].score if i < len(handedness) else 1.0
            groups.append(hand_group_from_landmarks(landmarks, score))

        return groups

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class BodyPoseDetector:
    """Detects a single body per frame with MediaPipe Pose."""

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        static_image_mode: bool = False,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        self._pose = mp.solutions.pose.Pose(
            static_image_mode=static_image_mode,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> list[dict[BodyJoint, JointObservation]]:
        try:
            results = self._pose.process(frame_rgb)
        except Exception as e:
            raise DetectionFailure(f"body pose detection failed: {e}") from e

        if not results.pose_landmarks:
            return []

        landmarks = np.array(
            [[lm.x, lm.y] for lm in results.pose_landmarks.landmark],
            dtype=np.float32,
        )
        visibility = np.array(
            [lm.visibility for lm in results.pose_landmarks.landmark],
            dtype=np.float32,
        )
        return [body_group_from_landmarks(landmarks, visibility)]

    def close(self):
        self._pose.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
