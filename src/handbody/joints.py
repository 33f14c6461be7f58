"""Joint identifiers, rank tables and confidence filtering.

Raw detector output arrives as unordered maps of joint id → observation,
in the detector's bottom-left-origin convention. Everything downstream
works on top-left-origin points ordered proximal → distal, so every limb
goes through `filter_and_order` before use.

Usage:
    thumb = filter_and_order(
        {j: group[j] for j in THUMB_JOINTS if j in group},
        rank_in(FINGER_RANKS),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional

import numpy as np

# Single system-wide threshold; a joint is kept only if confidence is strictly above it.
CONFIDENCE_THRESHOLD = 0.3


class Point(NamedTuple):
    """2-D point in normalized [0, 1] coordinates."""
    x: float
    y: float

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=np.float64)


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2.0, (a.y + b.y) / 2.0)


def distance(a: Point, b: Point) -> float:
    return float(np.hypot(a.x - b.x, a.y - b.y))


class PointsPair(NamedTuple):
    """The two fingertips tracked by the pinch gesture."""
    thumb_tip: Point
    index_tip: Point

    @property
    def gap(self) -> float:
        return distance(self.thumb_tip, self.index_tip)

    @property
    def center(self) -> Point:
        return midpoint(self.thumb_tip, self.index_tip)


class HandJoint(Enum):
    """Hand landmarks. Thumb uses CMC/MP/IP, the other fingers MCP/PIP/DIP."""
    WRIST = "wrist"
    THUMB_CMC = "thumb_cmc"
    THUMB_MP = "thumb_mp"
    THUMB_IP = "thumb_ip"
    THUMB_TIP = "thumb_tip"
    INDEX_MCP = "index_mcp"
    INDEX_PIP = "index_pip"
    INDEX_DIP = "index_dip"
    INDEX_TIP = "index_tip"
    MIDDLE_MCP = "middle_mcp"
    MIDDLE_PIP = "middle_pip"
    MIDDLE_DIP = "middle_dip"
    MIDDLE_TIP = "middle_tip"
    RING_MCP = "ring_mcp"
    RING_PIP = "ring_pip"
    RING_DIP = "ring_dip"
    RING_TIP = "ring_tip"
    LITTLE_MCP = "little_mcp"
    LITTLE_PIP = "little_pip"
    LITTLE_DIP = "little_dip"
    LITTLE_TIP = "little_tip"


class BodyJoint(Enum):
    """Body landmarks. `NECK` and `ROOT` are the shoulder and hip centers."""
    NOSE = "nose"
    RIGHT_EYE = "right_eye"
    LEFT_EYE = "left_eye"
    RIGHT_EAR = "right_ear"
    LEFT_EAR = "left_ear"
    NECK = "neck"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_ELBOW = "right_elbow"
    LEFT_ELBOW = "left_elbow"
    RIGHT_WRIST = "right_wrist"
    LEFT_WRIST = "left_wrist"
    ROOT = "root"
    RIGHT_HIP = "right_hip"
    LEFT_HIP = "left_hip"
    RIGHT_KNEE = "right_knee"
    LEFT_KNEE = "left_knee"
    RIGHT_ANKLE = "right_ankle"
    LEFT_ANKLE = "left_ankle"


JointId = HandJoint | BodyJoint


@dataclass(frozen=True)
class JointObservation:
    """One detected landmark in one frame, detector coordinates."""
    joint: JointId
    point: Point
    confidence: float


RawGroup = Mapping[JointId, JointObservation]


# --- Limb membership ---

THUMB_JOINTS = (HandJoint.THUMB_CMC, HandJoint.THUMB_MP, HandJoint.THUMB_IP, HandJoint.THUMB_TIP)
INDEX_JOINTS = (HandJoint.INDEX_MCP, HandJoint.INDEX_PIP, HandJoint.INDEX_DIP, HandJoint.INDEX_TIP)
MIDDLE_JOINTS = (HandJoint.MIDDLE_MCP, HandJoint.MIDDLE_PIP, HandJoint.MIDDLE_DIP, HandJoint.MIDDLE_TIP)
RING_JOINTS = (HandJoint.RING_MCP, HandJoint.RING_PIP, HandJoint.RING_DIP, HandJoint.RING_TIP)
LITTLE_JOINTS = (HandJoint.LITTLE_MCP, HandJoint.LITTLE_PIP, HandJoint.LITTLE_DIP, HandJoint.LITTLE_TIP)

FINGERS: dict[str, tuple[HandJoint, ...]] = {
    "thumb": THUMB_JOINTS,
    "index": INDEX_JOINTS,
    "middle": MIDDLE_JOINTS,
    "ring": RING_JOINTS,
    "little": LITTLE_JOINTS,
}

FACE_JOINTS = (
    BodyJoint.RIGHT_EAR, BodyJoint.RIGHT_EYE, BodyJoint.NOSE,
    BodyJoint.LEFT_EYE, BodyJoint.LEFT_EAR,
)
RIGHT_ARM_JOINTS = (BodyJoint.RIGHT_WRIST, BodyJoint.RIGHT_ELBOW, BodyJoint.RIGHT_SHOULDER)
LEFT_ARM_JOINTS = (BodyJoint.LEFT_WRIST, BodyJoint.LEFT_ELBOW, BodyJoint.LEFT_SHOULDER)
RIGHT_LEG_JOINTS = (BodyJoint.RIGHT_ANKLE, BodyJoint.RIGHT_KNEE, BodyJoint.RIGHT_HIP)
LEFT_LEG_JOINTS = (BodyJoint.LEFT_ANKLE, BodyJoint.LEFT_KNEE, BodyJoint.LEFT_HIP)

TORSO_JOINTS = (
    BodyJoint.NECK, BodyJoint.RIGHT_SHOULDER, BodyJoint.LEFT_SHOULDER,
    BodyJoint.ROOT, BodyJoint.RIGHT_HIP, BodyJoint.LEFT_HIP,
)


# --- Canonical rank tables (0 = most proximal) ---

# CMC/MCP 0, PIP/MP 1, DIP/IP 2, tip 3 for every finger
FINGER_RANKS: dict[JointId, int] = {
    joint: rank for chain in FINGERS.values() for rank, joint in enumerate(chain)
}

ARM_RANKS: dict[JointId, int] = {
    BodyJoint.RIGHT_WRIST: 0, BodyJoint.LEFT_WRIST: 0,
    BodyJoint.RIGHT_ELBOW: 1, BodyJoint.LEFT_ELBOW: 1,
    BodyJoint.RIGHT_SHOULDER: 2, BodyJoint.LEFT_SHOULDER: 2,
}

LEG_RANKS: dict[JointId, int] = {
    BodyJoint.RIGHT_ANKLE: 0, BodyJoint.LEFT_ANKLE: 0,
    BodyJoint.RIGHT_KNEE: 1, BodyJoint.LEFT_KNEE: 1,
    BodyJoint.RIGHT_HIP: 2, BodyJoint.LEFT_HIP: 2,
}

FACE_RANKS: dict[JointId, int] = {joint: rank for rank, joint in enumerate(FACE_JOINTS)}


def rank_in(table: Mapping[JointId, int]) -> Callable[[JointId], int]:
    """Build a rank function over `table`. Unknown joints rank 0."""
    def rank(joint: JointId) -> int:
        return table.get(joint, 0)
    return rank


# --- Filtering ---

def flip_vertical(point: Point) -> Point:
    """Convert a bottom-left-origin point to top-left origin."""
    return Point(point.x, 1.0 - point.y)


def filter_point(
    observation: Optional[JointObservation],
    threshold: float = CONFIDENCE_THRESHOLD,
) -> Optional[Point]:
    """Return the flipped point if the observation clears the threshold."""
    if observation is None or not observation.confidence > threshold:
        return None
    return flip_vertical(observation.point)


def filter_and_order(
    raw: RawGroup,
    rank_fn: Callable[[JointId], int],
    threshold: float = CONFIDENCE_THRESHOLD,
) -> list[Point]:
    """Filter one limb's observations and order them proximal → distal.

    Args:
        raw: Joint id → observation for the joints of a single limb.
            Iteration order carries no meaning.
        rank_fn: Canonical rank of a joint within the limb.
        threshold: Observations with confidence <= threshold are dropped.

    Returns:
        Flipped points sorted by rank. `sorted` is stable, so equal ranks
        keep encounter order.
    """
    kept = []
    for joint, observation in raw.items():
        point = filter_point(observation, threshold)
        if point is not None:
            kept.append((rank_fn(joint), point))

    kept.sort(key=lambda entry: entry[0])
    return [point for _, point in kept]


def select(group: RawGroup, joints: tuple[JointId, ...]) -> dict[JointId, JointObservation]:
    """Restrict a raw group to the observations of the given joints."""
    return {joint: group[joint] for joint in joints if joint in group}
