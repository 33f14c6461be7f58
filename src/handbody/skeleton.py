"""Hand and body skeleton assembly.

Turns one frame's raw joint groups into ordered skeletons ready for the
overlay: joints drawn as filled circles, connectors as stroked lines.

Usage:
    builder = SkeletonBuilder()
    hands = builder.build_hands(hand_groups)
    bodies = builder.build_bodies(body_groups)   # incomplete bodies are skipped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from handbody.joints import (
    ARM_RANKS,
    CONFIDENCE_THRESHOLD,
    FACE_JOINTS,
    FACE_RANKS,
    FINGER_RANKS,
    FINGERS,
    LEFT_ARM_JOINTS,
    LEFT_LEG_JOINTS,
    LEG_RANKS,
    RIGHT_ARM_JOINTS,
    RIGHT_LEG_JOINTS,
    TORSO_JOINTS,
    BodyJoint,
    HandJoint,
    Point,
    PointsPair,
    RawGroup,
    filter_and_order,
    filter_point,
    rank_in,
    select,
)

logger = logging.getLogger("handbody.skeleton")

Segment = tuple[Point, Point]

# Torso connectors; the arm and leg chains attach at the shoulders and hips.
TORSO_CONNECTIONS: list[tuple[BodyJoint, BodyJoint]] = [
    (BodyJoint.NECK, BodyJoint.RIGHT_SHOULDER),
    (BodyJoint.NECK, BodyJoint.LEFT_SHOULDER),
    (BodyJoint.NECK, BodyJoint.ROOT),
    (BodyJoint.ROOT, BodyJoint.RIGHT_HIP),
    (BodyJoint.ROOT, BodyJoint.LEFT_HIP),
]


def _chain(points: list[Point], start: Optional[Point] = None) -> list[Segment]:
    """Consecutive segments along a limb, optionally anchored at `start`."""
    path = ([start] if start is not None else []) + points
    return list(zip(path, path[1:]))


@dataclass
class Hand:
    """One hand's fingers, each ordered base → tip."""
    thumb: list[Point] = field(default_factory=list)
    index: list[Point] = field(default_factory=list)
    middle: list[Point] = field(default_factory=list)
    ring: list[Point] = field(default_factory=list)
    little: list[Point] = field(default_factory=list)
    wrist: Optional[Point] = None

    @property
    def fingers(self) -> list[list[Point]]:
        return [self.thumb, self.index, self.middle, self.ring, self.little]

    @property
    def is_renderable(self) -> bool:
        return self.wrist is not None

    def joints(self) -> list[Point]:
        points = [self.wrist] if self.wrist is not None else []
        for finger in self.fingers:
            points.extend(finger)
        return points

    def segments(self) -> list[Segment]:
        """Wrist → base → ... → tip for every finger. Empty without a wrist."""
        if self.wrist is None:
            return []
        segments: list[Segment] = []
        for finger in self.fingers:
            segments.extend(_chain(finger, self.wrist))
        return segments


@dataclass
class Body:
    """One body. Limbs follow their rank tables; torso is keyed by joint."""
    face: list[Point]
    right_arm: list[Point]
    left_arm: list[Point]
    right_leg: list[Point]
    left_leg: list[Point]
    torso: dict[BodyJoint, Point]

    @property
    def limbs(self) -> list[list[Point]]:
        return [self.face, self.right_arm, self.left_arm, self.right_leg, self.left_leg]

    def joints(self) -> list[Point]:
        points: list[Point] = []
        for limb in self.limbs:
            points.extend(limb)
        points.extend(p for p in self.torso.values() if p not in points)
        return points

    def segments(self) -> list[Segment]:
        segments: list[Segment] = []
        for limb in self.limbs:
            segments.extend(_chain(limb))
        for a, b in TORSO_CONNECTIONS:
            segments.append((self.torso[a], self.torso[b]))
        return segments


class SkeletonBuilder:
    """Builds Hand and Body skeletons from raw per-frame joint groups.

    A Hand is always produced per group; its wrist is None when the wrist
    did not clear the threshold. A Body is produced only when all six torso
    joints are present, otherwise the instance is skipped for that frame.
    """

    REQUIRED_TORSO = frozenset(TORSO_JOINTS)

    def __init__(self, threshold: float = CONFIDENCE_THRESHOLD):
        self.threshold = threshold
        self._finger_rank = rank_in(FINGER_RANKS)
        self._arm_rank = rank_in(ARM_RANKS)
        self._leg_rank = rank_in(LEG_RANKS)
        self._face_rank = rank_in(FACE_RANKS)

    def build_hand(self, group: RawGroup) -> Hand:
        fingers = {
            name: filter_and_order(select(group, joints), self._finger_rank, self.threshold)
            for name, joints in FINGERS.items()
        }
        wrist = filter_point(group.get(HandJoint.WRIST), self.threshold)
        return Hand(wrist=wrist, **fingers)

    def build_hands(self, groups: Iterable[RawGroup]) -> list[Hand]:
        return [self.build_hand(group) for group in groups]

    def build_body(self, group: RawGroup) -> Optional[Body]:
        """Build a body, or return None when a required torso joint is missing."""
        torso: dict[BodyJoint, Point] = {}
        for joint in TORSO_JOINTS:
            point = filter_point(group.get(joint), self.threshold)
            if point is not None:
                torso[joint] = point

        missing = self.REQUIRED_TORSO.difference(torso)
        if missing:
            logger.debug(
                "Skipping body, torso incomplete: %s",
                sorted(j.value for j in missing),
            )
            return None

        return Body(
            face=filter_and_order(select(group, FACE_JOINTS), self._face_rank, self.threshold),
            right_arm=filter_and_order(select(group, RIGHT_ARM_JOINTS), self._arm_rank, self.threshold),
            left_arm=filter_and_order(select(group, LEFT_ARM_JOINTS), self._arm_rank, self.threshold),
            right_leg=filter_and_order(select(group, RIGHT_LEG_JOINTS), self._leg_rank, self.threshold),
            left_leg=filter_and_order(select(group, LEFT_LEG_JOINTS), self._leg_rank, self.threshold),
            torso=torso,
        )

    def build_bodies(self, groups: Iterable[RawGroup]) -> list[Body]:
        bodies = []
        for group in groups:
            body = self.build_body(group)
            if body is not None:
                bodies.append(body)
        return bodies

    def extract_tips(self, group: RawGroup) -> Optional[PointsPair]:
        """Thumb and index tips for the pinch gesture, or None if either is missing."""
        thumb_tip = filter_point(group.get(HandJoint.THUMB_TIP), self.threshold)
        index_tip = filter_point(group.get(HandJoint.INDEX_TIP), self.threshold)
        if thumb_tip is None or index_tip is None:
            return None
        return PointsPair(thumb_tip=thumb_tip, index_tip=index_tip)
