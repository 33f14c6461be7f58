"""Tests for hand and body skeleton assembly."""

import pytest

from handbody.joints import (
    FINGERS,
    TORSO_JOINTS,
    BodyJoint,
    HandJoint,
    JointObservation,
    Point,
)
from handbody.skeleton import TORSO_CONNECTIONS, SkeletonBuilder


def _obs(joint, x, y, confidence=0.9):
    return JointObservation(joint, Point(x, y), confidence)


def _make_hand_group(confidence=0.9, wrist_confidence=0.9):
    """Full 21-joint hand in detector coordinates."""
    group = {HandJoint.WRIST: _obs(HandJoint.WRIST, 0.5, 0.1, wrist_confidence)}
    for f, joints in enumerate(FINGERS.values()):
        for rank, joint in enumerate(joints):
            group[joint] = _obs(joint, 0.3 + 0.1 * f, 0.2 + 0.1 * rank, confidence)
    return group


def _make_body_group(skip=()):
    positions = {
        BodyJoint.NOSE: (0.5, 0.9),
        BodyJoint.RIGHT_EYE: (0.48, 0.92),
        BodyJoint.LEFT_EYE: (0.52, 0.92),
        BodyJoint.RIGHT_EAR: (0.46, 0.91),
        BodyJoint.LEFT_EAR: (0.54, 0.91),
        BodyJoint.NECK: (0.5, 0.8),
        BodyJoint.RIGHT_SHOULDER: (0.4, 0.8),
        BodyJoint.LEFT_SHOULDER: (0.6, 0.8),
        BodyJoint.RIGHT_ELBOW: (0.35, 0.65),
        BodyJoint.LEFT_ELBOW: (0.65, 0.65),
        BodyJoint.RIGHT_WRIST: (0.33, 0.5),
        BodyJoint.LEFT_WRIST: (0.67, 0.5),
        BodyJoint.ROOT: (0.5, 0.5),
        BodyJoint.RIGHT_HIP: (0.45, 0.5),
        BodyJoint.LEFT_HIP: (0.55, 0.5),
        BodyJoint.RIGHT_KNEE: (0.45, 0.3),
        BodyJoint.LEFT_KNEE: (0.55, 0.3),
        BodyJoint.RIGHT_ANKLE: (0.45, 0.1),
        BodyJoint.LEFT_ANKLE: (0.55, 0.1),
    }
    return {j: _obs(j, x, y) for j, (x, y) in positions.items() if j not in skip}


class TestHand:
    def test_full_hand(self):
        hand = SkeletonBuilder().build_hand(_make_hand_group())
        assert hand.is_renderable
        assert all(len(finger) == 4 for finger in hand.fingers)
        assert len(hand.joints()) == 21

    def test_fingers_ordered_base_to_tip(self):
        hand = SkeletonBuilder().build_hand(_make_hand_group())
        # Flipped: base has the largest y, tip the smallest
        ys = [p.y for p in hand.index]
        assert ys == sorted(ys, reverse=True)

    def test_segments_start_at_wrist(self):
        hand = SkeletonBuilder().build_hand(_make_hand_group())
        segments = hand.segments()
        assert len(segments) == 5 * 4
        assert sum(1 for a, _ in segments if a == hand.wrist) == 5

    def test_low_confidence_wrist_is_none(self):
        hand = SkeletonBuilder().build_hand(_make_hand_group(wrist_confidence=0.2))
        assert hand.wrist is None
        assert not hand.is_renderable
        assert hand.segments() == []
        assert len(hand.thumb) == 4

    def test_missing_joints_shorten_finger(self):
        group = _make_hand_group()
        del group[HandJoint.MIDDLE_PIP]
        group[HandJoint.RING_DIP] = _obs(HandJoint.RING_DIP, 0.6, 0.4, 0.2)
        hand = SkeletonBuilder().build_hand(group)
        assert len(hand.middle) == 3
        assert len(hand.ring) == 3

    def test_build_hands(self):
        hands = SkeletonBuilder().build_hands([_make_hand_group(), _make_hand_group()])
        assert len(hands) == 2


class TestBody:
    def test_complete_body(self):
        body = SkeletonBuilder().build_body(_make_body_group())
        assert body is not None
        assert set(body.torso) == set(TORSO_JOINTS)
        assert len(body.face) == 5
        assert len(body.right_arm) == 3

    def test_arm_ordered_wrist_to_shoulder(self):
        body = SkeletonBuilder().build_body(_make_body_group())
        assert body.right_arm[0].x == pytest.approx(0.33)
        assert body.right_arm[-1].x == pytest.approx(0.4)

    def test_missing_left_hip_skips_body(self):
        builder = SkeletonBuilder()
        assert builder.build_body(_make_body_group(skip=(BodyJoint.LEFT_HIP,))) is None

    def test_low_confidence_torso_skips_body(self):
        group = _make_body_group()
        group[BodyJoint.NECK] = _obs(BodyJoint.NECK, 0.5, 0.8, 0.3)
        assert SkeletonBuilder().build_body(group) is None

    def test_missing_limb_joint_keeps_body(self):
        body = SkeletonBuilder().build_body(_make_body_group(skip=(BodyJoint.LEFT_ANKLE,)))
        assert body is not None
        assert len(body.left_leg) == 2

    def test_segments_include_torso(self):
        body = SkeletonBuilder().build_body(_make_body_group())
        segments = body.segments()
        limb_segments = 4 + 2 + 2 + 2 + 2
        assert len(segments) == limb_segments + len(TORSO_CONNECTIONS)

    def test_joints_have_no_duplicates(self):
        body = SkeletonBuilder().build_body(_make_body_group())
        joints = body.joints()
        assert len(joints) == len(set(joints))

    def test_build_bodies_omits_incomplete(self):
        bodies = SkeletonBuilder().build_bodies([
            _make_body_group(),
            _make_body_group(skip=(BodyJoint.ROOT,)),
        ])
        assert len(bodies) == 1


class TestExtractTips:
    def test_tips_flipped(self):
        group = {
            HandJoint.THUMB_TIP: _obs(HandJoint.THUMB_TIP, 0.2, 0.3, 0.5),
            HandJoint.INDEX_TIP: _obs(HandJoint.INDEX_TIP, 0.8, 0.3, 0.5),
        }
        pair = SkeletonBuilder().extract_tips(group)
        assert pair.thumb_tip.x == pytest.approx(0.2)
        assert pair.thumb_tip.y == pytest.approx(0.7)
        assert pair.index_tip.x == pytest.approx(0.8)

    def test_missing_tip(self):
        group = {HandJoint.THUMB_TIP: _obs(HandJoint.THUMB_TIP, 0.2, 0.3, 0.5)}
        assert SkeletonBuilder().extract_tips(group) is None

    def test_low_confidence_tip(self):
        group = {
            HandJoint.THUMB_TIP: _obs(HandJoint.THUMB_TIP, 0.2, 0.3, 0.5),
            HandJoint.INDEX_TIP: _obs(HandJoint.INDEX_TIP, 0.8, 0.3, 0.3),
        }
        assert SkeletonBuilder().extract_tips(group) is None

    def test_no_wrist_needed(self):
        group = _make_hand_group(wrist_confidence=0.1)
        assert SkeletonBuilder().extract_tips(group) is not None
