"""HandBody - hand and body skeleton overlay with pinch drawing."""

__version__ = "0.1.0"

from handbody.joints import (
    CONFIDENCE_THRESHOLD,
    BodyJoint,
    HandJoint,
    JointObservation,
    Point,
    PointsPair,
    filter_and_order,
)
from handbody.skeleton import Body, Hand, SkeletonBuilder
from handbody.gesture import (
    Command,
    CommandType,
    EvidenceBuffer,
    GestureState,
    GestureStateMachine,
    Highlight,
    Transition,
)
from handbody.stroke import PathElement, PathSmoother, Stroke
from handbody.config import EngineConfig, load_config
from handbody.detector import DetectionFailure
from handbody.pipeline import FrameProcessor, FrameResult, Mode
from handbody.session import DrawingSession, SessionUpdate
from handbody.recorder import SessionPlayer, SessionRecorder
