"""Consumer-side drawing session.

Owns the long-lived per-session state: gesture state machine, evidence
buffer and stroke. Created at session start, discarded at session end;
touched only by the consumer (render/UI) loop, so it does no locking.

Usage:
    session = DrawingSession(config)
    # In the consumer loop:
    update = session.apply(frame_result, now=time.monotonic())
    renderer.draw_tips(frame, update.tips, update.highlight)
    # Double tap / clear key:
    session.clear()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

from handbody.config import EngineConfig
from handbody.gesture import (
    Command,
    CommandType,
    EvidenceBuffer,
    GestureState,
    GestureStateMachine,
    Highlight,
    Transition,
)
from handbody.joints import PointsPair
from handbody.pipeline import FrameResult
from handbody.stroke import PathSmoother

logger = logging.getLogger("handbody.session")


@dataclass
class SessionUpdate:
    """What the renderer needs after applying one frame."""
    state: GestureState
    highlight: Highlight
    tips: Optional[PointsPair]
    changed: bool


class DrawingSession:
    """Applies tip pairs to the gesture machine and dispatches its commands."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.machine = GestureStateMachine(
            pinch_threshold=self.config.pinch_threshold,
            apart_threshold=self.config.apart_threshold,
            evidence_frames=self.config.evidence_frames,
            idle_timeout=self.config.idle_timeout,
        )
        self.buffer = EvidenceBuffer(maxlen=self.config.evidence_frames)
        self.smoother = PathSmoother()
        self._frames = 0

    def apply(self, result: FrameResult, now: Optional[float] = None) -> SessionUpdate:
        """Apply one frame's result. `now` is the consumer's wall clock."""
        return self.update(result.tips, now)

    def update(self, tips: Optional[PointsPair], now: Optional[float] = None) -> SessionUpdate:
        """Advance the gesture with one frame's tip pair (None if not seen)."""
        now = now if now is not None else time.monotonic()
        self._frames += 1

        transition = self.machine.advance(tips, now)
        self.dispatch(transition)

        return SessionUpdate(
            state=transition.state,
            highlight=transition.highlight,
            tips=tips,
            changed=transition.changed,
        )

    def dispatch(self, transition: Transition):
        for command in transition.commands:
            self._execute(command)

    def _execute(self, command: Command):
        if command.type == CommandType.BUFFER:
            self.buffer.append(command.pair)
        elif command.type == CommandType.FLUSH_BUFFER:
            for pair in self.buffer.drain():
                self.smoother.add_point(pair, terminal=False)
        elif command.type == CommandType.DISCARD_BUFFER:
            self.buffer.discard()
        elif command.type == CommandType.DRAW:
            self.smoother.add_point(command.pair, terminal=False)
        elif command.type == CommandType.DRAW_TERMINAL:
            if command.pair is not None:
                self.smoother.add_point(command.pair, terminal=True)

    def clear(self):
        """Explicit clear (double tap): drop the buffer and the whole drawing.

        Not a state transition; the gesture state is left as it is.
        """
        self.buffer.discard()
        self.smoother.clear()
        logger.info("Drawing cleared after %d frames", self._frames)

    @property
    def state(self) -> GestureState:
        return self.machine.state

    @property
    def strokes(self):
        return self.smoother.strokes
