"""Pinch gesture state machine with evidence buffering.

Classifies the thumb-tip / index-tip gap into pinched or apart, requiring
`evidence_frames` consecutive frames in a zone before the state is
confirmed. Frames seen while unconfirmed are buffered and replayed into
the stroke once the pinch is confirmed, so the stroke does not lose its
first points and does not flicker on single-frame noise.

The machine never draws. `advance()` returns the new state plus a list of
commands; the session dispatches them to the buffer and the path smoother.

Usage:
    machine = GestureStateMachine(pinch_threshold=0.04, apart_threshold=0.06)
    transition = machine.advance(pair, now=time.monotonic())
    for command in transition.commands:
        ...
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from handbody.joints import PointsPair

logger = logging.getLogger("handbody.gesture")


class GestureState(Enum):
    UNKNOWN = "unknown"
    POSSIBLE_PINCH = "possible_pinch"
    PINCHED = "pinched"
    POSSIBLE_APART = "possible_apart"
    APART = "apart"


class Highlight(Enum):
    """Color hint for the tracked tips; the renderer picks the actual color."""
    INDETERMINATE = "indeterminate"
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"


HIGHLIGHTS = {
    GestureState.POSSIBLE_PINCH: Highlight.INDETERMINATE,
    GestureState.POSSIBLE_APART: Highlight.INDETERMINATE,
    GestureState.PINCHED: Highlight.AFFIRMATIVE,
    GestureState.APART: Highlight.NEGATIVE,
    GestureState.UNKNOWN: Highlight.NEGATIVE,
}


POSSIBLE_STATES = (GestureState.POSSIBLE_PINCH, GestureState.POSSIBLE_APART)


class CommandType(Enum):
    BUFFER = "buffer"                  # append pair to the evidence buffer
    FLUSH_BUFFER = "flush_buffer"      # replay buffered pairs as non-terminal points
    DISCARD_BUFFER = "discard_buffer"  # drop buffered pairs without drawing
    DRAW = "draw"                      # non-terminal point
    DRAW_TERMINAL = "draw_terminal"    # terminal point, closes the stroke


@dataclass(frozen=True)
class Command:
    type: CommandType
    pair: Optional[PointsPair] = None


@dataclass
class Transition:
    """Result of one `advance()` call."""
    state: GestureState
    previous: GestureState
    commands: list[Command] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.state != self.previous

    @property
    def highlight(self) -> Highlight:
        return HIGHLIGHTS[self.state]


class EvidenceBuffer:
    """Point pairs observed while the gesture is unconfirmed.

    With `maxlen` set, only the most recent pairs are kept.
    """

    def __init__(self, maxlen: Optional[int] = None):
        self.maxlen = maxlen
        self._pairs: deque[PointsPair] = deque(maxlen=maxlen)

    def append(self, pair: PointsPair):
        self._pairs.append(pair)

    def drain(self) -> list[PointsPair]:
        """Return buffered pairs in arrival order and empty the buffer."""
        pairs = list(self._pairs)
        self._pairs.clear()
        return pairs

    def discard(self):
        self._pairs.clear()

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[PointsPair]:
        return iter(list(self._pairs))


class GestureStateMachine:
    """Pinch / apart classifier with hysteresis and idle reset.

    A gap below `pinch_threshold` is pinch evidence, above
    `apart_threshold` apart evidence. A gap inside the band between them
    leaves the state as it is but breaks any run of evidence, and is not
    buffered while the state is unconfirmed. Confirmation requires
    `evidence_frames` consecutive frames of the same evidence.

    Frames with no pair (a tip not detected) are ignored until more than
    `idle_timeout` seconds have passed since the last pair; then the
    machine resets to UNKNOWN once, discarding the buffer and closing the
    stroke with the last known pair.
    """

    def __init__(
        self,
        pinch_threshold: float = 0.04,
        apart_threshold: float = 0.06,
        evidence_frames: int = 3,
        idle_timeout: float = 2.0,
    ):
        if pinch_threshold > apart_threshold:
            raise ValueError(
                f"pinch_threshold ({pinch_threshold}) must not exceed "
                f"apart_threshold ({apart_threshold})"
            )
        if evidence_frames < 1:
            raise ValueError("evidence_frames must be at least 1")

        self.pinch_threshold = pinch_threshold
        self.apart_threshold = apart_threshold
        self.evidence_frames = evidence_frames
        self.idle_timeout = idle_timeout

        self._state = GestureState.UNKNOWN
        self._pinch_evidence = 0
        self._apart_evidence = 0
        self._last_pair: Optional[PointsPair] = None
        self._last_observed: Optional[float] = None

    @property
    def state(self) -> GestureState:
        return self._state

    @property
    def last_pair(self) -> Optional[PointsPair]:
        return self._last_pair

    def advance(self, pair: Optional[PointsPair], now: float) -> Transition:
        """Feed one frame's tip pair (or None) observed at time `now`."""
        previous = self._state
        commands: list[Command] = []

        if self._idle_expired(now):
            commands.extend(self._reset_commands())
            logger.warning(
                "No tips for %.2fs, resetting gesture from %s",
                now - self._last_observed, self._state.value,
            )
            self.reset()

        if pair is None:
            return Transition(state=self._state, previous=previous, commands=commands)

        self._last_pair = pair
        self._last_observed = now
        entering_from = self._state
        self._state = self._classify(pair.gap)
        if not (self._in_dead_band(pair.gap) and self._state in POSSIBLE_STATES):
            commands.extend(self._commands_for(entering_from, self._state, pair))

        if self._state != previous:
            logger.debug("Gesture %s -> %s (gap=%.4f)", previous.value, self._state.value, pair.gap)

        return Transition(state=self._state, previous=previous, commands=commands)

    def reset(self):
        """Force UNKNOWN and clear evidence. Issues no commands by itself."""
        self._state = GestureState.UNKNOWN
        self._pinch_evidence = 0
        self._apart_evidence = 0

    def _idle_expired(self, now: float) -> bool:
        if self._last_observed is None or self._state == GestureState.UNKNOWN:
            return False
        return now - self._last_observed > self.idle_timeout

    def _reset_commands(self) -> list[Command]:
        return [
            Command(CommandType.DISCARD_BUFFER),
            Command(CommandType.DRAW_TERMINAL, self._last_pair),
        ]

    def _in_dead_band(self, gap: float) -> bool:
        return self.pinch_threshold <= gap <= self.apart_threshold

    def _classify(self, gap: float) -> GestureState:
        if gap < self.pinch_threshold:
            self._pinch_evidence += 1
            self._apart_evidence = 0
            if self._pinch_evidence >= self.evidence_frames:
                return GestureState.PINCHED
            return GestureState.POSSIBLE_PINCH

        if gap > self.apart_threshold:
            self._apart_evidence += 1
            self._pinch_evidence = 0
            if self._apart_evidence >= self.evidence_frames:
                return GestureState.APART
            return GestureState.POSSIBLE_APART

        # Dead band: in neither zone, so any run of evidence is broken
        self._pinch_evidence = 0
        self._apart_evidence = 0
        return self._state

    @staticmethod
    def _commands_for(
        old: GestureState, new: GestureState, pair: PointsPair
    ) -> list[Command]:
        if new in POSSIBLE_STATES:
            return [Command(CommandType.BUFFER, pair)]

        if new == GestureState.PINCHED:
            if old != GestureState.PINCHED:
                return [Command(CommandType.FLUSH_BUFFER), Command(CommandType.DRAW, pair)]
            return [Command(CommandType.DRAW, pair)]

        if new == GestureState.APART and old != GestureState.APART:
            return [Command(CommandType.DISCARD_BUFFER), Command(CommandType.DRAW_TERMINAL, pair)]

        return []
