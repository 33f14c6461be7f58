"""Engine configuration.

All tunables live in one dataclass. Values can be overridden from a YAML
file; unknown keys are ignored so older config files keep loading.

Example config.yml:

    confidence_threshold: 0.3
    pinch_threshold: 0.04
    apart_threshold: 0.06
    evidence_frames: 3
    idle_timeout: 2.0
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml

from handbody.gesture import Highlight
from handbody.joints import CONFIDENCE_THRESHOLD


@dataclass
class EngineConfig:
    # Core
    confidence_threshold: float = CONFIDENCE_THRESHOLD
    max_hands: int = 2
    draw_max_hands: int = 1
    pinch_threshold: float = 0.04
    apart_threshold: float = 0.06
    evidence_frames: int = 3
    idle_timeout: float = 2.0

    # Overlay
    line_width: int = 2
    joint_radius: int = 5
    stroke_width: int = 5
    joint_color: str = "#ff0000"
    connector_color: str = "#00ff00"
    stroke_color: str = "#ffffff"
    indeterminate_color: str = "#ffa500"
    affirmative_color: str = "#00ff00"
    negative_color: str = "#ff0000"

    # Capture
    camera_index: int = 0
    camera_width: int = 640
    camera_height: int = 480

    def validate(self) -> EngineConfig:
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be in [0, 1], got {self.confidence_threshold}")
        if self.pinch_threshold > self.apart_threshold:
            raise ValueError("pinch_threshold must not exceed apart_threshold")
        if self.evidence_frames < 1:
            raise ValueError("evidence_frames must be at least 1")
        if self.idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive")
        if self.max_hands < 1 or self.draw_max_hands < 1:
            raise ValueError("max_hands and draw_max_hands must be at least 1")
        return self

    def highlight_color(self, highlight: Highlight) -> str:
        return {
            Highlight.INDETERMINATE: self.indeterminate_color,
            Highlight.AFFIRMATIVE: self.affirmative_color,
            Highlight.NEGATIVE: self.negative_color,
        }[highlight]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known}).validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load config from `path`, or defaults when no path is given."""
    if path is None:
        return EngineConfig()
    return EngineConfig.from_yaml(path)
