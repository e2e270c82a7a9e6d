from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .geometry import Rect
from .observation import (
    GeometryObservation,
    Observation,
    QualityObservation,
    SmileObservation,
)

DEFAULT_LAYOUT_GUIDE = Rect(x=0.0, y=0.0, width=200.0, height=300.0)


class BoundsState(Enum):
    """Face bounding box size / position relative to the layout guide."""
    UNKNOWN = "UNKNOWN"
    TOO_SMALL = "TOO_SMALL"
    TOO_LARGE = "TOO_LARGE"
    OFF_CENTRE = "OFF_CENTRE"
    APPROPRIATE = "APPROPRIATE"


class FaceDetectedState(Enum):
    """Most recent detector status, used by the presentation layer for prompts."""
    FACE_DETECTED = "FACE_DETECTED"
    NO_FACE_DETECTED = "NO_FACE_DETECTED"
    FACE_DETECTION_ERRORED = "FACE_DETECTION_ERRORED"


@dataclass(frozen=True)
class ValidationState:
    """
    Aggregate state of one capture session.

    Owned by the ValidityAggregator and only ever replaced (never mutated),
    so any reference handed to a reader is a consistent snapshot.

    Per-axis inputs
    ---------------
    acceptable_roll / acceptable_pitch / acceptable_yaw : bool
    bounds_state       : BoundsState
    acceptable_quality : bool

    Derived
    -------
    has_valid_face  : bool
        AND of the five inputs (bounds must be APPROPRIATE).
    smile_permitted : bool
        True once has_valid_face has held for the full grace period.
    smile_detected  : bool
    success         : bool
        has_valid_face and smile_permitted and smile_detected.

    Presentation / diagnostics
    --------------------------
    debug_enabled       : bool
    layout_guide        : Rect where the face should sit.
    face_detected_state : FaceDetectedState
    last_geometry / last_quality / last_smile : latest raw observations.

    Bookkeeping
    -----------
    grace_timer_active : bool
        A grace-period timer is pending.
    grace_token        : int
        Identifies the pending (or last) timer; stale fires carry an old token.
    closed             : bool
        Session torn down; further actions are ignored.
    """

    acceptable_roll: bool = False
    acceptable_pitch: bool = False
    acceptable_yaw: bool = False
    bounds_state: BoundsState = BoundsState.UNKNOWN
    acceptable_quality: bool = False

    has_valid_face: bool = False
    smile_permitted: bool = False
    smile_detected: bool = False
    success: bool = False

    debug_enabled: bool = False
    layout_guide: Rect = DEFAULT_LAYOUT_GUIDE
    face_detected_state: FaceDetectedState = FaceDetectedState.NO_FACE_DETECTED

    last_geometry: Observation[GeometryObservation] = field(default_factory=Observation.not_found)
    last_quality: Observation[QualityObservation] = field(default_factory=Observation.not_found)
    last_smile: Observation[SmileObservation] = field(default_factory=Observation.not_found)

    grace_timer_active: bool = False
    grace_token: int = 0
    closed: bool = False

    @property
    def acceptable_pose(self) -> bool:
        return self.acceptable_roll and self.acceptable_pitch and self.acceptable_yaw

    def to_dict(self) -> Dict[str, Any]:
        """Flat summary for logging / telemetry."""
        return {
            "roll": self.acceptable_roll,
            "pitch": self.acceptable_pitch,
            "yaw": self.acceptable_yaw,
            "bounds": self.bounds_state.value,
            "quality": self.acceptable_quality,
            "valid": self.has_valid_face,
            "smile_permitted": self.smile_permitted,
            "smile": self.smile_detected,
            "success": self.success,
            "debug": self.debug_enabled,
            "face": self.face_detected_state.value,
            "closed": self.closed,
        }


def initial_state(
    debug_enabled: bool = False,
    layout_guide: Optional[Rect] = None,
) -> ValidationState:
    """State at session start: every flag false / UNKNOWN."""
    return ValidationState(
        debug_enabled=debug_enabled,
        layout_guide=layout_guide if layout_guide is not None else DEFAULT_LAYOUT_GUIDE,
    )
