"""
face/policy.py

Photo-standard threshold policy.

Pure functions mapping raw detector measurements to pass/fail verdicts.
No state, no logging, no I/O: the aggregator calls these on every
observation and tests probe the boundaries directly.

All tolerances are named module constants and are also carried by
PhotoStandardThresholds so config/default.yaml can override them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from schemas import BoundsState, Rect

# Face box may be at most this factor wider / narrower than the guide.
BOUNDS_SCALE_TOLERANCE = 1.2
# Max distance (px) between face centre and guide centre, per axis.
CENTRE_OFFSET_TOLERANCE = 50.0

# Roll band is an open interval in the detector's own convention:
# a frontal face reports roll around pi/2, not 0.
ROLL_MIN = 1.2
ROLL_MAX = 1.6
PITCH_MAX = 0.2
YAW_MAX = 0.15

QUALITY_MIN = 0.2


@dataclass(frozen=True)
class PhotoStandardThresholds:
    """
    Acceptance tolerances for a passport-ready face.

    bounds_scale_tolerance : float
        TOO_LARGE if box.width > k * guide.width,
        TOO_SMALL if box.width * k < guide.width.
    centre_offset_tolerance : float
        OFF_CENTRE if |dx| or |dy| between centres exceeds this (pixels).
    roll_min, roll_max : float
        Open interval (radians) for an acceptable roll.
    pitch_max, yaw_max : float
        Strict upper bound on |pitch| / |yaw| (radians).
    quality_min : float
        Inclusive lower bound on the capture quality score.
    """

    bounds_scale_tolerance: float = BOUNDS_SCALE_TOLERANCE
    centre_offset_tolerance: float = CENTRE_OFFSET_TOLERANCE
    roll_min: float = ROLL_MIN
    roll_max: float = ROLL_MAX
    pitch_max: float = PITCH_MAX
    yaw_max: float = YAW_MAX
    quality_min: float = QUALITY_MIN


DEFAULT_THRESHOLDS = PhotoStandardThresholds()


class PoseVerdict(NamedTuple):
    roll_ok: bool
    pitch_ok: bool
    yaw_ok: bool

    @property
    def all_ok(self) -> bool:
        return self.roll_ok and self.pitch_ok and self.yaw_ok


def classify_bounds(
    box: Rect,
    guide: Rect,
    thresholds: PhotoStandardThresholds = DEFAULT_THRESHOLDS,
) -> BoundsState:
    """
    Classify the face box against the layout guide.

    Size checks run before centring checks: a face that is both too large
    and off-centre reports TOO_LARGE.
    """
    k = thresholds.bounds_scale_tolerance

    if box.width > k * guide.width:
        return BoundsState.TOO_LARGE
    if box.width * k < guide.width:
        return BoundsState.TOO_SMALL

    tol = thresholds.centre_offset_tolerance
    if abs(box.mid_x - guide.mid_x) > tol:
        return BoundsState.OFF_CENTRE
    if abs(box.mid_y - guide.mid_y) > tol:
        return BoundsState.OFF_CENTRE

    return BoundsState.APPROPRIATE


def classify_pose(
    roll: float,
    pitch: float,
    yaw: float,
    thresholds: PhotoStandardThresholds = DEFAULT_THRESHOLDS,
) -> PoseVerdict:
    roll = float(roll)
    return PoseVerdict(
        roll_ok=thresholds.roll_min < roll < thresholds.roll_max,
        pitch_ok=abs(float(pitch)) < thresholds.pitch_max,
        yaw_ok=abs(float(yaw)) < thresholds.yaw_max,
    )


def classify_quality(
    quality: float,
    thresholds: PhotoStandardThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    return float(quality) >= thresholds.quality_min
