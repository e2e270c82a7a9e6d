"""
schemas/actions.py

Inputs to the validity reducer (actions) and the side effects it asks the
dispatcher to perform (effects). Both are plain immutable records; the
reducer never performs I/O or schedules anything itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .geometry import Rect
from .observation import (
    GeometryObservation,
    Observation,
    QualityObservation,
    SmileObservation,
)
from .validation_state import ValidationState


@dataclass(frozen=True)
class ViewportResized:
    viewport: Rect


@dataclass(frozen=True)
class NoFaceDetected:
    pass


@dataclass(frozen=True)
class GeometryObserved:
    observation: Observation[GeometryObservation]


@dataclass(frozen=True)
class QualityObserved:
    observation: Observation[QualityObservation]


@dataclass(frozen=True)
class SmileObserved:
    observation: Observation[SmileObservation]


@dataclass(frozen=True)
class DebugToggled:
    pass


@dataclass(frozen=True)
class GracePeriodElapsed:
    """Posted by the grace timer callback; `token` names the timer that fired."""
    token: int


@dataclass(frozen=True)
class CloseSession:
    pass


Action = Union[
    ViewportResized,
    NoFaceDetected,
    GeometryObserved,
    QualityObserved,
    SmileObserved,
    DebugToggled,
    GracePeriodElapsed,
    CloseSession,
]


@dataclass(frozen=True)
class StartGraceTimer:
    token: int
    delay_sec: float


@dataclass(frozen=True)
class CancelGraceTimer:
    token: int


@dataclass(frozen=True)
class ReleaseShutter:
    """Success went false -> true in this update."""
    state: ValidationState


@dataclass(frozen=True)
class ReportObservationError:
    kind: str
    reason: str


Effect = Union[StartGraceTimer, CancelGraceTimer, ReleaseShutter, ReportObservationError]
