"""
schemas/__init__.py
Central exports for lightweight data structures used across PassGuard.

We keep each schema in its own module (geometry, observation,
validation_state, actions) and re-export them here for convenience:

    from schemas import Rect, Observation, ValidationState, GeometryObserved, ...

This file should remain VERY lightweight (no heavy imports or model code).
"""

from .geometry import Rect
from .observation import (
    Observation,
    ObservationStatus,
    GeometryObservation,
    QualityObservation,
    SmileObservation,
)
from .validation_state import (
    BoundsState,
    FaceDetectedState,
    ValidationState,
    DEFAULT_LAYOUT_GUIDE,
    initial_state,
)
from .actions import (
    Action,
    ViewportResized,
    NoFaceDetected,
    GeometryObserved,
    QualityObserved,
    SmileObserved,
    DebugToggled,
    GracePeriodElapsed,
    CloseSession,
    Effect,
    StartGraceTimer,
    CancelGraceTimer,
    ReleaseShutter,
    ReportObservationError,
)

__all__ = [
    "Rect",
    "Observation",
    "ObservationStatus",
    "GeometryObservation",
    "QualityObservation",
    "SmileObservation",
    "BoundsState",
    "FaceDetectedState",
    "ValidationState",
    "DEFAULT_LAYOUT_GUIDE",
    "initial_state",
    "Action",
    "ViewportResized",
    "NoFaceDetected",
    "GeometryObserved",
    "QualityObserved",
    "SmileObserved",
    "DebugToggled",
    "GracePeriodElapsed",
    "CloseSession",
    "Effect",
    "StartGraceTimer",
    "CancelGraceTimer",
    "ReleaseShutter",
    "ReportObservationError",
]
