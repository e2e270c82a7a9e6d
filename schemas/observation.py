from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from .geometry import Rect

T = TypeVar("T")


class ObservationStatus(Enum):
    """Tri-state outcome of one detector measurement."""
    FOUND = "FOUND"
    NOT_FOUND = "NOT_FOUND"
    ERRORED = "ERRORED"


@dataclass(frozen=True)
class Observation(Generic[T]):
    """
    One detector result at one point in time: NotFound | Found(T) | Errored(reason).

    NOT_FOUND is the normal "no face in frame" case. ERRORED means the
    detector failed to produce a measurement (decode / inference failure);
    `reason` carries the diagnostic text. Both are treated the same way by
    the aggregator, the distinction only matters for logs and metrics.

    Use the constructors instead of building instances by hand:

        Observation.found(QualityObservation(0.5))
        Observation.not_found()
        Observation.errored("vision request failed")
    """

    status: ObservationStatus
    value: Optional[T] = None
    reason: Optional[str] = None

    @classmethod
    def found(cls, value: T) -> "Observation[T]":
        return cls(status=ObservationStatus.FOUND, value=value)

    @classmethod
    def not_found(cls) -> "Observation[T]":
        return cls(status=ObservationStatus.NOT_FOUND)

    @classmethod
    def errored(cls, reason: str) -> "Observation[T]":
        return cls(status=ObservationStatus.ERRORED, reason=str(reason))

    @property
    def is_found(self) -> bool:
        return self.status is ObservationStatus.FOUND

    @property
    def is_errored(self) -> bool:
        return self.status is ObservationStatus.ERRORED


@dataclass(frozen=True)
class GeometryObservation:
    """
    Face rectangle plus head pose for the primary detection.

    bounding_box : Rect
        Already converted to preview coordinates by the detection source.
    roll, pitch, yaw : float
        Radians, in the detector's own convention (roll is NOT zero for a
        frontal face, see face/policy.py).
    """

    bounding_box: Rect
    roll: float = 0.0
    pitch: float = 0.0
    yaw: float = 0.0


@dataclass(frozen=True)
class QualityObservation:
    """Capture quality score in [0, 1]."""
    quality: float = 0.0


@dataclass(frozen=True)
class SmileObservation:
    smile_detected: bool = False
