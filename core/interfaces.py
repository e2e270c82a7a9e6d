"""
core/interfaces.py

Defines abstract interfaces (contracts) between PassGuard and its external
collaborators.

We don't put any heavy logic here, only method signatures and docstrings.
Delivery is one-way: a DetectionSource holds an ObservationSink and pushes
into it; nothing downstream keeps a reference back to the source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from schemas import Rect


class ObservationSink(ABC):
    """
    Receiver of detector and viewport signals.

    Responsibility:
      - Accept signals from any thread.
      - Apply them to the session in arrival order.
    """

    @abstractmethod
    def on_no_face(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_geometry(self, bounding_box: Rect, roll: float, pitch: float, yaw: float) -> None:
        """Primary face found: box in preview coordinates, pose in radians."""
        raise NotImplementedError

    @abstractmethod
    def on_quality(self, score: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_smile(self, detected: bool) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_geometry_error(self, reason: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_quality_error(self, reason: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_smile_error(self, reason: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_viewport_resized(self, rect: Rect) -> None:
        raise NotImplementedError

    @abstractmethod
    def on_debug_toggle_requested(self) -> None:
        raise NotImplementedError


class DetectionSource(ABC):
    """
    Camera + detector front end.

    Responsibility:
      - Run inference wherever it likes (own thread / process).
      - Marshal every completed measurement into the sink; never touch
        session state directly.
    """

    @abstractmethod
    def run(self, sink: ObservationSink) -> None:
        """Produce observations into `sink` until exhausted or stopped."""
        raise NotImplementedError

    def stop(self) -> None:
        """Ask a running source to stop early. Default: nothing to do."""
        return None
