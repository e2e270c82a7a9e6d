"""
Session Metrics Collection

Collects structured counts of everything the validation session sees:
- Observations per kind (geometry / quality / smile / no_face) and status
- Detector errors per kind
- Validity gained / lost
- Grace timers started / cancelled / fired
- Smiles ignored while the face was not valid
- Shutter releases

Designed for:
1. Real-time monitoring (periodic summary log line)
2. Post-hoc tuning of the photo-standard thresholds
3. Debugging detectors that error or flap
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from schemas import (
    Action,
    CancelGraceTimer,
    Effect,
    GeometryObserved,
    GracePeriodElapsed,
    NoFaceDetected,
    QualityObserved,
    ReleaseShutter,
    ReportObservationError,
    SmileObserved,
    StartGraceTimer,
    ValidationState,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionMetrics:
    """
    Accumulator for one emission interval.

    Reset after each emission.
    """
    timestamp: float = field(default_factory=lambda: time.time())

    observation_counts: Dict[str, int] = field(default_factory=dict)
    error_counts: Dict[str, int] = field(default_factory=dict)

    validity_gained: int = 0
    validity_lost: int = 0

    timers_started: int = 0
    timers_cancelled: int = 0
    timers_fired: int = 0
    stale_timer_fires: int = 0

    smiles_ignored: int = 0
    shutter_releases: int = 0

    def record_observation(self, kind: str, status: str) -> None:
        key = f"{kind}:{status}"
        self.observation_counts[key] = self.observation_counts.get(key, 0) + 1

    def record_error(self, kind: str) -> None:
        self.error_counts[kind] = self.error_counts.get(kind, 0) + 1

    def record_transition(
        self,
        action: Action,
        before: ValidationState,
        after: ValidationState,
        effects: Iterable[Effect],
    ) -> None:
        """Fold one applied action (and what it caused) into the counters."""
        if isinstance(action, NoFaceDetected):
            self.record_observation("no_face", "NOT_FOUND")
        elif isinstance(action, GeometryObserved):
            self.record_observation("geometry", action.observation.status.value)
        elif isinstance(action, QualityObserved):
            self.record_observation("quality", action.observation.status.value)
        elif isinstance(action, SmileObserved):
            self.record_observation("smile", action.observation.status.value)
            if not before.has_valid_face and not before.closed:
                self.smiles_ignored += 1
        elif isinstance(action, GracePeriodElapsed):
            if after.smile_permitted and not before.smile_permitted:
                self.timers_fired += 1
            else:
                self.stale_timer_fires += 1

        if after.has_valid_face and not before.has_valid_face:
            self.validity_gained += 1
        elif before.has_valid_face and not after.has_valid_face:
            self.validity_lost += 1

        for effect in effects:
            if isinstance(effect, StartGraceTimer):
                self.timers_started += 1
            elif isinstance(effect, CancelGraceTimer):
                self.timers_cancelled += 1
            elif isinstance(effect, ReleaseShutter):
                self.shutter_releases += 1
            elif isinstance(effect, ReportObservationError):
                self.record_error(effect.kind)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for logging/telemetry"""
        return {
            "timestamp": self.timestamp,
            "observations": dict(self.observation_counts),
            "errors": dict(self.error_counts),
            "validity": {
                "gained": self.validity_gained,
                "lost": self.validity_lost,
            },
            "timers": {
                "started": self.timers_started,
                "cancelled": self.timers_cancelled,
                "fired": self.timers_fired,
                "stale": self.stale_timer_fires,
            },
            "smiles_ignored": self.smiles_ignored,
            "shutter_releases": self.shutter_releases,
        }

    def reset(self) -> None:
        """Reset all counters (called after each emission)"""
        self.timestamp = time.time()
        self.observation_counts.clear()
        self.error_counts.clear()
        self.validity_gained = 0
        self.validity_lost = 0
        self.timers_started = 0
        self.timers_cancelled = 0
        self.timers_fired = 0
        self.stale_timer_fires = 0
        self.smiles_ignored = 0
        self.shutter_releases = 0


class MetricsCollector:
    """
    Metrics collector with thread-safe emission.

    Usage:
        collector = MetricsCollector(interval_sec=5.0)

        # Record events (dispatcher does this for every applied action)
        collector.record(action, before, after, effects)

        # Periodic emission
        collector.maybe_emit()
    """

    def __init__(self, interval_sec: float = 5.0):
        self.metrics = SessionMetrics()
        self.interval_sec = interval_sec
        self.last_emit_time = time.time()
        self._lock = threading.Lock()

    def record(
        self,
        action: Action,
        before: ValidationState,
        after: ValidationState,
        effects: Iterable[Effect],
    ) -> None:
        with self._lock:
            self.metrics.record_transition(action, before, after, effects)

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self.metrics.to_dict()

    def maybe_emit(self, force: bool = False) -> bool:
        """
        Check if it's time to emit metrics.

        Returns True if emitted, False otherwise.
        """
        now = time.time()
        if not force and now - self.last_emit_time < self.interval_sec:
            return False

        with self._lock:
            m = self.metrics
            logger.info(
                "Session Metrics: observations=%s | errors=%s | valid +%d/-%d | "
                "timers start=%d cancel=%d fire=%d stale=%d | smiles_ignored=%d | shutter=%d",
                dict(m.observation_counts),
                dict(m.error_counts),
                m.validity_gained,
                m.validity_lost,
                m.timers_started,
                m.timers_cancelled,
                m.timers_fired,
                m.stale_timer_fires,
                m.smiles_ignored,
                m.shutter_releases,
            )
            logger.debug("Session Metrics (JSON): %s", m.to_dict())
            m.reset()
            self.last_emit_time = now
        return True

