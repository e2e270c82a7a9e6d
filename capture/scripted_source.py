"""
capture/scripted_source.py

Detection source that replays a recorded / hand-written timeline.

Timeline format (YAML list, or a mapping with an `events` list):

    - {t: 0.0, event: resize, rect: [0, 0, 400, 600]}
    - {t: 0.1, event: geometry, box: [100, 150, 200, 300], roll: 1.4, pitch: 0.0, yaw: 0.0}
    - {t: 0.1, event: quality, score: 0.6}
    - {t: 2.5, event: smile, detected: true}
    - {t: 3.0, event: no_face}
    - {t: 3.1, event: error, kind: quality, reason: "decoder failed"}
    - {t: 4.0, event: toggle_debug}

Entries are replayed in time order (stable for equal `t`). The source only
talks to an ObservationSink; how time passes between entries is decided by
the `wait_until` callable (wall clock by default, simulated clock for
headless replays).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import yaml

from core.interfaces import DetectionSource, ObservationSink
from schemas import Rect

logger = logging.getLogger(__name__)

EVENT_KINDS = ("no_face", "geometry", "quality", "smile", "error", "resize", "toggle_debug")
ERROR_KINDS = ("geometry", "quality", "smile")


class ScriptError(ValueError):
    """Malformed timeline entry."""


@dataclass(frozen=True)
class ScriptEvent:
    t: float
    kind: str
    payload: Dict[str, Any] = field(default_factory=dict)


def parse_events(raw: Iterable[Dict[str, Any]]) -> List[ScriptEvent]:
    """Validate raw timeline entries and return them sorted by time."""
    events: List[ScriptEvent] = []
    for idx, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ScriptError(f"Entry #{idx} must be a mapping, got: {type(entry).__name__}")
        data = dict(entry)
        kind = data.pop("event", None)
        if kind not in EVENT_KINDS:
            raise ScriptError(f"Entry #{idx}: unknown event {kind!r} (allowed: {', '.join(EVENT_KINDS)})")
        try:
            t = float(data.pop("t", 0.0))
        except (TypeError, ValueError) as e:
            raise ScriptError(f"Entry #{idx}: bad time value: {e}") from e
        if t < 0:
            raise ScriptError(f"Entry #{idx}: negative time {t}")

        _validate_payload(idx, kind, data)
        events.append(ScriptEvent(t=t, kind=kind, payload=data))

    events.sort(key=lambda e: e.t)
    return events


def _validate_payload(idx: int, kind: str, data: Dict[str, Any]) -> None:
    def require(name: str) -> Any:
        if name not in data:
            raise ScriptError(f"Entry #{idx} ({kind}): missing '{name}'")
        return data[name]

    try:
        if kind == "geometry":
            Rect.from_xywh(require("box"))
            for axis in ("roll", "pitch", "yaw"):
                float(data.get(axis, 0.0))
        elif kind == "resize":
            Rect.from_xywh(require("rect"))
        elif kind == "quality":
            float(require("score"))
        elif kind == "smile":
            if not isinstance(require("detected"), bool):
                raise ScriptError(f"Entry #{idx} (smile): 'detected' must be true or false")
        elif kind == "error":
            if require("kind") not in ERROR_KINDS:
                raise ScriptError(
                    f"Entry #{idx}: error kind must be one of {', '.join(ERROR_KINDS)}"
                )
    except ScriptError:
        raise
    except (TypeError, ValueError) as e:
        raise ScriptError(f"Entry #{idx} ({kind}): {e}") from e


def load_script(path: Union[str, Path]) -> List[ScriptEvent]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Script file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or []

    if isinstance(raw, dict):
        raw = raw.get("events", []) or []
    if not isinstance(raw, list):
        raise ScriptError(f"Script root must be a list or a mapping with 'events', got: {type(raw)}")

    events = parse_events(raw)
    logger.info("Loaded %d scripted events from %s", len(events), path)
    return events


def _wall_clock_waiter() -> Callable[[float], None]:
    start = time.monotonic()

    def wait_until(t: float) -> None:
        delay = start + t - time.monotonic()
        if delay > 0:
            time.sleep(delay)

    return wait_until


class ScriptedDetectionSource(DetectionSource):
    """
    Replays ScriptEvents into an ObservationSink.

    wait_until : callable(t) -> None
        Blocks (or advances a simulated clock) until timeline time `t`.
        Defaults to real time measured from the start of run().
    end_time : float or None
        Keep the clock running until this time after the last event, so
        trailing timers get a chance to fire.
    """

    def __init__(
        self,
        events: Iterable[ScriptEvent],
        wait_until: Optional[Callable[[float], None]] = None,
        end_time: Optional[float] = None,
    ) -> None:
        self._events = sorted(events, key=lambda e: e.t)
        self._wait_until = wait_until
        self._end_time = end_time
        self._stop = threading.Event()

    @classmethod
    def from_file(cls, path: Union[str, Path], **kw) -> "ScriptedDetectionSource":
        return cls(load_script(path), **kw)

    @property
    def events(self) -> List[ScriptEvent]:
        return list(self._events)

    def stop(self) -> None:
        self._stop.set()

    def run(self, sink: ObservationSink) -> None:
        wait_until = self._wait_until or _wall_clock_waiter()

        for ev in self._events:
            if self._stop.is_set():
                logger.info("Scripted source stopped early at t=%.2f", ev.t)
                return
            wait_until(ev.t)
            self._emit(sink, ev)

        if self._end_time is not None and not self._stop.is_set():
            wait_until(self._end_time)

    @staticmethod
    def _emit(sink: ObservationSink, ev: ScriptEvent) -> None:
        p = ev.payload
        logger.debug("t=%.2f %s %s", ev.t, ev.kind, p)

        if ev.kind == "no_face":
            sink.on_no_face()
        elif ev.kind == "geometry":
            sink.on_geometry(
                Rect.from_xywh(p["box"]),
                float(p.get("roll", 0.0)),
                float(p.get("pitch", 0.0)),
                float(p.get("yaw", 0.0)),
            )
        elif ev.kind == "quality":
            sink.on_quality(float(p["score"]))
        elif ev.kind == "smile":
            sink.on_smile(bool(p["detected"]))
        elif ev.kind == "error":
            reason = str(p.get("reason", "detector error"))
            if p["kind"] == "geometry":
                sink.on_geometry_error(reason)
            elif p["kind"] == "quality":
                sink.on_quality_error(reason)
            else:
                sink.on_smile_error(reason)
        elif ev.kind == "resize":
            sink.on_viewport_resized(Rect.from_xywh(p["rect"]))
        elif ev.kind == "toggle_debug":
            sink.on_debug_toggle_requested()
