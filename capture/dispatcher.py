from __future__ import annotations

import logging
import queue
import threading
from functools import partial
from typing import Callable, Dict, List, Optional

from core.interfaces import ObservationSink
from core.session_metrics import MetricsCollector
from core.timers import ThreadingTimerScheduler, TimerHandle, TimerScheduler
from schemas import (
    Action,
    CancelGraceTimer,
    CloseSession,
    DebugToggled,
    Effect,
    GeometryObservation,
    GeometryObserved,
    GracePeriodElapsed,
    NoFaceDetected,
    Observation,
    QualityObservation,
    QualityObserved,
    Rect,
    ReleaseShutter,
    ReportObservationError,
    SmileObservation,
    SmileObserved,
    StartGraceTimer,
    ValidationState,
    ViewportResized,
)

from .aggregator import ValidityAggregator

logger = logging.getLogger(__name__)

StateListener = Callable[[ValidationState], None]


class _Stop:
    pass


class _Barrier:
    def __init__(self) -> None:
        self.reached = threading.Event()


_STOP = _Stop()


class EventDispatcher(ObservationSink):
    """
    Serialized single-writer channel in front of a ValidityAggregator.

    Any thread may call the on_* methods or submit(); every action goes
    into one FIFO queue and is applied to the aggregator one at a time, in
    arrival order, either by:
      - the worker thread started with start(), or
      - drain(), called synchronously by the owner when no worker runs
        (scripted replays, tests).

    The grace timer callback does not touch state either: it only submits
    GracePeriodElapsed into the same queue, so a timer fire and an
    invalidation can never interleave.

    Usage:
        dispatcher = EventDispatcher(ValidityAggregator())
        dispatcher.subscribe(render)
        dispatcher.start()
        dispatcher.on_geometry(box, roll, pitch, yaw)   # from inference thread
        ...
        dispatcher.close()
    """

    def __init__(
        self,
        aggregator: ValidityAggregator,
        scheduler: Optional[TimerScheduler] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> None:
        self._aggregator = aggregator
        self._scheduler = scheduler or ThreadingTimerScheduler()
        self._metrics = metrics_collector

        self._queue: "queue.Queue" = queue.Queue()
        self._apply_lock = threading.Lock()
        self._accepting = True
        self._accept_lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._applying_thread: Optional[int] = None

        self._timers: Dict[int, TimerHandle] = {}
        self._listeners: List[StateListener] = []
        self._shutter_listeners: List[StateListener] = []

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------
    def snapshot(self) -> ValidationState:
        """Current state. Immutable, so safe to keep for a whole render pass."""
        return self._aggregator.state

    def subscribe(self, listener: StateListener) -> None:
        """
        Call `listener(state)` on the writer thread after every change.

        Listeners must not call drain() or flush(); doing so raises
        RuntimeError (logged, like any listener error).
        """
        self._listeners.append(listener)

    def on_shutter(self, listener: StateListener) -> None:
        """Call `listener(state)` each time success turns true."""
        self._shutter_listeners.append(listener)

    @property
    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    @property
    def is_closed(self) -> bool:
        return not self._accepting

    # ------------------------------------------------------------------
    # Inbound (ObservationSink)
    # ------------------------------------------------------------------
    def on_no_face(self) -> None:
        self.submit(NoFaceDetected())

    def on_geometry(self, bounding_box: Rect, roll: float, pitch: float, yaw: float) -> None:
        geo = GeometryObservation(
            bounding_box=bounding_box,
            roll=float(roll),
            pitch=float(pitch),
            yaw=float(yaw),
        )
        self.submit(GeometryObserved(Observation.found(geo)))

    def on_quality(self, score: float) -> None:
        self.submit(QualityObserved(Observation.found(QualityObservation(quality=float(score)))))

    def on_smile(self, detected: bool) -> None:
        self.submit(SmileObserved(Observation.found(SmileObservation(smile_detected=bool(detected)))))

    def on_geometry_error(self, reason: str) -> None:
        self.submit(GeometryObserved(Observation.errored(reason)))

    def on_quality_error(self, reason: str) -> None:
        self.submit(QualityObserved(Observation.errored(reason)))

    def on_smile_error(self, reason: str) -> None:
        self.submit(SmileObserved(Observation.errored(reason)))

    def on_viewport_resized(self, rect: Rect) -> None:
        self.submit(ViewportResized(rect))

    def on_debug_toggle_requested(self) -> None:
        self.submit(DebugToggled())

    def submit(self, action: Action) -> bool:
        """
        Enqueue an action. Thread-safe.

        Returns False (and drops the action) once the session is closed.
        """
        with self._accept_lock:
            if not self._accepting:
                logger.debug("Dropping %s: session closed", type(action).__name__)
                return False
            self._queue.put(action)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the writer thread."""
        if self.is_running:
            return
        if not self._accepting:
            raise RuntimeError("Cannot start a closed dispatcher")
        self._worker = threading.Thread(
            target=self._run,
            name="passguard-dispatcher",
            daemon=True,
        )
        self._worker.start()
        logger.info("EventDispatcher worker started")

    def drain(self) -> int:
        """
        Apply every queued action on the calling thread.

        Only meaningful when no worker thread runs. Returns the number of
        actions applied.
        """
        self._check_not_in_listener("drain")
        if self.is_running:
            raise RuntimeError("drain() called while the worker thread is running")
        applied = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if isinstance(item, _Barrier):
                item.reached.set()
                continue
            if isinstance(item, _Stop):
                continue
            self._process(item)
            applied += 1
        return applied

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until everything queued before this call has been applied.

        In synchronous mode this simply drains.
        """
        self._check_not_in_listener("flush")
        if not self.is_running:
            self.drain()
            return True
        barrier = _Barrier()
        self._queue.put(barrier)
        return barrier.reached.wait(timeout)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """
        Tear down the session.

        CloseSession goes through the queue like any other action, so
        everything submitted earlier is still applied first. Pending timers
        are cancelled; later submissions (including late timer fires) are
        dropped.
        """
        with self._accept_lock:
            if not self._accepting:
                return
            self._queue.put(CloseSession())
            self._accepting = False

        if self.is_running:
            self._queue.put(_STOP)
            assert self._worker is not None
            self._worker.join(timeout)
            if self._worker.is_alive():
                logger.warning("EventDispatcher worker did not stop within %.1fs", timeout or 0.0)
        else:
            self.drain()

        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        if self._metrics is not None:
            self._metrics.maybe_emit(force=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if isinstance(item, _Stop):
                break
            if isinstance(item, _Barrier):
                item.reached.set()
                continue
            try:
                self._process(item)
            except Exception:
                logger.exception("Failed to apply %r", item)

    def _check_not_in_listener(self, name: str) -> None:
        if self._applying_thread == threading.get_ident():
            raise RuntimeError(f"{name}() called from inside a state listener")

    def _process(self, action: Action) -> None:
        with self._apply_lock:
            self._applying_thread = threading.get_ident()
            try:
                self._apply(action)
            finally:
                self._applying_thread = None

    def _apply(self, action: Action) -> None:
        before = self._aggregator.state
        transition = self._aggregator.apply(action)
        after = transition.state

        if self._metrics is not None:
            self._metrics.record(action, before, after, transition.effects)

        if isinstance(action, GracePeriodElapsed):
            self._timers.pop(action.token, None)

        for effect in transition.effects:
            self._run_effect(effect)

        if after != before:
            self._notify(self._listeners, after)

        if self._metrics is not None:
            self._metrics.maybe_emit()

    def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, StartGraceTimer):
            callback = partial(self.submit, GracePeriodElapsed(effect.token))
            self._timers[effect.token] = self._scheduler.call_later(effect.delay_sec, callback)
        elif isinstance(effect, CancelGraceTimer):
            handle = self._timers.pop(effect.token, None)
            if handle is not None:
                handle.cancel()
        elif isinstance(effect, ReleaseShutter):
            logger.info("Shutter released")
            self._notify(self._shutter_listeners, effect.state)
        elif isinstance(effect, ReportObservationError):
            logger.warning("Detector error (%s): %s", effect.kind, effect.reason)

    def _notify(self, listeners: List[StateListener], state: ValidationState) -> None:
        for listener in list(listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r raised", listener)
