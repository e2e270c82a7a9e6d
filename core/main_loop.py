from __future__ import annotations

import argparse
import logging
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from capture.aggregator import ValidityAggregator
from capture.dispatcher import EventDispatcher
from capture.scripted_source import ScriptedDetectionSource, ScriptEvent, load_script
from schemas import ValidationState

from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .logging_setup import setup_logging
from .session_metrics import MetricsCollector
from .timers import ManualTimerScheduler, ThreadingTimerScheduler, TimerScheduler

log = logging.getLogger("passguard.main")

WINDOW_TITLE = "PassGuard - passport photo capture"
ESC_KEY = 27
# realtime replays: how long past the end of the timeline a pending grace timer may still fire
TIMER_SLACK_SEC = 0.5


def build_session(
    cfg: Config,
    scheduler: Optional[TimerScheduler] = None,
    metrics: Optional[MetricsCollector] = None,
) -> EventDispatcher:
    """Wire aggregator + dispatcher for one capture session."""
    aggregator = ValidityAggregator.from_config(cfg)
    return EventDispatcher(aggregator, scheduler=scheduler, metrics_collector=metrics)


class _Display:
    """cv2 window showing the overlay for the latest snapshot."""

    def __init__(self, cfg: Config) -> None:
        import cv2

        from ui.overlay import blank_canvas, draw_overlay

        self._cv2 = cv2
        self._draw = draw_overlay
        self._canvas = blank_canvas(cfg.session.viewport_width, cfg.session.viewport_height)

    def show(self, state: ValidationState, wait_ms: int = 1) -> int:
        img = self._draw(self._canvas, state)
        self._cv2.imshow(WINDOW_TITLE, img)
        return self._cv2.waitKey(wait_ms) & 0xFF

    def close(self) -> None:
        self._cv2.destroyAllWindows()


def _await_pending_timer(dispatcher: EventDispatcher, timeout: float) -> bool:
    """
    Give a grace timer armed just before the end of a realtime replay the
    chance to fire before the session is closed.

    The timer is started by the worker slightly after the event that made
    the face valid, so with tail == grace period it is due just after the
    timeline ends. Returns False if it is still pending after `timeout`.
    """
    deadline = time.monotonic() + timeout
    while dispatcher.snapshot().grace_timer_active:
        if time.monotonic() >= deadline:
            log.debug("Grace timer still pending after %.2fs; closing anyway", timeout)
            return False
        time.sleep(0.01)
    return True


def _simulated_waiter(
    dispatcher: EventDispatcher,
    scheduler: ManualTimerScheduler,
    on_step: Optional[Callable[[], None]] = None,
) -> Callable[[float], None]:
    def wait_until(t: float) -> None:
        # apply what was emitted so far before time moves on, so timers it
        # starts are due relative to the right instant
        dispatcher.drain()
        scheduler.advance_to(max(t, scheduler.now()))
        dispatcher.drain()
        if on_step is not None:
            on_step()

    return wait_until


def run_script(
    cfg: Config,
    events: List[ScriptEvent],
    realtime: bool = False,
    display: bool = False,
    tail_sec: Optional[float] = None,
) -> List[ValidationState]:
    """
    Replay a timeline through a fresh session.

    Returns the snapshots captured at each shutter release.
    """
    metrics = MetricsCollector(interval_sec=cfg.runtime.metrics_every_sec) if cfg.runtime.log_metrics else None
    if tail_sec is None:
        tail_sec = float(cfg.session.grace_period_sec)
    end_time = (events[-1].t if events else 0.0) + tail_sec

    releases: List[ValidationState] = []
    viewer = _Display(cfg) if display else None

    if realtime:
        dispatcher = build_session(cfg, scheduler=ThreadingTimerScheduler(), metrics=metrics)
        dispatcher.on_shutter(releases.append)
        dispatcher.start()
        source = ScriptedDetectionSource(events, end_time=end_time)

        feeder = threading.Thread(target=source.run, args=(dispatcher,), name="scripted-source", daemon=True)
        feeder.start()
        try:
            while feeder.is_alive():
                if viewer is not None:
                    key = viewer.show(dispatcher.snapshot(), wait_ms=30)
                    if key == ESC_KEY:
                        source.stop()
                        break
                    if key == ord("d"):
                        dispatcher.on_debug_toggle_requested()
                else:
                    feeder.join(0.1)
            feeder.join()
            dispatcher.flush(timeout=5.0)
            _await_pending_timer(dispatcher, TIMER_SLACK_SEC)
            dispatcher.flush(timeout=5.0)
        finally:
            dispatcher.close()
            if viewer is not None:
                viewer.close()
    else:
        scheduler = ManualTimerScheduler()
        dispatcher = build_session(cfg, scheduler=scheduler, metrics=metrics)
        dispatcher.on_shutter(releases.append)

        on_step = None
        if viewer is not None:
            on_step = lambda: viewer.show(dispatcher.snapshot(), wait_ms=200)

        source = ScriptedDetectionSource(
            events,
            wait_until=_simulated_waiter(dispatcher, scheduler, on_step),
            end_time=end_time,
        )
        try:
            source.run(dispatcher)
            dispatcher.drain()
        finally:
            dispatcher.close()
            if viewer is not None:
                viewer.close()

    final = dispatcher.snapshot()
    log.info("Final state: %s", final.to_dict())
    log.info("Shutter released %d time(s)", len(releases))
    return releases


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="passguard",
        description="Replay a detector timeline through the passport-photo validation session.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="YAML config (default: %(default)s)",
    )
    parser.add_argument(
        "--script",
        type=Path,
        required=True,
        help="YAML timeline of detector events",
    )
    parser.add_argument(
        "--realtime",
        action="store_true",
        help="Replay on the wall clock with a worker thread instead of a simulated clock",
    )
    parser.add_argument(
        "--display",
        action="store_true",
        help="Show the overlay in an OpenCV window (ESC quits, 'd' toggles debug)",
    )
    parser.add_argument(
        "--tail",
        type=float,
        default=None,
        help="Seconds to keep running after the last event (default: grace period)",
    )
    parser.add_argument("--log-level", default=None, help="Override runtime.log_level")
    return parser.parse_args(argv)


def run(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point.

    Exit code 0 when the shutter was released at least once, 1 otherwise.
    """
    args = parse_args(argv)

    cfg = load_config(args.config)
    setup_logging(cfg.paths.logs_dir, args.log_level or cfg.runtime.log_level)

    events = load_script(args.script)
    releases = run_script(
        cfg,
        events,
        realtime=args.realtime,
        display=args.display,
        tail_sec=args.tail,
    )
    return 0 if releases else 1


if __name__ == "__main__":
    raise SystemExit(run())
