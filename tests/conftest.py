import logging

import pytest

from capture.aggregator import ValidityAggregator
from capture.dispatcher import EventDispatcher
from core.config import Config
from core.session_metrics import MetricsCollector
from core.timers import ManualTimerScheduler
from face.policy import PhotoStandardThresholds
from schemas import (
    GeometryObservation,
    GeometryObserved,
    Observation,
    QualityObservation,
    QualityObserved,
    Rect,
    SmileObservation,
    SmileObserved,
)

# Default guide: (0, 0, 200, 300), centre (100, 150).
GUIDE = Rect(0.0, 0.0, 200.0, 300.0)
GOOD_ROLL = 1.4


@pytest.fixture
def logger():
    return logging.getLogger("passguard.tests")


@pytest.fixture
def test_config():
    return Config()


@pytest.fixture
def thresholds():
    return PhotoStandardThresholds()


@pytest.fixture
def metrics_collector():
    return MetricsCollector(interval_sec=3600.0)


@pytest.fixture
def scheduler():
    return ManualTimerScheduler()


@pytest.fixture
def aggregator():
    return ValidityAggregator(grace_period_sec=2.0)


@pytest.fixture
def dispatcher(aggregator, scheduler, metrics_collector):
    d = EventDispatcher(aggregator, scheduler=scheduler, metrics_collector=metrics_collector)
    yield d
    d.close()


@pytest.fixture
def guide():
    return GUIDE


@pytest.fixture
def good_box():
    """Same size and centre as the default guide."""
    return Rect(0.0, 0.0, 200.0, 300.0)


@pytest.fixture
def good_geometry(good_box):
    return GeometryObserved(Observation.found(GeometryObservation(good_box, roll=GOOD_ROLL, pitch=0.0, yaw=0.0)))


@pytest.fixture
def make_geometry(good_box):
    def _make(box=None, roll=GOOD_ROLL, pitch=0.0, yaw=0.0):
        return GeometryObserved(
            Observation.found(GeometryObservation(box or good_box, roll=roll, pitch=pitch, yaw=yaw))
        )
    return _make


@pytest.fixture
def make_quality():
    def _make(score=0.5):
        return QualityObserved(Observation.found(QualityObservation(quality=score)))
    return _make


@pytest.fixture
def make_smile():
    def _make(detected=True):
        return SmileObserved(Observation.found(SmileObservation(smile_detected=detected)))
    return _make


@pytest.fixture
def run_until(dispatcher, scheduler):
    """Apply queued actions, move the simulated clock to `t`, apply what the timers posted."""
    def _run_until(t):
        dispatcher.drain()
        scheduler.advance_to(t)
        dispatcher.drain()
        return dispatcher.snapshot()
    return _run_until
