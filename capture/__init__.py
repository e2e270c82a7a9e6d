"""
capture/__init__.py

Face-validation session: the validity reducer, its single-writer
dispatcher, and a scripted detection source for replays.
"""

from .aggregator import (
    GRACE_PERIOD_SEC,
    Transition,
    ValidityAggregator,
    is_valid_face,
    reduce,
)
from .dispatcher import EventDispatcher
from .scripted_source import (
    ScriptError,
    ScriptEvent,
    ScriptedDetectionSource,
    load_script,
    parse_events,
)

__all__ = [
    "GRACE_PERIOD_SEC",
    "Transition",
    "ValidityAggregator",
    "is_valid_face",
    "reduce",
    "EventDispatcher",
    "ScriptError",
    "ScriptEvent",
    "ScriptedDetectionSource",
    "load_script",
    "parse_events",
]
