"""
face/__init__.py

Photo-standard checks applied to single face measurements.
"""

from .policy import (
    PhotoStandardThresholds,
    PoseVerdict,
    DEFAULT_THRESHOLDS,
    classify_bounds,
    classify_pose,
    classify_quality,
)

__all__ = [
    "PhotoStandardThresholds",
    "PoseVerdict",
    "DEFAULT_THRESHOLDS",
    "classify_bounds",
    "classify_pose",
    "classify_quality",
]
