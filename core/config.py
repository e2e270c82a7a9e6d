from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

from face.policy import (
    BOUNDS_SCALE_TOLERANCE,
    CENTRE_OFFSET_TOLERANCE,
    PITCH_MAX,
    QUALITY_MIN,
    ROLL_MAX,
    ROLL_MIN,
    YAW_MAX,
    PhotoStandardThresholds,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


@dataclass
class ThresholdsConfig:
    """Photo-standard tolerances (see face/policy.py for semantics)."""
    bounds_scale_tolerance: float = BOUNDS_SCALE_TOLERANCE
    centre_offset_tolerance: float = CENTRE_OFFSET_TOLERANCE
    roll_min: float = ROLL_MIN
    roll_max: float = ROLL_MAX
    pitch_max: float = PITCH_MAX
    yaw_max: float = YAW_MAX
    quality_min: float = QUALITY_MIN

    def to_policy(self) -> PhotoStandardThresholds:
        return PhotoStandardThresholds(
            bounds_scale_tolerance=float(self.bounds_scale_tolerance),
            centre_offset_tolerance=float(self.centre_offset_tolerance),
            roll_min=float(self.roll_min),
            roll_max=float(self.roll_max),
            pitch_max=float(self.pitch_max),
            yaw_max=float(self.yaw_max),
            quality_min=float(self.quality_min),
        )


@dataclass
class SessionConfig:
    """
    Capture session behaviour.

    grace_period_sec : float
        How long a valid face must hold before a smile is accepted.
    debug_enabled : bool
        Initial state of the debug overlay toggle.
    layout_guide_width / layout_guide_height : float
        Size of the target rectangle the face should fill.
    viewport_width / viewport_height : int
        Canvas size used by headless replays.
    """
    grace_period_sec: float = 2.0
    debug_enabled: bool = False
    layout_guide_width: float = 200.0
    layout_guide_height: float = 300.0
    viewport_width: int = 400
    viewport_height: int = 600


@dataclass
class PathsConfig:
    logs_dir: str = "logs"


@dataclass
class RuntimeConfig:
    log_level: str = "INFO"
    metrics_every_sec: float = 5.0
    log_metrics: bool = True


@dataclass
class Config:
    thresholds: ThresholdsConfig = field(default_factory=ThresholdsConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)


def _update_dataclass_from_dict(obj: Any, data: Dict[str, Any]) -> Any:
    """
    Assign only known fields from dict into dataclass instance.
    Unknown keys in YAML are ignored (backwards-compatible).
    """
    known = {f.name for f in fields(obj)} if is_dataclass(obj) else set()
    for k, v in data.items():
        if k in known:
            setattr(obj, k, v)
        else:
            logger.debug("Ignoring unknown config key %s.%s", type(obj).__name__, k)
    return obj


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    data = raw.get(name, {}) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{name}' must be a dict, got: {type(data)}")
    return data


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Map an already-parsed YAML mapping onto Config."""
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a dict, got: {type(raw)}")

    cfg = Config(
        thresholds=_update_dataclass_from_dict(ThresholdsConfig(), _section(raw, "thresholds")),
        session=_update_dataclass_from_dict(SessionConfig(), _section(raw, "session")),
        paths=_update_dataclass_from_dict(PathsConfig(), _section(raw, "paths")),
        runtime=_update_dataclass_from_dict(RuntimeConfig(), _section(raw, "runtime")),
    )

    t = cfg.thresholds
    if not float(t.roll_min) < float(t.roll_max):
        raise ValueError(f"thresholds.roll_min ({t.roll_min}) must be below roll_max ({t.roll_max})")
    if float(cfg.session.grace_period_sec) < 0:
        raise ValueError(f"session.grace_period_sec must be >= 0, got {cfg.session.grace_period_sec}")

    return cfg


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load YAML config and map it to our dataclasses.

    This function is the single source of truth for all configuration sections:
      - cfg.thresholds
      - cfg.session
      - cfg.paths
      - cfg.runtime
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    cfg = config_from_dict(raw)

    logger.info(
        "Config loaded from %s | grace=%.2fs debug=%s guide=%.0fx%.0f | "
        "roll=(%.2f, %.2f) pitch<%.2f yaw<%.2f quality>=%.2f",
        path,
        cfg.session.grace_period_sec,
        cfg.session.debug_enabled,
        cfg.session.layout_guide_width,
        cfg.session.layout_guide_height,
        cfg.thresholds.roll_min,
        cfg.thresholds.roll_max,
        cfg.thresholds.pitch_max,
        cfg.thresholds.yaw_max,
        cfg.thresholds.quality_min,
    )
    return cfg
