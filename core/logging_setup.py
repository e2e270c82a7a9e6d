"""
core/logging_setup.py

Central logging configuration.
Writes to console and to a log file under logs_dir.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union


def parse_level(level: Union[int, str]) -> int:
    """Accept 10 / "DEBUG" / "debug" style levels (YAML gives strings)."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def setup_logging(
    logs_dir: Optional[Union[str, Path]],
    level: Union[int, str] = logging.INFO,
) -> None:
    """
    Initialise root logging for PassGuard.

    Parameters
    ----------
    logs_dir : str, Path or None
        Directory where the main passguard.log file will be written.
        Accepts both plain strings (from YAML) and Path objects.
        None logs to the console only.
    level : int or str
        Logging level for the root logger (default: INFO).
    """
    root = logging.getLogger()
    if root.handlers:
        for h in list(root.handlers):
            root.removeHandler(h)

    root.setLevel(parse_level(level))

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)

    if logs_dir is None:
        return

    logs_path = Path(logs_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    log_file = logs_path / "passguard.log"

    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)
