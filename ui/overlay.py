"""
ui/overlay.py

Capture-guide overlay.

Responsibilities:
  - draw the layout guide as an ellipse (green when the face is valid,
    red otherwise)
  - render the instruction prompt at the top of the frame
  - when debug is enabled:
      * yellow face bounding box from the latest geometry observation
      * red rectangle for the raw layout guide frame
      * R / P / Y / Q readouts, green when passing, red when failing,
        or an ERROR line when the detector failed

The overlay only reads a ValidationState snapshot; it never changes it.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import cv2
import numpy as np

from schemas import Observation, ValidationState

from .instructions import instruction_for

GREEN = (0, 200, 0)
RED = (0, 0, 255)
YELLOW = (0, 255, 255)
WHITE = (255, 255, 255)

DebugLine = Tuple[str, Tuple[int, int, int]]


def blank_canvas(width: int, height: int, shade: int = 40) -> np.ndarray:
    """Plain BGR frame for headless replays (no camera)."""
    return np.full((int(height), int(width), 3), shade, dtype=np.uint8)


def _status_color(passing: bool) -> Tuple[int, int, int]:
    return GREEN if passing else RED


def _observation_lines(
    obs: Observation,
    label_fn,
) -> List[DebugLine]:
    if obs.is_errored:
        return [(f"ERROR: {obs.reason}", WHITE)]
    if not obs.is_found or obs.value is None:
        return []
    return label_fn(obs.value)


def debug_lines(state: ValidationState) -> List[DebugLine]:
    """Readouts for the debug panel, in display order."""
    lines: List[DebugLine] = []

    lines += _observation_lines(
        state.last_geometry,
        lambda g: [
            (f"R: {g.roll:.3f}", _status_color(state.acceptable_roll)),
            (f"P: {g.pitch:.3f}", _status_color(state.acceptable_pitch)),
            (f"Y: {g.yaw:.3f}", _status_color(state.acceptable_yaw)),
        ],
    )
    lines += _observation_lines(
        state.last_quality,
        lambda q: [(f"Q: {q.quality:.3f}", _status_color(state.acceptable_quality))],
    )
    return lines


def _draw_prompt(img: np.ndarray, text: str) -> None:
    h, w = img.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX
    font_scale = 0.6
    thickness = 2

    (tw, th), baseline = cv2.getTextSize(text, font, font_scale, thickness)
    x = max((w - tw) // 2, 5)
    y = th + baseline + 10

    cv2.rectangle(
        img,
        (x - 4, y - th - baseline),
        (x + tw + 4, y + baseline),
        (0, 0, 0),
        thickness=-1,
    )
    cv2.putText(img, text, (x, y), font, font_scale, WHITE, thickness, lineType=cv2.LINE_AA)


def draw_overlay(
    frame: np.ndarray,
    state: ValidationState,
    prompt: Optional[str] = None,
) -> np.ndarray:
    """
    Return a copy of `frame` (BGR) with the capture guide drawn on top.

    `prompt` overrides the text chosen by ui.instructions.instruction_for.
    """
    if frame is None:
        raise ValueError("frame is None inside draw_overlay")

    img = frame.copy()
    h, w = img.shape[:2]

    guide = state.layout_guide
    centre = (int(round(guide.mid_x)), int(round(guide.mid_y)))
    axes = (max(int(round(guide.width / 2)), 1), max(int(round(guide.height / 2)), 1))
    cv2.ellipse(img, centre, axes, 0, 0, 360, _status_color(state.has_valid_face), 2)

    if state.debug_enabled:
        geo = state.last_geometry
        if geo.is_found and geo.value is not None:
            x1, y1, x2, y2 = geo.value.bounding_box.as_int_box()
            cv2.rectangle(img, (x1, y1), (x2, y2), YELLOW, 2)

        gx1, gy1, gx2, gy2 = guide.as_int_box()
        cv2.rectangle(img, (gx1, gy1), (gx2, gy2), RED, 1)

        y = 60
        for text, color in debug_lines(state):
            if y >= h - 5:
                break
            cv2.putText(img, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, lineType=cv2.LINE_AA)
            y += 20

    _draw_prompt(img, prompt if prompt is not None else instruction_for(state))

    return img
