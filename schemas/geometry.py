from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle in preview (screen) coordinates.

    Attributes
    ----------
    x, y          : float
        Top-left corner.
    width, height : float
        Size in pixels. Never negative for rectangles produced here.
    """

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    def centered_in(self, viewport: "Rect") -> "Rect":
        """
        Return a copy of this rectangle, same size, centred on the
        midpoint of `viewport`.
        """
        return replace(
            self,
            x=viewport.mid_x - self.width / 2.0,
            y=viewport.mid_y - self.height / 2.0,
        )

    def as_int_box(self) -> Tuple[int, int, int, int]:
        """(x1, y1, x2, y2) rounded to ints, the form OpenCV drawing expects."""
        return (
            int(round(self.min_x)),
            int(round(self.min_y)),
            int(round(self.max_x)),
            int(round(self.max_y)),
        )

    @classmethod
    def from_xywh(cls, values) -> "Rect":
        """Build from any 4-item sequence (x, y, w, h), e.g. a YAML list."""
        x, y, w, h = (float(v) for v in values)
        return cls(x=x, y=y, width=w, height=h)
