"""
Rectangle helpers for page geometry.

Coordinates follow PDF user space: origin at the bottom-left of the page,
``y`` growing upwards.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence


@dataclass(frozen=True)
class Rect:
    x0: float
    y0: float
    x1: float
    y1: float

    @classmethod
    def from_points(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        """Build a normalized rectangle from two opposite corners."""
        return cls(min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def union(self, other: Optional["Rect"]) -> "Rect":
        if other is None:
            return self
        return Rect(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        x0 = max(self.x0, other.x0)
        y0 = max(self.y0, other.y0)
        x1 = min(self.x1, other.x1)
        y1 = min(self.y1, other.y1)
        if x1 <= x0 or y1 <= y0:
            return None
        return Rect(x0, y0, x1, y1)

    def intersection_area(self, other: "Rect") -> float:
        overlap = self.intersection(other)
        return overlap.area if overlap else 0.0

    def spans_y(self, y: float, tolerance: float = 0.0) -> bool:
        """True when ``y`` lies within the vertical extent, widened by ``tolerance``."""
        return self.y0 - tolerance <= y <= self.y1 + tolerance


def union_all(rects: Iterable[Optional[Rect]]) -> Optional[Rect]:
    """Union of all non-empty rectangles, or None when there are none."""
    result: Optional[Rect] = None
    for rect in rects:
        if rect is None:
            continue
        result = rect if result is None else result.union(rect)
    return result


def rect_from_array(values: Sequence[float]) -> Optional[Rect]:
    """Convert a PDF ``/Rect`` style array into a Rect."""
    if values is None or len(values) < 4:
        return None
    try:
        x0, y0, x1, y1 = (float(v) for v in list(values)[:4])
    except (TypeError, ValueError):
        return None
    return Rect.from_points(x0, y0, x1, y1)


def rect_from_quad_points(values: Sequence[float]) -> Optional[Rect]:
    """Bounding box of every quadrilateral in a ``/QuadPoints`` array."""
    if not values or len(values) < 8:
        return None
    try:
        numbers: List[float] = [float(v) for v in values]
    except (TypeError, ValueError):
        return None

    quads = []
    for start in range(0, len(numbers) - 7, 8):
        xs = numbers[start:start + 8:2]
        ys = numbers[start + 1:start + 8:2]
        quads.append(Rect(min(xs), min(ys), max(xs), max(ys)))
    return union_all(quads)
