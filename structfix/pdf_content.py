"""
pdfplumber-backed content source.

pdfplumber tags every char, image and path it extracts with the MCID of
the marked-content sequence it was painted in. Grouping those objects by
MCID gives per-MCID text, bounds and content kinds. Small filled curves
are taken to be vector bullet glyphs.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

import pdfplumber

from structfix.content_source import ContentKind, ContentSource
from structfix.geometry import Rect

logger = logging.getLogger(__name__)

_OBJECT_KINDS = {
    "char": ContentKind.TEXT,
    "image": ContentKind.IMAGE,
    "line": ContentKind.VECTOR,
    "rect": ContentKind.VECTOR,
    "curve": ContentKind.VECTOR,
}

# Vector bullets are drawn as small, roughly round filled paths
BULLET_MIN_SIZE = 2.0
BULLET_MAX_SIZE = 8.0
BULLET_MAX_ASPECT = 2.0
BULLET_DEDUP_DISTANCE = 0.5


class PdfPlumberContentSource(ContentSource):
    def __init__(self, path: str):
        self.path = str(path)
        self._pdf = pdfplumber.open(self.path)

    def close(self) -> None:
        self._pdf.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def page_count(self) -> int:
        return len(self._pdf.pages)

    def _page(self, page: int):
        return self._pdf.pages[page - 1]

    @staticmethod
    def _rect(obj: Dict[str, Any], page_height: float) -> Optional[Rect]:
        try:
            return Rect.from_points(
                float(obj["x0"]),
                page_height - float(obj["bottom"]),
                float(obj["x1"]),
                page_height - float(obj["top"]),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def _marked_objects(self, page: int):
        plumber_page = self._page(page)
        for object_type, kind in _OBJECT_KINDS.items():
            for obj in plumber_page.objects.get(object_type, []):
                mcid = obj.get("mcid")
                if mcid is None:
                    continue
                yield int(mcid), kind, obj, plumber_page.height

    def mcid_bounds(self, page: int) -> Dict[int, Rect]:
        bounds: Dict[int, Rect] = {}
        for mcid, _kind, obj, height in self._marked_objects(page):
            rect = self._rect(obj, height)
            if rect is None:
                continue
            bounds[mcid] = rect.union(bounds.get(mcid))
        return bounds

    def mcid_text(self, page: int) -> Dict[int, str]:
        chunks: Dict[int, List[str]] = defaultdict(list)
        for mcid, kind, obj, _height in self._marked_objects(page):
            if kind is ContentKind.TEXT:
                chunks[mcid].append(obj.get("text") or "")
        return {mcid: "".join(parts) for mcid, parts in chunks.items()}

    def content_kinds(self, page: int) -> Dict[int, Set[ContentKind]]:
        kinds: Dict[int, Set[ContentKind]] = defaultdict(set)
        for mcid, kind, _obj, _height in self._marked_objects(page):
            kinds[mcid].add(kind)
        return dict(kinds)

    def bullet_positions(self, page: int) -> List[float]:
        plumber_page = self._page(page)
        positions: List[float] = []
        for curve in plumber_page.objects.get("curve", []):
            if not curve.get("fill"):
                continue
            rect = self._rect(curve, plumber_page.height)
            if rect is None or not self._is_bullet_shape(rect):
                continue
            centre = (rect.y0 + rect.y1) / 2
            if any(abs(centre - existing) <= BULLET_DEDUP_DISTANCE for existing in positions):
                continue
            positions.append(centre)
        positions.sort(reverse=True)
        logger.debug("[PdfPlumberContentSource] %d bullet glyph(s) on page %s", len(positions), page)
        return positions

    @staticmethod
    def _is_bullet_shape(rect: Rect) -> bool:
        width, height = rect.width, rect.height
        if not (BULLET_MIN_SIZE <= width <= BULLET_MAX_SIZE and BULLET_MIN_SIZE <= height <= BULLET_MAX_SIZE):
            return False
        return max(width, height) / min(width, height) <= BULLET_MAX_ASPECT

    def page_text(self, page: int) -> str:
        return self._page(page).extract_text() or ""

    def page_has_images(self, page: int) -> bool:
        return bool(self._page(page).images)
