"""
Interface to the page geometry/text collaborator.

Implementations answer per-page questions about marked content: where each
MCID is drawn, what text it carries, what kind of content it paints, and
where vector bullet glyphs sit. Every answer is a pure function of
(document, page) so callers may memoize freely.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional, Set

from structfix.geometry import Rect


class ContentKind(Enum):
    TEXT = "text"
    IMAGE = "image"
    VECTOR = "vector"


class ContentSource(ABC):
    @property
    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def mcid_bounds(self, page: int) -> Dict[int, Rect]:
        """Bounding box of each MCID painted on ``page``."""

    @abstractmethod
    def mcid_text(self, page: int) -> Dict[int, str]:
        """Extracted text of each MCID on ``page``."""

    @abstractmethod
    def content_kinds(self, page: int) -> Dict[int, Set[ContentKind]]:
        """Kinds of content painted inside each MCID on ``page``."""

    @abstractmethod
    def bullet_positions(self, page: int) -> List[float]:
        """Vertical centres of vector-drawn bullet glyphs on ``page``."""

    def page_text(self, page: int) -> str:
        return "".join(self.mcid_text(page).values())

    def page_has_images(self, page: int) -> bool:
        return any(ContentKind.IMAGE in kinds for kinds in self.content_kinds(page).values())


class StaticContentSource(ContentSource):
    """
    Content answers supplied up front, keyed by page then MCID.

    Useful when geometry comes from somewhere other than the PDF itself, and
    for building documents in tests.
    """

    def __init__(
        self,
        page_count: int,
        bounds: Optional[Dict[int, Dict[int, Rect]]] = None,
        text: Optional[Dict[int, Dict[int, str]]] = None,
        kinds: Optional[Dict[int, Dict[int, Set[ContentKind]]]] = None,
        bullets: Optional[Dict[int, List[float]]] = None,
    ):
        self._page_count = page_count
        self.bounds = bounds or {}
        self.text = text or {}
        self.kinds = kinds or {}
        self.bullets = bullets or {}

    @property
    def page_count(self) -> int:
        return self._page_count

    def mcid_bounds(self, page):
        return dict(self.bounds.get(page, {}))

    def mcid_text(self, page):
        return dict(self.text.get(page, {}))

    def content_kinds(self, page):
        return {mcid: set(found) for mcid, found in self.kinds.get(page, {}).items()}

    def bullet_positions(self, page):
        return sorted(self.bullets.get(page, []), reverse=True)
