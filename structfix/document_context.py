"""
Per-run document facade shared by every rule and fix.

Wraps the tag tree, the content collaborator and the document-level
properties read at load time. Per-page geometry, text and content-kind
lookups are memoized for the lifetime of the context.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, TypeVar, Union

from structfix.content_source import ContentKind, ContentSource
from structfix.geometry import Rect, rect_from_quad_points, union_all
from structfix.tag_tree import MarkedContentRef, ObjectRef, TagTree, is_element

logger = logging.getLogger(__name__)

T = TypeVar("T")
Target = Union[int, MarkedContentRef, ObjectRef]

# Ff bit 17: a button field that keeps no value
PUSHBUTTON_FLAG = 1 << 16


@dataclass
class Annotation:
    object_number: int
    page: int
    subtype: str
    rect: Optional[Rect] = None
    quad_points: List[float] = field(default_factory=list)
    uri: Optional[str] = None
    struct_parent: Optional[int] = None
    field_type: Optional[str] = None
    field_flags: int = 0
    removed: bool = False

    @property
    def is_link(self) -> bool:
        return self.subtype == "Link"

    @property
    def is_pushbutton(self) -> bool:
        return self.subtype == "Widget" and self.field_type == "Btn" and bool(self.field_flags & PUSHBUTTON_FLAG)

    def bounds(self) -> Optional[Rect]:
        """QuadPoints bounds when present, otherwise the annotation rectangle."""
        return rect_from_quad_points(self.quad_points) or self.rect


@dataclass
class FontInfo:
    object_number: int
    name: str
    subtype: str
    first_page: int
    to_unicode: Dict[int, str] = field(default_factory=dict)
    code_bytes: int = 2
    dirty: bool = False


@dataclass
class DocumentInfo:
    """Document-level properties outside the tag tree."""

    language: Optional[str] = None
    marked: bool = False
    tab_orders: Dict[int, Optional[str]] = field(default_factory=dict)
    next_parent_tree_key: int = 0


class DocumentContext:
    def __init__(
        self,
        tree: Optional[TagTree],
        content: ContentSource,
        info: Optional[DocumentInfo] = None,
        annotations: Optional[Iterable[Annotation]] = None,
        fonts: Optional[Iterable[FontInfo]] = None,
        page_count: Optional[int] = None,
    ):
        self.tree = tree
        self.content = content
        self.info = info or DocumentInfo()
        self.page_count = page_count if page_count is not None else content.page_count
        self.annotations: List[Annotation] = list(annotations or [])
        self.fonts: List[FontInfo] = list(fonts or [])
        self.artifact_mcids: Dict[int, Set[int]] = defaultdict(set)

        self._bounds_cache: Dict[int, Dict[int, Rect]] = {}
        self._text_cache: Dict[int, Dict[int, str]] = {}
        self._kinds_cache: Dict[int, Dict[int, Set[ContentKind]]] = {}
        self._bullet_cache: Dict[int, List[float]] = {}
        self._object_pages: Optional[Dict[int, int]] = None
        self._object_elements: Optional[Dict[int, int]] = None

    @property
    def has_struct_tree(self) -> bool:
        return self.tree is not None

    # ----------------------------------------------------------- page caches

    def mcid_bounds(self, page: int) -> Dict[int, Rect]:
        if page not in self._bounds_cache:
            self._bounds_cache[page] = self._extract(page, self.content.mcid_bounds, "bounds", {})
        return self._bounds_cache[page]

    def mcid_text(self, page: int) -> Dict[int, str]:
        if page not in self._text_cache:
            self._text_cache[page] = self._extract(page, self.content.mcid_text, "text", {})
        return self._text_cache[page]

    def content_kinds(self, page: int) -> Dict[int, Set[ContentKind]]:
        if page not in self._kinds_cache:
            self._kinds_cache[page] = self._extract(page, self.content.content_kinds, "content kinds", {})
        return self._kinds_cache[page]

    def bullet_positions(self, page: int) -> List[float]:
        if page not in self._bullet_cache:
            self._bullet_cache[page] = self._extract(page, self.content.bullet_positions, "bullets", [])
        return self._bullet_cache[page]

    def _extract(self, page: int, compute: Callable[[int], T], label: str, empty: T) -> T:
        if page <= 0 or page > self.page_count:
            return empty
        try:
            return compute(page)
        except Exception as exc:
            logger.warning("[DocumentContext] Failed to extract %s for page %s: %s", label, page, exc)
            return empty

    def has_extractable_text(self) -> bool:
        for page in range(1, self.page_count + 1):
            if "".join(self.mcid_text(page).values()).strip():
                return True
            try:
                if self.content.page_text(page).strip():
                    return True
            except Exception as exc:
                logger.debug("[DocumentContext] Failed to extract text from page %s: %s", page, exc)
        return False

    def has_image_content(self) -> bool:
        for page in range(1, self.page_count + 1):
            try:
                if self.content.page_has_images(page):
                    return True
            except Exception as exc:
                logger.debug("[DocumentContext] Failed to inspect images on page %s: %s", page, exc)
        return False

    # -------------------------------------------------- geometry and text

    def _refs_for(self, target: Target, page: Optional[int]) -> List[Union[MarkedContentRef, ObjectRef]]:
        if is_element(target):
            refs: List[Union[MarkedContentRef, ObjectRef]] = list(self.tree.content_refs(target))
            refs.extend(self.tree.object_refs(target))
        else:
            refs = [target]
        if page:
            refs = [ref for ref in refs if ref.page == page]
        return refs

    def bounds_for(self, target: Target, page: Optional[int] = None) -> Optional[Rect]:
        """Union of the target's content bounds, restricted to ``page`` when given."""
        rects: List[Optional[Rect]] = []
        for ref in self._refs_for(target, page):
            if isinstance(ref, MarkedContentRef):
                rects.append(self.mcid_bounds(ref.page).get(ref.mcid))
            else:
                annotation = self.annotation(ref.object_number)
                rects.append(annotation.bounds() if annotation else None)
        return union_all(rects)

    def text_for(self, target: Target, page: Optional[int] = None) -> str:
        chunks = []
        for ref in self._refs_for(target, page):
            if isinstance(ref, MarkedContentRef):
                chunks.append(self.mcid_text(ref.page).get(ref.mcid, ""))
        return "".join(chunks)

    def kinds_for(self, target: Target, page: Optional[int] = None) -> Set[ContentKind]:
        kinds: Set[ContentKind] = set()
        for ref in self._refs_for(target, page):
            if isinstance(ref, MarkedContentRef):
                kinds |= self.content_kinds(ref.page).get(ref.mcid, set())
        return kinds

    # ------------------------------------------------- object resolution

    def _build_object_maps(self) -> None:
        pages: Dict[int, int] = {}
        elements: Dict[int, int] = {}
        if self.tree is not None:
            for handle in self.tree.iter_preorder():
                number = self.tree.node(handle).object_number
                if number is None:
                    continue
                elements[number] = handle
                page = self.tree.resolve_page(handle)
                if page:
                    pages[number] = page
        for annotation in self.annotations:
            pages.setdefault(annotation.object_number, annotation.page)
        self._object_pages = pages
        self._object_elements = elements

    def page_for_object(self, object_number: int) -> int:
        if self._object_pages is None:
            self._build_object_maps()
        return self._object_pages.get(object_number, 0)

    def element_for_object(self, object_number: int) -> Optional[int]:
        if self._object_elements is None:
            self._build_object_maps()
        return self._object_elements.get(object_number)

    def invalidate_caches(self) -> None:
        """Drop tree-derived lookups after the tree has been mutated."""
        self._object_pages = None
        self._object_elements = None

    # ------------------------------------------------------- annotations

    def annotation(self, object_number: int) -> Optional[Annotation]:
        for annotation in self.annotations:
            if annotation.object_number == object_number:
                return annotation
        return None

    def link_annotations(self, page: int) -> List[Annotation]:
        return [a for a in self.annotations if a.page == page and a.is_link and not a.removed]

    def remove_annotation(self, object_number: int) -> bool:
        annotation = self.annotation(object_number)
        if annotation is None or annotation.removed:
            return False
        annotation.removed = True
        return True

    def next_parent_tree_key(self) -> int:
        key = self.info.next_parent_tree_key
        self.info.next_parent_tree_key += 1
        return key

    # --------------------------------------------------------- artifacts

    def mark_artifact(self, page: int, mcids: Iterable[int]) -> None:
        self.artifact_mcids[page].update(mcids)
