"""
List structure for content drawn next to vector bullet glyphs.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from structfix.fixes.base import IssueFix, P_STRUCTURE
from structfix.tag_tree import MarkedContentRef

logger = logging.getLogger(__name__)

BULLET_LIST_TITLE = "bullet list"


class WrapParagraphRunInList(IssueFix):
    """
    Wrap a run of sibling elements in L, one LI > LBody per element.

    Earlier fixes (flattening, page Parts) may have split the run across
    containers; each container then gets its own L for the members it holds.
    """

    priority = P_STRUCTURE

    def __init__(self, elements: List[int]):
        self.elements = list(elements)
        self.wrapped = 0
        self.applied = False

    def apply(self, ctx):
        tree = ctx.tree
        self.wrapped = 0
        self.applied = True

        groups: Dict[int, List[int]] = OrderedDict()
        for handle in self.elements:
            if not tree.is_attached(handle):
                logger.debug("[WrapParagraphRunInList] %s is detached, skipping", handle)
                continue
            groups.setdefault(tree.parent(handle), []).append(handle)

        for container, members in groups.items():
            if tree.mapped_role(container) == "LBody":
                continue
            members.sort(key=lambda handle: tree.index_of(container, handle))
            self._wrap(tree, container, members)

    def _wrap(self, tree, container: int, members: List[int]) -> None:
        index = tree.index_of(container, members[0])
        list_handle = tree.new_element("L", page=tree.content_page(members[0]) or None)
        tree.insert_kid(container, index, list_handle)
        for handle in members:
            item = tree.new_element("LI", page=tree.content_page(handle) or None)
            body = tree.new_element("LBody", page=tree.content_page(handle) or None)
            tree.add_kid(list_handle, item)
            tree.add_kid(item, body)
            tree.add_kid(body, handle)
            self.wrapped += 1

    def describe(self, ctx):
        return f"Wrapped {self.wrapped} bullet-aligned element(s) in a list"

    @property
    def resolved_item_count(self):
        # Only what was actually wrapped counts once the fix has run
        return self.wrapped if self.applied else len(self.elements)

    @property
    def group_label(self):
        return "bulleted paragraphs converted to lists"


class WrapBulletAlignedKidsInList(IssueFix):
    """
    Move the marked content next to one bullet into LI > LBody > P inside
    ``element``. Items share one L per element, ordered top to bottom.
    """

    priority = P_STRUCTURE

    def __init__(self, element: int, bullet_y: float, refs: List[MarkedContentRef]):
        self.element = element
        self.bullet_y = bullet_y
        self.refs = list(refs)
        self.moved = 0

    def apply(self, ctx):
        tree = ctx.tree
        self.moved = 0
        if not tree.is_attached(self.element):
            return
        present = [ref for ref in self.refs if tree.index_of(self.element, ref) >= 0]
        if not present:
            return

        first_index = min(tree.index_of(self.element, ref) for ref in present)
        page = present[0].page
        list_handle = self._find_or_create_list(tree, first_index, page)

        item = tree.new_element("LI", page=page, title=f"y={self.bullet_y:g}")
        body = tree.new_element("LBody", page=page)
        paragraph = tree.new_element("P", page=page)
        tree.add_kid(item, body)
        tree.add_kid(body, paragraph)
        for ref in present:
            tree.remove_kid(self.element, ref)
            tree.add_kid(paragraph, ref)
            self.moved += 1

        tree.insert_kid(list_handle, self._item_position(tree, list_handle), item)

    def _find_or_create_list(self, tree, index: int, page: int) -> int:
        for kid in tree.struct_kids(self.element):
            node = tree.node(kid)
            if node.role == "L" and node.title == BULLET_LIST_TITLE:
                return kid
        list_handle = tree.new_element("L", page=page, title=BULLET_LIST_TITLE)
        tree.insert_kid(self.element, index, list_handle)
        return list_handle

    def _item_position(self, tree, list_handle: int) -> int:
        items = tree.struct_kids(list_handle)
        for position, item in enumerate(items):
            y = _item_y(tree.node(item).title)
            if y is not None and y < self.bullet_y:
                return position
        return len(items)

    def describe(self, ctx):
        return f"Moved {self.moved} marked content item(s) at y={self.bullet_y:g} into a list item"

    @property
    def group_label(self):
        return "bulleted content converted to list items"


def _item_y(title: Optional[str]) -> Optional[float]:
    if not title or not title.startswith("y="):
        return None
    try:
        return float(title[2:])
    except ValueError:
        return None
