"""
List structure repairs: list item shape, paragraph pairs in lists,
paragraphs made of links, and review markers for shapes that cannot be
repaired automatically.
"""

import logging
from typing import List, Optional

from structfix.fixes.base import IssueFix, P_LIST_ITEMS, P_REVIEW_FLAGS, P_STRUCTURE
from structfix.tag_schema import is_container_role
from structfix.tag_tree import is_element

logger = logging.getLogger(__name__)

WRAP_SINGLE_P = "wrap-single-p"
P_TO_LBL = "p-to-lbl"
PP_TO_LBL_LBODY = "pp-to-lbl-lbody"

REVIEW_MARKER = "attention needed"


def _struct_roles(tree, handle) -> List[str]:
    return [tree.mapped_role(kid) for kid in tree.struct_kids(handle)]


class NormalizeListItem(IssueFix):
    """Reshape an LI into (Lbl, LBody) according to its current children."""

    priority = P_LIST_ITEMS

    _DESCRIPTIONS = {
        WRAP_SINGLE_P: "Enclosed P in LBody (missing Lbl)",
        P_TO_LBL: "Changed P to Lbl in LI",
        PP_TO_LBL_LBODY: "Changed P+P to Lbl+LBody in LI",
    }

    def __init__(self, item: int, action: str):
        if action not in self._DESCRIPTIONS:
            raise ValueError(f"Unknown list item action: {action}")
        self.item = item
        self.action = action

    @property
    def resolved_item_count(self):
        return 2 if self.action == PP_TO_LBL_LBODY else 1

    def apply(self, ctx):
        tree = ctx.tree
        if not tree.is_attached(self.item):
            return
        kids = tree.struct_kids(self.item)
        roles = _struct_roles(tree, self.item)

        if self.action == WRAP_SINGLE_P and roles == ["P"]:
            tree.wrap(kids[0], "LBody", page=tree.node(kids[0]).page)
        elif self.action == P_TO_LBL and roles == ["P", "LBody"]:
            tree.set_role(kids[0], "Lbl")
        elif self.action == PP_TO_LBL_LBODY and roles == ["P", "P"]:
            tree.set_role(kids[0], "Lbl")
            tree.set_role(kids[1], "LBody")
        else:
            logger.debug("[NormalizeListItem] %s already normalized (%s)", tree.describe(self.item), roles)

    def describe(self, ctx):
        return self._DESCRIPTIONS[self.action]

    @property
    def group_label(self):
        return "list items normalized"


class RegroupListParagraphs(IssueFix):
    """Turn an L holding P, P, P, P... into LI(Lbl, LBody) pairs."""

    priority = P_LIST_ITEMS

    def __init__(self, list_handle: int):
        self.list_handle = list_handle
        self.items = 0

    def apply(self, ctx):
        tree = ctx.tree
        self.items = 0
        if not tree.is_attached(self.list_handle):
            return
        kids = tree.struct_kids(self.list_handle)
        roles = _struct_roles(tree, self.list_handle)
        if not kids or len(kids) % 2 or any(role != "P" for role in roles):
            return

        for label, body in zip(kids[0::2], kids[1::2]):
            item = tree.wrap(label, "LI", page=tree.node(label).page)
            tree.add_kid(item, body)
            tree.set_role(label, "Lbl")
            tree.set_role(body, "LBody")
            self.items += 1

    def describe(self, ctx):
        return f"Regrouped {self.items} paragraph pair(s) into list items"

    @property
    def group_label(self):
        return "list items normalized"


class WrapInListItem(IssueFix):
    """Wrap a loose P directly under L as LI > LBody > P."""

    priority = P_LIST_ITEMS

    def __init__(self, paragraph: int):
        self.paragraph = paragraph

    def apply(self, ctx):
        tree = ctx.tree
        if not tree.is_attached(self.paragraph):
            return
        parent = tree.parent(self.paragraph)
        if tree.mapped_role(parent) != "L":
            return
        page = tree.node(self.paragraph).page
        body = tree.wrap(self.paragraph, "LBody", page=page)
        tree.wrap(body, "LI", page=page)

    def describe(self, ctx):
        return "Wrapped P in LI > LBody"

    @property
    def group_label(self):
        return "list items normalized"


class ListifyParagraphOfLinks(IssueFix):
    """Retag a P holding nothing but Link tags as L, each Link in its own LI > LBody."""

    priority = P_STRUCTURE

    def __init__(self, paragraph: int):
        self.paragraph = paragraph
        self.items = 0

    def apply(self, ctx):
        tree = ctx.tree
        self.items = 0
        if not tree.is_attached(self.paragraph) or tree.mapped_role(self.paragraph) != "P":
            return
        links = tree.kids(self.paragraph)
        if not links or not all(is_element(kid) and tree.mapped_role(kid) == "Link" for kid in links):
            return
        tree.set_role(self.paragraph, "L")
        for link in list(links):
            page = tree.content_page(link) or None
            body = tree.wrap(link, "LBody", page=page)
            tree.wrap(body, "LI", page=page)
            self.items += 1

    def describe(self, ctx):
        return f"Listified P element #{self.paragraph} with {self.items} link(s) to L element"

    @property
    def group_label(self):
        return "paragraphs of links converted to lists"


class FlagForReview(IssueFix):
    """
    Mark an element for manual review and escalate the marker to its
    ancestors, stopping below the nearest Document or Part.
    """

    priority = P_REVIEW_FLAGS

    def __init__(self, element: int, reason: str):
        self.element = element
        self.reason = reason
        self.marked = 0

    def apply(self, ctx):
        tree = ctx.tree
        self.marked = 0
        if not tree.is_attached(self.element):
            return
        note = f"{REVIEW_MARKER}: {self.reason}"
        if tree.node(self.element).title != note:
            tree.set_attribute(self.element, "title", note)
            self.marked += 1

        current: Optional[int] = tree.parent(self.element)
        while current is not None and current != tree.root:
            if is_container_role(tree.mapped_role(current)):
                break
            title = tree.node(current).title or ""
            if not title.startswith(REVIEW_MARKER):
                tree.set_attribute(current, "title", f"{REVIEW_MARKER}: {title}" if title else REVIEW_MARKER)
                self.marked += 1
            current = tree.parent(current)

    def describe(self, ctx):
        return f"Flagged for review: {self.reason}"

    @property
    def group_label(self):
        return "elements flagged for review"
