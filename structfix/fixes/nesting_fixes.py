"""
Flattening of grouping elements that add no structure of their own.
"""

import logging
from typing import List

from structfix.fixes.base import IssueFix, P_FLATTEN, P_REMOVE_EMPTY
from structfix.tag_schema import GROUPING_ROLES
from structfix.tag_tree import ROOT, MarkedContentRef, ObjectRef

logger = logging.getLogger(__name__)


class FlattenNesting(IssueFix):
    """
    Replace each wrapper with its own children, at the wrapper's position.

    Wrappers are processed in reverse discovery order so that flattening an
    outer wrapper never disturbs an inner one that is still pending.
    """

    priority = P_FLATTEN

    def __init__(self, wrappers: List[int]):
        self.wrappers = list(wrappers)
        self.flattened = 0

    @property
    def resolved_item_count(self):
        return len(self.wrappers)

    def apply(self, ctx):
        tree = ctx.tree
        self.flattened = 0
        for wrapper in reversed(self.wrappers):
            if not tree.is_attached(wrapper) or tree.mapped_role(wrapper) not in GROUPING_ROLES:
                continue
            parent = tree.parent(wrapper)
            kids = tree.kids(wrapper)
            if parent == ROOT and any(isinstance(kid, (MarkedContentRef, ObjectRef)) for kid in kids):
                logger.debug("[FlattenNesting] Keeping %s: content cannot sit under the root", tree.describe(wrapper))
                continue

            index = tree.index_of(parent, wrapper)
            wrapper_page = tree.node(wrapper).page
            tree.remove_kid(parent, wrapper)
            for offset, kid in enumerate(kids):
                tree.insert_kid(parent, index + offset, kid)
                if isinstance(kid, int) and wrapper_page and not tree.node(kid).page:
                    tree.set_attribute(kid, "page", wrapper_page)
            self.flattened += 1

        logger.info("[FlattenNesting] Flattened %d grouping element(s)", self.flattened)

    def describe(self, ctx):
        return f"Flattened {self.flattened} grouping element(s)"

    @property
    def group_label(self):
        return "grouping elements flattened"


class RemoveEmptyElements(IssueFix):
    """Remove childless elements, cascading to parents left empty. Root kids are kept."""

    priority = P_REMOVE_EMPTY

    def __init__(self, elements: List[int]):
        self.elements = list(elements)
        self.removed = 0

    @property
    def resolved_item_count(self):
        return len(self.elements)

    def apply(self, ctx):
        tree = ctx.tree
        self.removed = 0
        for element in self.elements:
            current = element
            while current is not None and tree.is_attached(current) and not tree.kids(current):
                parent = tree.parent(current)
                if parent == ROOT:
                    break
                logger.debug("[RemoveEmptyElements] Removing empty %s", tree.describe(current))
                tree.remove_kid(parent, current)
                self.removed += 1
                current = parent

    def describe(self, ctx):
        return f"Removed {self.removed} empty structure element(s)"

    @property
    def group_label(self):
        return "empty structure elements removed"
