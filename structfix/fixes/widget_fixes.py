"""
Removal of form widgets that have no place in a static document.
"""

import logging
from typing import List, Tuple

from structfix.fixes.base import IssueFix, P_REMOVE_WIDGET
from structfix.tag_tree import ROOT, ObjectRef

logger = logging.getLogger(__name__)


class RemoveWidgetAnnotation(IssueFix):
    """
    Remove a widget annotation and every object reference to it in the tag tree.

    An element left without kids by the removal (usually the Form tag that
    held the widget) goes with it. The page /Annots entry and the AcroForm
    field are dropped when the document is saved.
    """

    priority = P_REMOVE_WIDGET

    def __init__(self, annotation):
        self.annotation = annotation
        self.references_removed = 0

    def apply(self, ctx):
        number = self.annotation.object_number
        ctx.remove_annotation(number)

        tree = ctx.tree
        self.references_removed = 0
        if tree is None:
            return
        for holder, ref in self._references(tree, number):
            tree.remove_kid(holder, ref)
            self.references_removed += 1
            if not tree.kids(holder) and tree.parent(holder) not in (None, ROOT):
                logger.debug("[RemoveWidgetAnnotation] Removing %s left empty", tree.describe(holder))
                tree.detach(holder)
        ctx.invalidate_caches()

    @staticmethod
    def _references(tree, number: int) -> List[Tuple[int, ObjectRef]]:
        found = []
        for handle in tree.iter_preorder():
            for kid in tree.kids(handle):
                if isinstance(kid, ObjectRef) and kid.object_number == number:
                    found.append((handle, kid))
        return found

    def describe(self, ctx):
        return f"Removed Widget annotation obj. #{self.annotation.object_number} (p. {self.annotation.page})"

    @property
    def group_label(self):
        return "unexpected Widget annotations removed"
