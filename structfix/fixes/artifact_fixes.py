"""
Conversion of tagged page furniture into artifacts.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Set

from structfix.fixes.base import IssueFix, P_ARTIFACT

logger = logging.getLogger(__name__)


class ConvertToArtifact(IssueFix):
    """
    Drop an element from the tag tree and mark its marked content as artifact.

    Link annotations the element referenced are removed with it. The
    content-stream rewrite happens when the document is saved.
    """

    priority = P_ARTIFACT

    def __init__(self, tree, handle: int):
        self.handle = handle
        self.role = tree.role(handle)
        self._subtree: Set[int] = set(tree.iter_preorder(handle))
        self.mcids: Dict[int, List[int]] = {}

    def apply(self, ctx):
        tree = ctx.tree
        if not tree.is_attached(self.handle):
            logger.debug("[ConvertToArtifact] %s already removed", tree.describe(self.handle))
            return

        by_page: Dict[int, List[int]] = defaultdict(list)
        for ref in tree.content_refs(self.handle):
            by_page[ref.page].append(ref.mcid)
        for ref in tree.object_refs(self.handle):
            annotation = ctx.annotation(ref.object_number)
            if annotation is not None and annotation.is_link:
                ctx.remove_annotation(ref.object_number)

        for page, mcids in by_page.items():
            ctx.mark_artifact(page, mcids)
        self.mcids = dict(by_page)
        tree.detach(self.handle)

    def describe(self, ctx):
        count = sum(len(mcids) for mcids in self.mcids.values())
        return f"Converted {self.role} to artifact ({count} marked content sequence(s))"

    def invalidates(self, other):
        return isinstance(other, ConvertToArtifact) and other.handle in self._subtree

    @property
    def group_label(self):
        return "elements converted to artifacts"
