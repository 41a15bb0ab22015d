"""
Partitioning of flat Document content into one Part per page.
"""

import logging
from typing import Dict

from structfix.fixes.base import IssueFix, P_PAGE_PARTS
from structfix.tag_schema import PART_ROLE

logger = logging.getLogger(__name__)


def page_parts(tree, document) -> Dict[int, int]:
    """Existing per-page Part elements directly under ``document``, keyed by page."""
    parts: Dict[int, int] = {}
    for kid in tree.struct_kids(document):
        page = tree.node(kid).page
        if tree.mapped_role(kid) == PART_ROLE and page:
            parts.setdefault(page, kid)
    return parts


class NormalizePageParts(IssueFix):
    """
    Move each direct Document child into the Part for its page.

    Parts are looked up by page before any is created, so re-running the fix
    reuses them. Children keep their relative order within each page.
    """

    priority = P_PAGE_PARTS

    def __init__(self):
        self.created = 0
        self.moved = 0

    def apply(self, ctx):
        tree = ctx.tree
        self.created = 0
        self.moved = 0
        document = tree.document_element()
        if document is None or ctx.page_count < 2:
            logger.debug("[NormalizePageParts] Nothing to partition")
            return

        parts = page_parts(tree, document)
        for kid in tree.struct_kids(document):
            if tree.mapped_role(kid) == PART_ROLE:
                continue
            page = tree.content_page(kid)
            if page <= 0:
                continue
            part = parts.get(page)
            if part is None:
                part = self._create_part(tree, document, page, parts)
            tree.add_kid(part, kid)
            self.moved += 1

        logger.info(
            "[NormalizePageParts] Created %d Part(s), moved %d element(s)", self.created, self.moved
        )

    def _create_part(self, tree, document, page, parts):
        part = tree.new_element(PART_ROLE, page=page, title=f"p. {page}")
        later = [handle for other_page, handle in parts.items() if other_page > page]
        if later:
            index = min(tree.index_of(document, handle) for handle in later)
            tree.insert_kid(document, index, part)
        else:
            tree.add_kid(document, part)
        parts[page] = part
        self.created += 1
        return part

    def describe(self, ctx):
        return f"Normalized page Parts: created {self.created} Part(s), moved {self.moved} element(s)"

    @property
    def group_label(self):
        return "page-level Part elements created"
