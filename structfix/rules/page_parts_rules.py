"""
Detection of multi-page documents whose content is not grouped per page.
"""

import logging
from typing import List, Optional

from structfix.config import get_page_parts_min_pages
from structfix.fixes.page_parts_fixes import NormalizePageParts
from structfix.issues import Issue, IssueSeverity, IssueType
from structfix.rules.base import Visitor
from structfix.rules.nesting_rules import NeedlessNestingVisitor
from structfix.tag_schema import DOCUMENT_ROLE, PART_ROLE

logger = logging.getLogger(__name__)


class MissingPagePartsVisitor(Visitor):
    """
    Only the root level matters here, so descent stops at depth 0. Runs after
    needless-nesting detection so page Parts are never collected as wrappers.
    """

    name = "Page Parts"
    description = "Multi-page documents should group content in one Part per page"
    prerequisites = (NeedlessNestingVisitor,)

    def __init__(self, min_pages: Optional[int] = None):
        super().__init__()
        self.min_pages = get_page_parts_min_pages(min_pages)
        self.document: Optional[int] = None
        self.root_kids: List[int] = []

    def enter_element(self, vctx):
        if vctx.depth == 0:
            self.root_kids.append(vctx.handle)
            if vctx.role == DOCUMENT_ROLE and self.document is None:
                self.document = vctx.handle
        return False

    def after_traversal(self, ctx):
        if ctx.page_count < self.min_pages or not self.root_kids:
            return
        tree = ctx.tree
        if self.document is None:
            loose = len(self.root_kids)
        else:
            loose = sum(
                1 for kid in tree.struct_kids(self.document)
                if tree.mapped_role(kid) != PART_ROLE and tree.content_page(kid) > 0
            )
        if not loose:
            return
        self.issues.append(
            Issue(
                IssueType.PAGE_PARTS_NOT_NORMALIZED,
                IssueSeverity.WARNING,
                f"{loose} element(s) across {ctx.page_count} pages are not grouped into page Parts",
                fix=NormalizePageParts(),
            )
        )
