"""
Visitors for grouping elements that carry no structure and for empty elements.
"""

import logging
from typing import List

from structfix.fixes.nesting_fixes import FlattenNesting, RemoveEmptyElements
from structfix.issues import Issue, IssueSeverity, IssueType
from structfix.rules.base import Visitor
from structfix.tag_schema import GROUPING_ROLES, PART_ROLE

logger = logging.getLogger(__name__)


class NeedlessNestingVisitor(Visitor):
    name = "Needless Nesting"
    description = "Grouping elements (Part, Sect, Art, Div) should add structure"

    def __init__(self):
        super().__init__()
        self.wrappers: List[int] = []

    def enter_element(self, vctx):
        if vctx.role in GROUPING_ROLES and not self._is_page_part(vctx):
            self.wrappers.append(vctx.handle)
        return True

    @staticmethod
    def _is_page_part(vctx) -> bool:
        return vctx.role == PART_ROLE and bool(vctx.node.page)

    def after_traversal(self, ctx):
        if not self.wrappers:
            return
        self.issues.append(
            Issue(
                IssueType.NEEDLESS_NESTING,
                IssueSeverity.WARNING,
                f"Found {len(self.wrappers)} grouping elements",
                fix=FlattenNesting(self.wrappers),
            )
        )


class EmptyElementVisitor(Visitor):
    name = "Empty Elements"
    description = "Structure elements should contain content"

    def __init__(self):
        super().__init__()
        self.empty: List[int] = []

    def leave_element(self, vctx):
        if not vctx.tree.kids(vctx.handle):
            self.empty.append(vctx.handle)

    def after_traversal(self, ctx):
        if not self.empty:
            return
        self.issues.append(
            Issue(
                IssueType.EMPTY_ELEMENT,
                IssueSeverity.WARNING,
                f"Found {len(self.empty)} empty structure element(s)",
                fix=RemoveEmptyElements(self.empty),
            )
        )
