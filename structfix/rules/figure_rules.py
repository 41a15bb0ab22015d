"""
Figure tags that wrap real text instead of an illustration.
"""

import logging

from structfix.fixes.figure_fixes import ChangeFigureRole
from structfix.issues import Issue, IssueLocation, IssueSeverity, IssueType
from structfix.rules.artifact_rules import looks_like_artifact_text
from structfix.rules.base import Visitor

logger = logging.getLogger(__name__)

_PREVIEW_LENGTH = 30


class FigureWithTextVisitor(Visitor):
    name = "Figure With Text"
    description = "Figure elements should not contain text content"

    def enter_element(self, vctx):
        if vctx.role != "Figure" or vctx.page <= 0:
            return True

        text = " ".join(vctx.doc.text_for(vctx.handle, page=vctx.page).split())
        # Page furniture is left to the artifact rules
        if len(text) <= 1 or looks_like_artifact_text(text):
            return True

        preview = text if len(text) <= _PREVIEW_LENGTH else text[:_PREVIEW_LENGTH] + "..."
        self.issues.append(
            Issue(
                IssueType.FIGURE_WITH_TEXT,
                IssueSeverity.WARNING,
                f'Figure contains text: "{preview}"',
                location=IssueLocation.at_element(vctx.handle, vctx.page),
                fix=ChangeFigureRole(vctx.handle, "P", page=vctx.page),
            )
        )
        return True
