"""
Form widgets left behind in documents that are not forms.
"""

import logging

from structfix.fixes.widget_fixes import RemoveWidgetAnnotation
from structfix.issues import Issue, IssueList, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Check

logger = logging.getLogger(__name__)


class UnexpectedWidgetCheck(Check):
    """Push buttons (Widget, FT Btn with the pushbutton flag) with no role in the reading content."""

    name = "Unexpected Widgets"

    def find_issues(self, ctx):
        issues = IssueList()
        for annotation in ctx.annotations:
            if annotation.removed or not annotation.is_pushbutton:
                continue
            logger.debug("[UnexpectedWidgetCheck] Push button #%s on page %s", annotation.object_number, annotation.page)
            issues.append(
                Issue(
                    IssueType.UNEXPECTED_WIDGET,
                    IssueSeverity.ERROR,
                    f"Unexpected Widget annotation found on page {annotation.page}",
                    location=IssueLocation.at_object(annotation.object_number, annotation.page),
                    fix=RemoveWidgetAnnotation(annotation),
                )
            )
        return issues
