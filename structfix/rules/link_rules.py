"""
Link rules: annotations that are not reachable from the tag tree, and
Link tags whose text was tagged next to them instead of inside.
"""

import logging

from structfix.fixes.link_fixes import CreateLinkTag, MoveSiblingMcrIntoLink
from structfix.issues import Issue, IssueList, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Check, Visitor
from structfix.tag_tree import MarkedContentRef, ObjectRef, is_element

logger = logging.getLogger(__name__)

# Content and annotation areas this close are taken to be the same link
SIMILAR_AREA_LOW = 0.5
SIMILAR_AREA_HIGH = 2.0


class UnmarkedLinkCheck(Check):
    name = "Unmarked Links"

    def find_issues(self, ctx):
        issues = IssueList()
        if ctx.tree is None:
            return issues
        for page in range(1, ctx.page_count + 1):
            for annotation in ctx.link_annotations(page):
                if annotation.struct_parent is not None:
                    continue
                target = annotation.uri or "internal destination"
                issues.append(
                    Issue(
                        IssueType.UNMARKED_LINK,
                        IssueSeverity.ERROR,
                        f"Untagged Link annotation #{annotation.object_number} (p. {page}) to {target}",
                        location=IssueLocation.at_object(annotation.object_number, page),
                        fix=CreateLinkTag(annotation),
                    )
                )
        return issues


def bounds_are_similar(first, second, low: float = SIMILAR_AREA_LOW, high: float = SIMILAR_AREA_HIGH) -> bool:
    """Overlapping boxes whose areas are within a factor of two of each other."""
    if first is None or second is None or first.area <= 0 or second.area <= 0:
        return False
    ratio = first.area / second.area
    return low <= ratio <= high and first.intersection(second) is not None


class EmptyLinkTagVisitor(Visitor):
    """
    Find Link tags that hold only their annotation while the link text sits
    in the marked content right before them.
    """

    name = "Empty Link Tags"
    description = "Link tags should contain the link text"

    def enter_element(self, vctx):
        tree = vctx.tree
        kids = tree.kids(vctx.handle)
        for previous, kid in zip(kids, kids[1:]):
            if not isinstance(previous, MarkedContentRef) or not is_element(kid):
                continue
            if tree.mapped_role(kid) != "Link":
                continue
            link_kids = tree.kids(kid)
            if any(isinstance(item, MarkedContentRef) for item in link_kids):
                continue
            annotation = self._annotation(vctx.doc, link_kids)
            if annotation is None:
                continue
            content_bounds = vctx.doc.mcid_bounds(previous.page).get(previous.mcid)
            if not bounds_are_similar(content_bounds, annotation.bounds()):
                continue
            self.issues.append(
                Issue(
                    IssueType.EMPTY_LINK_TAG,
                    IssueSeverity.WARNING,
                    f"Link tag after content in {vctx.role} is missing its content",
                    location=IssueLocation.at_element(kid, previous.page),
                    fix=MoveSiblingMcrIntoLink(kid, previous, annotation.object_number),
                )
            )
        return True

    @staticmethod
    def _annotation(doc, link_kids):
        for item in link_kids:
            if isinstance(item, ObjectRef):
                annotation = doc.annotation(item.object_number)
                if annotation is not None and not annotation.removed:
                    return annotation
        return None
