"""
Page furniture and image rules.

Running footers (URL plus print timestamp), bare timestamps, page numbers
and small decorative images should be artifacts, not tagged content.
Meaningful figures should carry alternative text.
"""

import logging
import re
from typing import Optional

from structfix.config import MEANINGFUL_IMAGE_MIN_HEIGHT, MEANINGFUL_IMAGE_MIN_WIDTH
from structfix.content_source import ContentKind
from structfix.fixes.artifact_fixes import ConvertToArtifact
from structfix.geometry import Rect
from structfix.issues import Issue, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Visitor
from structfix.tag_schema import ARTIFACT_CANDIDATE_ROLES

logger = logging.getLogger(__name__)

FOOTER_URL_TIMESTAMP = re.compile(
    r"https?://[^\s]+.*\[\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2}\s*[AP]M\]",
    re.IGNORECASE,
)
TIMESTAMP_ONLY = re.compile(
    r"^\s*\[\d{1,2}/\d{1,2}/\d{4}\s+\d{1,2}:\d{2}:\d{2}\s*[AP]M\]\s*$",
    re.IGNORECASE,
)
PAGE_NUMBER = re.compile(r"^\s*(Page\s+)?\d+\s*(of\s+\d+)?\s*$", re.IGNORECASE)

_PREVIEW_LENGTH = 40


def is_meaningful_size(bounds: Optional[Rect]) -> bool:
    return (
        bounds is not None
        and bounds.width > MEANINGFUL_IMAGE_MIN_WIDTH
        and bounds.height > MEANINGFUL_IMAGE_MIN_HEIGHT
    )


def looks_like_artifact_text(text: str, page_numbers: bool = True) -> bool:
    if not text or not text.strip():
        return False
    if FOOTER_URL_TIMESTAMP.search(text) or TIMESTAMP_ONLY.match(text):
        return True
    return page_numbers and bool(PAGE_NUMBER.match(text))


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) <= _PREVIEW_LENGTH:
        return text
    return text[:_PREVIEW_LENGTH - 3] + "..."


class MistaggedArtifactVisitor(Visitor):
    name = "Mistagged Artifacts"
    description = "Page furniture and decorative images should not be tagged"

    def enter_element(self, vctx):
        if vctx.role not in ARTIFACT_CANDIDATE_ROLES:
            return True

        doc = vctx.doc
        text = doc.text_for(vctx.handle)
        # A bare number in a list label is the item number
        if looks_like_artifact_text(text, page_numbers=vctx.role != "Lbl"):
            message = f'Tagged content should be artifact: "{_preview(text)}"'
        elif self._is_decorative_image(vctx, text):
            message = "Decorative image should be artifact"
        else:
            return True

        self.issues.append(
            Issue(
                IssueType.MISTAGGED_ARTIFACT,
                IssueSeverity.WARNING,
                message,
                location=IssueLocation.at_element(vctx.handle, vctx.page),
                fix=ConvertToArtifact(vctx.tree, vctx.handle),
            )
        )
        return False

    @staticmethod
    def _is_decorative_image(vctx, text: str) -> bool:
        if text.strip() or vctx.node.alt:
            return False
        if not vctx.tree.content_refs(vctx.handle):
            return False
        kinds = vctx.doc.kinds_for(vctx.handle)
        if ContentKind.IMAGE not in kinds or ContentKind.TEXT in kinds:
            return False
        bounds = vctx.doc.bounds_for(vctx.handle)
        return bounds is not None and not is_meaningful_size(bounds)


class MissingAltTextVisitor(Visitor):
    name = "Figure Alt Text"
    description = "Meaningful figures should have alternative text"

    def enter_element(self, vctx):
        if vctx.role != "Figure" or vctx.node.alt or vctx.node.actual_text:
            return True
        if vctx.page <= 0:
            return True
        if ContentKind.IMAGE not in vctx.doc.kinds_for(vctx.handle):
            return True
        if not is_meaningful_size(vctx.doc.bounds_for(vctx.handle)):
            return True
        self.issues.append(
            Issue(
                IssueType.FIGURE_MISSING_ALT,
                IssueSeverity.WARNING,
                "Figure without alt text",
                location=IssueLocation.at_element(vctx.handle, vctx.page),
            )
        )
        return True
