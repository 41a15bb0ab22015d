"""Structural and document-level fixes applied by the check engine."""

from .base import IssueFix
from .artifact_fixes import ConvertToArtifact
from .bullet_fixes import WrapBulletAlignedKidsInList, WrapParagraphRunInList
from .figure_fixes import ChangeFigureRole
from .document_fixes import SetDocumentLanguage, SetMarkedFlag, SetTabOrder, WrapInDocument
from .ligature_fixes import RemapLigatures
from .link_fixes import CreateLinkTag, MoveSiblingMcrIntoLink
from .list_fixes import (
    FlagForReview,
    ListifyParagraphOfLinks,
    NormalizeListItem,
    RegroupListParagraphs,
    WrapInListItem,
)
from .nesting_fixes import FlattenNesting, RemoveEmptyElements
from .page_parts_fixes import NormalizePageParts
from .widget_fixes import RemoveWidgetAnnotation

__all__ = [
    "IssueFix",
    "ConvertToArtifact",
    "WrapBulletAlignedKidsInList",
    "WrapParagraphRunInList",
    "ChangeFigureRole",
    "SetDocumentLanguage",
    "SetMarkedFlag",
    "SetTabOrder",
    "WrapInDocument",
    "RemapLigatures",
    "CreateLinkTag",
    "MoveSiblingMcrIntoLink",
    "FlagForReview",
    "ListifyParagraphOfLinks",
    "NormalizeListItem",
    "RegroupListParagraphs",
    "WrapInListItem",
    "FlattenNesting",
    "RemoveEmptyElements",
    "NormalizePageParts",
    "RemoveWidgetAnnotation",
]
