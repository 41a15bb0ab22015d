"""Detection rules: document checks and tree visitors, plus the default registration lists."""

from .base import Check, Visitor
from .artifact_rules import MissingAltTextVisitor, MistaggedArtifactVisitor
from .bullet_rules import BulletGlyphVisitor
from .document_rules import (
    ImageOnlyDocumentCheck,
    LanguageCheck,
    MissingDocumentCheck,
    StructureTreeCheck,
    TabOrderCheck,
    TaggedPdfCheck,
)
from .figure_rules import FigureWithTextVisitor
from .ligature_rules import BadlyMappedLigatureCheck
from .link_rules import EmptyLinkTagVisitor, UnmarkedLinkCheck
from .list_rules import ListItemVisitor, ParagraphOfLinksVisitor
from .nesting_rules import EmptyElementVisitor, NeedlessNestingVisitor
from .page_parts_rules import MissingPagePartsVisitor
from .schema_rules import SchemaValidationVisitor
from .widget_rules import UnexpectedWidgetCheck


def precondition_checks():
    """Checks whose FATAL issues stop the pipeline."""
    return [StructureTreeCheck(), ImageOnlyDocumentCheck()]


def tree_checks():
    return [MissingDocumentCheck(), UnexpectedWidgetCheck(), UnmarkedLinkCheck(), BadlyMappedLigatureCheck()]


def document_checks():
    return [LanguageCheck(), TabOrderCheck(), TaggedPdfCheck()]


# Order matters: prerequisites must come first
DEFAULT_VISITORS = (
    SchemaValidationVisitor,
    MistaggedArtifactVisitor,
    NeedlessNestingVisitor,
    MissingPagePartsVisitor,
    ListItemVisitor,
    ParagraphOfLinksVisitor,
    BulletGlyphVisitor,
    FigureWithTextVisitor,
    EmptyLinkTagVisitor,
    MissingAltTextVisitor,
    EmptyElementVisitor,
)

__all__ = [
    "Check",
    "Visitor",
    "MissingAltTextVisitor",
    "MistaggedArtifactVisitor",
    "BulletGlyphVisitor",
    "FigureWithTextVisitor",
    "ImageOnlyDocumentCheck",
    "LanguageCheck",
    "MissingDocumentCheck",
    "StructureTreeCheck",
    "TabOrderCheck",
    "TaggedPdfCheck",
    "BadlyMappedLigatureCheck",
    "EmptyLinkTagVisitor",
    "UnmarkedLinkCheck",
    "ListItemVisitor",
    "ParagraphOfLinksVisitor",
    "EmptyElementVisitor",
    "NeedlessNestingVisitor",
    "MissingPagePartsVisitor",
    "SchemaValidationVisitor",
    "UnexpectedWidgetCheck",
    "precondition_checks",
    "tree_checks",
    "document_checks",
    "DEFAULT_VISITORS",
]
