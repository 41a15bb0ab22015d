"""
Issue model: what a rule found, where, and how it was dealt with.

Rules create issues during detection. Only the check engine changes an
issue afterwards, to record that its fix resolved it or failed.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from structfix.fixes.base import IssueFix


class IssueSeverity(Enum):
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"


class IssueType(Enum):
    NO_STRUCT_TREE = ("no-struct-tree", "documents without a structure tree")
    IMAGE_ONLY_DOCUMENT = ("image-only-document", "image-only documents")
    NOT_TAGGED_PDF = ("not-tagged-pdf", "documents not marked as tagged")
    LANGUAGE_NOT_SET = ("language-not-set", "missing document language")
    TAB_ORDER_NOT_SET = ("tab-order-not-set", "missing tab order")
    MISSING_DOCUMENT_ELEMENT = ("missing-document-element", "missing Document elements")
    PAGE_PARTS_NOT_NORMALIZED = ("page-parts-not-normalized", "pages without Part elements")
    NEEDLESS_NESTING = ("needless-nesting", "needless grouping elements")
    MISTAGGED_ARTIFACT = ("mistagged-artifact", "tagged content that should be artifacts")
    FIGURE_MISSING_ALT = ("figure-missing-alt", "figures without alt text")
    UNMARKED_LINK = ("unmarked-link", "untagged link annotations")
    EMPTY_ELEMENT = ("empty-element", "empty structure elements")
    LIST_ITEM_MALFORMED = ("list-item-malformed", "malformed list items")
    LIST_TAGGED_AS_PARAGRAPHS = ("list-tagged-as-paragraphs", "lists tagged as paragraphs")
    BULLET_ALIGNED_KIDS_IN_ELEMENT = ("bullet-aligned-kids", "bulleted content inside paragraphs")
    LIGATURE_MAPPING_BROKEN = ("ligature-mapping-broken", "broken ligature mappings")
    FIGURE_WITH_TEXT = ("figure-with-text", "figures that contain text")
    EMPTY_LINK_TAG = ("empty-link-tag", "Link tags missing their content")
    PARAGRAPH_OF_LINKS = ("paragraph-of-links", "paragraphs holding only links")
    UNEXPECTED_WIDGET = ("unexpected-widget", "unexpected Widget annotations")
    TAG_UNKNOWN_ROLE = ("tag-unknown-role", "unknown structure roles")
    TAG_WRONG_PARENT = ("tag-wrong-parent", "elements under the wrong parent")
    TAG_WRONG_CHILD_COUNT = ("tag-wrong-child-count", "elements with the wrong number of children")
    TAG_WRONG_CHILD = ("tag-wrong-child", "children not allowed under their parent")
    TAG_WRONG_CHILD_PATTERN = ("tag-wrong-child-pattern", "children out of order")

    def __init__(self, code: str, group_label: str):
        self.code = code
        self.group_label = group_label


@dataclass(frozen=True)
class IssueLocation:
    page: Optional[int] = None
    element: Optional[int] = None
    object_number: Optional[int] = None

    @classmethod
    def none(cls) -> "IssueLocation":
        return cls()

    @classmethod
    def at_page(cls, page: int) -> "IssueLocation":
        return cls(page=page or None)

    @classmethod
    def at_element(cls, handle: int, page: Optional[int] = None) -> "IssueLocation":
        return cls(page=page or None, element=handle)

    @classmethod
    def at_object(cls, object_number: int, page: Optional[int] = None) -> "IssueLocation":
        return cls(page=page or None, object_number=object_number)

    def __str__(self) -> str:
        parts = []
        if self.page:
            parts.append(f"p. {self.page}")
        if self.object_number is not None:
            parts.append(f"obj. #{self.object_number}")
        return ", ".join(parts)


@dataclass
class Issue:
    type: IssueType
    severity: IssueSeverity
    message: str
    location: IssueLocation = field(default_factory=IssueLocation.none)
    fix: Optional["IssueFix"] = None
    resolved: bool = False
    failed: bool = False
    resolution_note: Optional[str] = None

    def mark_resolved(self, note: str) -> None:
        self.resolved = True
        self.failed = False
        self.resolution_note = note

    def mark_failed(self, note: str) -> None:
        self.failed = True
        self.resolved = False
        self.resolution_note = note

    @property
    def is_fatal(self) -> bool:
        return self.severity is IssueSeverity.FATAL

    def __str__(self) -> str:
        where = str(self.location)
        return f"{self.message} ({where})" if where else self.message


class IssueList(list):
    """Ordered list of issues with status filters."""

    def __init__(self, issues: Optional[Iterable[Issue]] = None):
        super().__init__(issues or [])

    def resolved(self) -> "IssueList":
        return IssueList(issue for issue in self if issue.resolved)

    def remaining(self) -> "IssueList":
        return IssueList(issue for issue in self if not issue.resolved)

    def failed(self) -> "IssueList":
        return IssueList(issue for issue in self if issue.failed)

    def with_fix(self) -> "IssueList":
        return IssueList(issue for issue in self if issue.fix is not None)

    def has_fatal(self) -> bool:
        return any(issue.is_fatal for issue in self)

    def of_type(self, issue_type: IssueType) -> "IssueList":
        return IssueList(issue for issue in self if issue.type is issue_type)

    def by_type(self) -> Dict[IssueType, List[Issue]]:
        grouped: Dict[IssueType, List[Issue]] = OrderedDict()
        for issue in self:
            grouped.setdefault(issue.type, []).append(issue)
        return grouped
