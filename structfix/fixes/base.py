"""
Base class for executable remediations attached to issues.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from structfix.document_context import DocumentContext

# Lower priorities run first
P_DOCUMENT_SETUP = 10
P_ARTIFACT = 12
P_REMOVE_WIDGET = 12
P_FLATTEN = 15
P_PAGE_PARTS = 19
P_STRUCTURE = 20
P_LIGATURES = 20
P_LINK_TAGS = 22
P_LINK_CONTENT = 24
P_REMOVE_EMPTY = 25
P_LIST_ITEMS = 30
P_REVIEW_FLAGS = 40


class IssueFix(ABC):
    """
    A remediation for one issue.

    ``apply`` must be idempotent: running it against a document that already
    satisfies the fix leaves the document unchanged.
    """

    priority: int = P_STRUCTURE

    # 0 means "one item per issue"
    resolved_item_count: int = 0

    @abstractmethod
    def apply(self, ctx: "DocumentContext") -> None:
        ...

    @abstractmethod
    def describe(self, ctx: "DocumentContext") -> str:
        ...

    @property
    def group_label(self) -> str:
        return self.__class__.__name__

    def invalidates(self, other: "IssueFix") -> bool:
        """True when applying this fix makes ``other`` stale."""
        return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} priority={self.priority}>"
