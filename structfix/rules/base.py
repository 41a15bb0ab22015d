"""
The two rule families: stateless document checks and stateful tree visitors.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Tuple, Type

from structfix.issues import IssueList

if TYPE_CHECKING:
    from structfix.document_context import DocumentContext
    from structfix.tree_walker import VisitorContext


class Check(ABC):
    """Whole-document rule run once per detection pass."""

    name: str = ""

    @abstractmethod
    def find_issues(self, ctx: "DocumentContext") -> IssueList:
        ...


class Visitor(ABC):
    """
    Tree-walking rule. One instance serves exactly one traversal; the engine
    builds a fresh instance for every run.
    """

    name: str = ""
    description: str = ""

    # Visitor classes that must be registered earlier in the same engine
    prerequisites: Tuple[Type["Visitor"], ...] = ()

    def __init__(self):
        self.issues = IssueList()

    def before_traversal(self, ctx: "DocumentContext") -> None:
        pass

    def enter_element(self, vctx: "VisitorContext") -> bool:
        """Return False to skip this element's children for this visitor."""
        return True

    def leave_element(self, vctx: "VisitorContext") -> None:
        pass

    def after_traversal(self, ctx: "DocumentContext") -> None:
        pass

    def get_issues(self) -> IssueList:
        return self.issues
