"""
Single-pass depth-first traversal driver for tree visitors.

Every registered visitor sees ``enter_element`` in pre-order and
``leave_element`` in post-order. A visitor that returns False from
``enter_element`` stops seeing that element's descendants; the other
visitors still descend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence

from structfix.errors import VisitorConfigurationError
from structfix.issues import IssueList
from structfix.tag_tree import ROOT, TagTree

if TYPE_CHECKING:
    from structfix.document_context import DocumentContext
    from structfix.rules.base import Visitor

logger = logging.getLogger(__name__)


@dataclass
class VisitorContext:
    """What a visitor knows about the element being visited."""

    doc: "DocumentContext"
    handle: int
    path: str
    role: str
    parent_role: Optional[str]
    depth: int
    global_index: int
    page: int
    children: List[int] = field(default_factory=list)
    child_roles: List[str] = field(default_factory=list)
    previous_siblings: List[int] = field(default_factory=list)
    object_number: Optional[int] = None

    @property
    def tree(self) -> TagTree:
        return self.doc.tree

    @property
    def node(self):
        return self.doc.tree.node(self.handle)


def validate_visitor_order(visitors: Sequence["Visitor"]) -> None:
    """Raise VisitorConfigurationError unless every prerequisite is registered earlier."""
    seen = []
    for visitor in visitors:
        for prerequisite in visitor.prerequisites:
            if not any(isinstance(earlier, prerequisite) for earlier in seen):
                raise VisitorConfigurationError(
                    f"{type(visitor).__name__} requires {prerequisite.__name__} to run first, "
                    "but it has not been registered or appears later in the visitor list"
                )
        seen.append(visitor)


class TreeWalker:
    def __init__(self, visitors: Sequence["Visitor"]):
        validate_visitor_order(visitors)
        self.visitors = list(visitors)
        self._global_index = 0

    def walk(self, ctx: "DocumentContext") -> IssueList:
        """Run every visitor over the tree and return their merged issues."""
        if ctx.tree is None:
            logger.debug("[TreeWalker] No structure tree, skipping %d visitor(s)", len(self.visitors))
            return IssueList()

        for visitor in self.visitors:
            visitor.before_traversal(ctx)

        self._global_index = 0
        visited: List[int] = []
        for kid in ctx.tree.struct_kids(ROOT):
            self._walk_element(ctx, kid, "", None, 0, self.visitors, visited)
            visited.append(kid)

        issues = IssueList()
        for visitor in self.visitors:
            visitor.after_traversal(ctx)
            issues.extend(visitor.get_issues())
        return issues

    def _walk_element(
        self,
        ctx: "DocumentContext",
        handle: int,
        parent_path: str,
        parent_role: Optional[str],
        depth: int,
        active: Sequence["Visitor"],
        previous_siblings: List[int],
    ) -> None:
        tree = ctx.tree
        self._global_index += 1
        role = tree.mapped_role(handle)
        path = f"{parent_path}/{role}[{self._global_index}]" if parent_path else f"{role}[{self._global_index}]"
        children = tree.struct_kids(handle)

        vctx = VisitorContext(
            doc=ctx,
            handle=handle,
            path=path,
            role=role,
            parent_role=parent_role,
            depth=depth,
            global_index=self._global_index,
            page=tree.resolve_page(handle),
            children=children,
            child_roles=[tree.mapped_role(kid) for kid in children],
            previous_siblings=list(previous_siblings),
            object_number=tree.node(handle).object_number,
        )

        descending = []
        for visitor in active:
            try:
                keep_going = visitor.enter_element(vctx)
            except Exception as exc:
                logger.warning("[TreeWalker] %s failed entering %s: %s", type(visitor).__name__, path, exc)
                keep_going = True
            if keep_going is not False:
                descending.append(visitor)

        if descending:
            visited: List[int] = []
            for kid in children:
                self._walk_element(ctx, kid, path, role, depth + 1, descending, visited)
                visited.append(kid)

        for visitor in active:
            try:
                visitor.leave_element(vctx)
            except Exception as exc:
                logger.warning("[TreeWalker] %s failed leaving %s: %s", type(visitor).__name__, path, exc)
