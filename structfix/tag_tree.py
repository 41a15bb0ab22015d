"""
In-memory model of a document's tagged (structure) tree.

Nodes live in an arena and are addressed by integer handles. Children are
stored as ordered lists of handles or content references, parents as
handles, so splice/flatten operations never leave dangling references.
Handle ``ROOT`` is the structure tree root itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

from structfix.tag_schema import is_standard_role

logger = logging.getLogger(__name__)

ROOT = 0
ROOT_ROLE = "StructTreeRoot"

# Attributes settable through TagTree.set_attribute
ELEMENT_ATTRIBUTES = ("title", "alt", "actual_text", "page")

_MAX_ROLE_MAP_DEPTH = 8


@dataclass(frozen=True)
class MarkedContentRef:
    """Leaf pointing at a marked-content sequence (MCID) on a page."""

    mcid: int
    page: int


@dataclass(frozen=True)
class ObjectRef:
    """Leaf pointing at an annotation-like object on a page."""

    object_number: int
    page: int


ContentRef = Union[MarkedContentRef, ObjectRef]
Kid = Union[int, MarkedContentRef, ObjectRef]


@dataclass
class TagNode:
    handle: int
    role: str
    kids: List[Kid] = field(default_factory=list)
    parent: Optional[int] = None
    page: Optional[int] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    actual_text: Optional[str] = None
    object_number: Optional[int] = None


def is_element(kid: Kid) -> bool:
    return isinstance(kid, int) and not isinstance(kid, bool)


class TagTree:
    """Arena-backed structure tree with the read/write primitives rules and fixes use."""

    def __init__(self, role_map: Optional[Dict[str, str]] = None):
        self._nodes: List[TagNode] = [TagNode(handle=ROOT, role=ROOT_ROLE)]
        self.role_map: Dict[str, str] = dict(role_map or {})

    # ------------------------------------------------------------------ read

    @property
    def root(self) -> int:
        return ROOT

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, handle: int) -> TagNode:
        try:
            return self._nodes[handle]
        except (IndexError, TypeError):
            raise KeyError(f"Unknown tag handle: {handle!r}") from None

    def kids(self, handle: int) -> List[Kid]:
        return list(self.node(handle).kids)

    def struct_kids(self, handle: int) -> List[int]:
        return [kid for kid in self.node(handle).kids if is_element(kid)]

    def parent(self, handle: int) -> Optional[int]:
        return self.node(handle).parent

    def role(self, handle: int) -> str:
        return self.node(handle).role

    def mapped_role(self, handle: int) -> str:
        """Role after following the role map to a standard structure type."""
        role = self.node(handle).role
        seen = 0
        while not is_standard_role(role) and role in self.role_map and seen < _MAX_ROLE_MAP_DEPTH:
            role = self.role_map[role]
            seen += 1
        return role

    def is_attached(self, handle: int) -> bool:
        """True when the node is reachable from the root."""
        current: Optional[int] = handle
        while current is not None:
            if current == ROOT:
                return True
            current = self._nodes[current].parent
        return False

    def ancestors(self, handle: int) -> Iterator[int]:
        """Yield parent handles from nearest to farthest, excluding the root."""
        current = self.node(handle).parent
        while current is not None and current != ROOT:
            yield current
            current = self._nodes[current].parent

    def is_descendant_of(self, handle: int, ancestor: int) -> bool:
        if handle == ancestor:
            return False
        current = self.node(handle).parent
        while current is not None:
            if current == ancestor:
                return True
            current = self._nodes[current].parent
        return False

    def depth(self, handle: int) -> int:
        """Depth below the root; root kids have depth 0."""
        return sum(1 for _ in self.ancestors(handle))

    def index_of(self, parent: int, kid: Kid) -> int:
        kids = self.node(parent).kids
        for index, existing in enumerate(kids):
            if existing == kid and type(existing) is type(kid):
                return index
        return -1

    def iter_preorder(self, start: int = ROOT) -> Iterator[int]:
        """Yield element handles below ``start`` in document order (``start`` excluded)."""
        stack = list(reversed(self.struct_kids(start)))
        while stack:
            handle = stack.pop()
            yield handle
            stack.extend(reversed(self.struct_kids(handle)))

    def find_children(self, handle: int, role: str) -> List[int]:
        return [kid for kid in self.struct_kids(handle) if self.mapped_role(kid) == role]

    def document_element(self) -> Optional[int]:
        """First root kid whose mapped role is Document."""
        for kid in self.struct_kids(ROOT):
            if self.mapped_role(kid) == "Document":
                return kid
        return None

    def content_refs(self, handle: int) -> List[MarkedContentRef]:
        """All marked-content references in the subtree, in document order."""
        refs: List[MarkedContentRef] = []
        self._collect(handle, MarkedContentRef, refs)
        return refs

    def object_refs(self, handle: int) -> List[ObjectRef]:
        refs: List[ObjectRef] = []
        self._collect(handle, ObjectRef, refs)
        return refs

    def _collect(self, handle: int, kind: type, out: list) -> None:
        stack: List[Kid] = [handle]
        while stack:
            current = stack.pop()
            if isinstance(current, kind):
                out.append(current)
            elif is_element(current):
                stack.extend(reversed(self._nodes[current].kids))

    def content_page(self, handle: int) -> int:
        """Page of the node itself or, failing that, of its first descendant with one."""
        stack: List[Kid] = [handle]
        while stack:
            current = stack.pop()
            if isinstance(current, (MarkedContentRef, ObjectRef)):
                if current.page:
                    return current.page
                continue
            node = self._nodes[current]
            if node.page:
                return node.page
            stack.extend(reversed(node.kids))
        return 0

    def resolve_page(self, handle: int) -> int:
        """Page association with inheritance from content first, then ancestors; 0 if unknown."""
        page = self.content_page(handle)
        if page:
            return page
        for ancestor in self.ancestors(handle):
            ancestor_page = self._nodes[ancestor].page
            if ancestor_page:
                return ancestor_page
        return 0

    def describe(self, handle: int) -> str:
        node = self.node(handle)
        if node.object_number is not None:
            return f"{node.role} (obj. #{node.object_number})"
        return f"{node.role} (#{handle})"

    def render(self, handle: int = ROOT, include_content: bool = False) -> str:
        """Bracketed role outline, e.g. ``Document[Part[H1,P],Part[P]]``."""
        parts = []
        for kid in self.node(handle).kids:
            if is_element(kid):
                parts.append(self._render_element(kid, include_content))
            elif include_content and isinstance(kid, MarkedContentRef):
                parts.append(f"mcid{kid.mcid}@p{kid.page}")
            elif include_content and isinstance(kid, ObjectRef):
                parts.append(f"obj{kid.object_number}@p{kid.page}")
        return ",".join(parts)

    def _render_element(self, handle: int, include_content: bool) -> str:
        inner = self.render(handle, include_content)
        role = self._nodes[handle].role
        return f"{role}[{inner}]" if inner else role

    # ----------------------------------------------------------------- write

    def new_element(
        self,
        role: str,
        page: Optional[int] = None,
        title: Optional[str] = None,
        object_number: Optional[int] = None,
    ) -> int:
        """Create a detached element and return its handle."""
        handle = len(self._nodes)
        self._nodes.append(
            TagNode(handle=handle, role=role, page=page, title=title, object_number=object_number)
        )
        return handle

    def add_kid(self, parent: int, kid: Kid) -> None:
        self.insert_kid(parent, len(self.node(parent).kids), kid)

    def insert_kid(self, parent: int, index: int, kid: Kid) -> None:
        target = self.node(parent)
        if is_element(kid):
            if kid == parent or self.is_descendant_of(parent, kid):
                raise ValueError(f"Cannot move {self.describe(kid)} under its own descendant")
            old_parent = self._nodes[kid].parent
            if old_parent is not None:
                old_index = self.index_of(old_parent, kid)
                if old_index >= 0:
                    del self._nodes[old_parent].kids[old_index]
                    if old_parent == parent and old_index < index:
                        index -= 1
            self._nodes[kid].parent = parent
        index = max(0, min(index, len(target.kids)))
        target.kids.insert(index, kid)

    def remove_kid(self, parent: int, kid: Kid) -> int:
        """Remove ``kid`` from ``parent``; returns its former index or -1 if absent."""
        index = self.index_of(parent, kid)
        if index < 0:
            return -1
        del self.node(parent).kids[index]
        if is_element(kid):
            self._nodes[kid].parent = None
        return index

    def detach(self, handle: int) -> int:
        parent = self.node(handle).parent
        if parent is None:
            return -1
        return self.remove_kid(parent, handle)

    def set_role(self, handle: int, role: str) -> None:
        node = self.node(handle)
        if node.role != role:
            logger.debug("[TagTree] %s retagged as %s", self.describe(handle), role)
            node.role = role

    def set_attribute(self, handle: int, name: str, value) -> None:
        if name not in ELEMENT_ATTRIBUTES:
            raise ValueError(f"Unsupported element attribute: {name}")
        setattr(self.node(handle), name, value)

    def wrap(self, handle: int, role: str, **attributes) -> int:
        """Insert a new ``role`` element at ``handle``'s position and move ``handle`` into it."""
        parent = self.node(handle).parent
        if parent is None:
            raise ValueError(f"Cannot wrap detached element {self.describe(handle)}")
        wrapper = self.new_element(role, **attributes)
        index = self.index_of(parent, handle)
        self.insert_kid(parent, index, wrapper)
        self.add_kid(wrapper, handle)
        return wrapper
