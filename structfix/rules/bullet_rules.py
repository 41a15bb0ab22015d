"""
Lists that were tagged as paragraphs, recognised by the vector bullet glyphs
drawn beside them.
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from structfix.config import get_bullet_max_element_height, get_bullet_y_tolerance
from structfix.fixes.bullet_fixes import WrapBulletAlignedKidsInList, WrapParagraphRunInList
from structfix.geometry import Rect
from structfix.issues import Issue, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Visitor
from structfix.tag_schema import LIST_ROLES, SECTION_CONTAINER_ROLES, TABLE_ROLES
from structfix.tag_tree import MarkedContentRef

logger = logging.getLogger(__name__)

MIN_RUN_LENGTH = 1

SKIP_ROLES = SECTION_CONTAINER_ROLES | LIST_ROLES | TABLE_ROLES


class BulletGlyphVisitor(Visitor):
    name = "Bullet Glyph Lists"
    description = "Content beside bullet glyphs should be tagged as a list"

    def __init__(self, tolerance: Optional[float] = None, max_height: Optional[float] = None):
        super().__init__()
        self.tolerance = get_bullet_y_tolerance(tolerance)
        self.max_height = get_bullet_max_element_height(max_height)

    def leave_element(self, vctx):
        if vctx.role not in SECTION_CONTAINER_ROLES:
            return
        tree = vctx.tree
        doc = vctx.doc
        run: List[int] = []

        for child in vctx.children:
            if tree.mapped_role(child) in SKIP_ROLES:
                self._flush(vctx, run)
                continue
            page = tree.resolve_page(child)
            bullets = doc.bullet_positions(page) if page else []
            bounds = doc.bounds_for(child, page=page) if bullets else None
            if bounds is None:
                self._flush(vctx, run)
                continue
            if bounds.height <= self.max_height:
                if self._matching_bullet(bounds, bullets) is not None:
                    run.append(child)
                else:
                    self._flush(vctx, run)
                continue
            self._flush(vctx, run)
            self._drill_into(vctx, child, page, bullets)

        self._flush(vctx, run)

    def _matching_bullet(self, bounds: Rect, bullets: List[float]) -> Optional[float]:
        centre = (bounds.y0 + bounds.y1) / 2
        matches = [y for y in bullets if bounds.spans_y(y, self.tolerance)]
        if not matches:
            return None
        return min(matches, key=lambda y: abs(y - centre))

    def _flush(self, vctx, run: List[int]) -> None:
        if len(run) >= MIN_RUN_LENGTH:
            first = run[0]
            self.issues.append(
                Issue(
                    IssueType.LIST_TAGGED_AS_PARAGRAPHS,
                    IssueSeverity.WARNING,
                    f"{len(run)} elements aligned with vector bullet glyphs",
                    location=IssueLocation.at_element(first, vctx.tree.resolve_page(first)),
                    fix=WrapParagraphRunInList(list(run)),
                )
            )
        run.clear()

    def _drill_into(self, vctx, element: int, page: int, bullets: List[float]) -> None:
        """Group an oversized element's own content references by the bullet they sit beside."""
        tree = vctx.tree
        groups: Dict[float, List[MarkedContentRef]] = OrderedDict()
        for kid in tree.kids(element):
            if not isinstance(kid, MarkedContentRef) or kid.page != page:
                continue
            bounds = vctx.doc.bounds_for(kid)
            if bounds is None or bounds.height > self.max_height:
                continue
            bullet = self._matching_bullet(bounds, bullets)
            if bullet is not None:
                groups.setdefault(bullet, []).append(kid)

        role = tree.mapped_role(element)
        for bullet, refs in groups.items():
            logger.debug("[BulletGlyphVisitor] %d item(s) in %s beside bullet at y=%s", len(refs), role, bullet)
            self.issues.append(
                Issue(
                    IssueType.BULLET_ALIGNED_KIDS_IN_ELEMENT,
                    IssueSeverity.WARNING,
                    f"{len(refs)} content item(s) in {role} aligned with bullet at y={bullet:g}",
                    location=IssueLocation.at_element(element, page),
                    fix=WrapBulletAlignedKidsInList(element, bullet, refs),
                )
            )
