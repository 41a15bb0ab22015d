"""
Link tag repairs: tags for link annotations missing from the tag tree,
and content for Link tags that hold only their annotation.
"""

import logging
from typing import Optional, Tuple

from structfix.config import get_link_match_threshold
from structfix.errors import FixApplicationError
from structfix.fixes.base import IssueFix, P_LINK_CONTENT, P_LINK_TAGS
from structfix.fixes.page_parts_fixes import page_parts
from structfix.tag_schema import LINK_ANCHOR_EXCLUDED_ROLES
from structfix.tag_tree import MarkedContentRef, ObjectRef

logger = logging.getLogger(__name__)

_CONTENT_PREVIEW = 30


class CreateLinkTag(IssueFix):
    """
    Tag a link annotation under the element it visually overlaps most.

    Only elements with content on the annotation's page are candidates,
    measured by their bounds on that page alone, so a paragraph that runs
    across a page break can hold links on either page. The best candidate
    covers the largest share of the annotation; ties go to the deeper, then
    the smaller, element. Below the match threshold the Link is added to the
    page's Part or to the Document.
    """

    priority = P_LINK_TAGS

    def __init__(self, annotation, threshold: Optional[float] = None):
        self.annotation = annotation
        self.threshold = get_link_match_threshold(threshold)
        self.parent_description: Optional[str] = None

    def apply(self, ctx):
        annotation = self.annotation
        if annotation.struct_parent is not None or annotation.removed:
            return

        tree = ctx.tree
        document = tree.document_element()
        if document is None:
            raise FixApplicationError("No Document element to hold the Link tag")

        parent = self._best_anchor(ctx, document)
        if parent is None:
            parent = page_parts(tree, document).get(annotation.page, document)

        link = tree.new_element("Link", page=annotation.page)
        tree.add_kid(link, ObjectRef(annotation.object_number, annotation.page))
        tree.add_kid(parent, link)
        annotation.struct_parent = ctx.next_parent_tree_key()
        self.parent_description = tree.describe(parent)
        logger.debug(
            "[CreateLinkTag] Annotation #%s tagged under %s", annotation.object_number, self.parent_description
        )

    def _best_anchor(self, ctx, document) -> Optional[int]:
        tree = ctx.tree
        annotation_bounds = self.annotation.bounds()
        if annotation_bounds is None or annotation_bounds.area <= 0:
            return None

        best: Optional[int] = None
        best_key: Optional[Tuple[float, int, float]] = None
        for handle in tree.iter_preorder(document):
            if tree.mapped_role(handle) in LINK_ANCHOR_EXCLUDED_ROLES:
                continue
            bounds = ctx.bounds_for(handle, page=self.annotation.page)
            if bounds is None:
                continue
            score = bounds.intersection_area(annotation_bounds) / annotation_bounds.area
            if score <= 0:
                continue
            key = (score, tree.depth(handle), -bounds.area)
            if best_key is None or key > best_key:
                best, best_key = handle, key

        if best_key is None or best_key[0] < self.threshold:
            return None
        return best

    def describe(self, ctx):
        where = self.parent_description or "Document"
        return (
            f"Created Link tag for annotation #{self.annotation.object_number} "
            f"(p. {self.annotation.page}) under {where}"
        )

    @property
    def group_label(self):
        return "Link tags created"


class MoveSiblingMcrIntoLink(IssueFix):
    """
    Move the marked content just before a content-less Link tag into it.

    The Link's text was tagged as a sibling rather than inside the Link, so
    the annotation has no readable name.
    """

    priority = P_LINK_CONTENT

    def __init__(self, link: int, ref: MarkedContentRef, annotation_number: int):
        self.link = link
        self.ref = ref
        self.annotation_number = annotation_number
        self.text = ""

    def apply(self, ctx):
        tree = ctx.tree
        if not tree.is_attached(self.link) or tree.mapped_role(self.link) != "Link":
            return
        if any(isinstance(kid, MarkedContentRef) for kid in tree.kids(self.link)):
            return
        parent = tree.parent(self.link)
        index = tree.index_of(parent, self.link)
        if index < 1 or tree.kids(parent)[index - 1] != self.ref:
            logger.debug("[MoveSiblingMcrIntoLink] %s no longer follows its content", tree.describe(self.link))
            return
        tree.remove_kid(parent, self.ref)
        tree.insert_kid(self.link, 0, self.ref)
        self.text = ctx.text_for(self.ref)

    def describe(self, ctx):
        text = " ".join(self.text.split())
        if text:
            if len(text) > _CONTENT_PREVIEW:
                text = text[:_CONTENT_PREVIEW] + "..."
            return f'Moved sibling MCR "{text}" into Link'
        return f"Moved sibling MCR into Link for annotation obj. #{self.annotation_number}"

    @property
    def group_label(self):
        return "Link tags given their content"
