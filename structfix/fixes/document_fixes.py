"""
Document setup fixes: the Document wrapper and catalog-level flags.
"""

import logging

from structfix.config import get_default_language
from structfix.fixes.base import IssueFix, P_DOCUMENT_SETUP
from structfix.tag_schema import DOCUMENT_ROLE
from structfix.tag_tree import ROOT

logger = logging.getLogger(__name__)


class WrapInDocument(IssueFix):
    """Move every root element under a new Document element, preserving order."""

    priority = P_DOCUMENT_SETUP

    def __init__(self):
        self.wrapped = 0

    def apply(self, ctx):
        tree = ctx.tree
        if tree.document_element() is not None:
            return
        root_kids = tree.struct_kids(ROOT)
        page = tree.content_page(root_kids[0]) if root_kids else 0
        document = tree.new_element(DOCUMENT_ROLE, page=page or None)
        tree.add_kid(ROOT, document)
        for kid in root_kids:
            tree.add_kid(document, kid)
        self.wrapped = len(root_kids)
        logger.info("[WrapInDocument] Wrapped %d root element(s) in Document", self.wrapped)

    def describe(self, ctx):
        return f"Wrapped {self.wrapped} root element(s) in Document"

    @property
    def group_label(self):
        return "Document wrappers created"


class SetDocumentLanguage(IssueFix):
    priority = P_DOCUMENT_SETUP

    def __init__(self, language=None):
        self.language = get_default_language(language)

    def apply(self, ctx):
        if not ctx.info.language:
            ctx.info.language = self.language

    def describe(self, ctx):
        return f"Set document language to {self.language}"

    @property
    def group_label(self):
        return "document language set"


class SetTabOrder(IssueFix):
    """Use structure order (/Tabs /S) on every page."""

    priority = P_DOCUMENT_SETUP

    def apply(self, ctx):
        for page in range(1, ctx.page_count + 1):
            ctx.info.tab_orders[page] = "S"

    def describe(self, ctx):
        return "Set document tab order"

    @property
    def group_label(self):
        return "tab order set"


class SetMarkedFlag(IssueFix):
    priority = P_DOCUMENT_SETUP

    def apply(self, ctx):
        ctx.info.marked = True

    def describe(self, ctx):
        return "Set Marked flag to true in MarkInfo dictionary"

    @property
    def group_label(self):
        return "tagged flag set"
