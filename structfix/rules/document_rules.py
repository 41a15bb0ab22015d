"""
Whole-document checks: preconditions, catalog flags and the Document wrapper.
"""

import logging

from structfix.fixes.document_fixes import SetDocumentLanguage, SetMarkedFlag, SetTabOrder, WrapInDocument
from structfix.issues import Issue, IssueList, IssueSeverity, IssueType
from structfix.rules.base import Check
from structfix.tag_tree import ROOT

logger = logging.getLogger(__name__)


class StructureTreeCheck(Check):
    name = "Structure Tree"

    def find_issues(self, ctx):
        if ctx.has_struct_tree:
            return IssueList()
        return IssueList([
            Issue(IssueType.NO_STRUCT_TREE, IssueSeverity.FATAL, "Document has no structure tree")
        ])


class ImageOnlyDocumentCheck(Check):
    """Scanned documents: no structure tree, no text, but images on the pages."""

    name = "Image Only Document"

    def find_issues(self, ctx):
        if ctx.has_struct_tree or ctx.has_extractable_text() or not ctx.has_image_content():
            return IssueList()
        message = (
            "This PDF has no structure tree and no extractable text content. "
            "It appears to be an image-only document. "
            "OCR is required before accessibility remediation can proceed."
        )
        return IssueList([Issue(IssueType.IMAGE_ONLY_DOCUMENT, IssueSeverity.FATAL, message)])


class TaggedPdfCheck(Check):
    name = "Tagged PDF"

    def find_issues(self, ctx):
        if ctx.info.marked:
            return IssueList()
        return IssueList([
            Issue(
                IssueType.NOT_TAGGED_PDF,
                IssueSeverity.ERROR,
                "Document is not marked as tagged PDF (Marked flag not set in MarkInfo dictionary)",
                fix=SetMarkedFlag(),
            )
        ])


class LanguageCheck(Check):
    name = "Document Language"

    def find_issues(self, ctx):
        if ctx.info.language:
            return IssueList()
        return IssueList([
            Issue(
                IssueType.LANGUAGE_NOT_SET,
                IssueSeverity.ERROR,
                "Document-level language attribute is not set",
                fix=SetDocumentLanguage(),
            )
        ])


class TabOrderCheck(Check):
    name = "Tab Order"

    def find_issues(self, ctx):
        if ctx.page_count == 0 or ctx.info.tab_orders.get(1):
            return IssueList()
        return IssueList([
            Issue(
                IssueType.TAB_ORDER_NOT_SET,
                IssueSeverity.ERROR,
                "Document tab order is not set",
                fix=SetTabOrder(),
            )
        ])


class MissingDocumentCheck(Check):
    name = "Document Element"

    def find_issues(self, ctx):
        tree = ctx.tree
        if tree is None or not tree.struct_kids(ROOT) or tree.document_element() is not None:
            return IssueList()
        return IssueList([
            Issue(
                IssueType.MISSING_DOCUMENT_ELEMENT,
                IssueSeverity.ERROR,
                "Structure tree root has no Document element",
                fix=WrapInDocument(),
            )
        ])
