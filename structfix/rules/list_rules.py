"""
List structure rules.

An LI is classified by its structure children (content references are
ignored):

    0 kids            -> warning "empty LI"
    P                 -> wrap in LBody, missing Lbl
    Lbl / LBody       -> warning, the other half is missing
    Lbl, LBody        -> fine
    P, LBody          -> first becomes Lbl
    P, P              -> Lbl, LBody (two changes)
    anything else     -> warning

Warnings carry a review flag that marks the element and its ancestors.

A P holding nothing but two or more Link tags is a list of links.
"""

import logging

from structfix.fixes.list_fixes import (
    P_TO_LBL,
    PP_TO_LBL_LBODY,
    WRAP_SINGLE_P,
    FlagForReview,
    ListifyParagraphOfLinks,
    NormalizeListItem,
    RegroupListParagraphs,
    WrapInListItem,
)
from structfix.issues import Issue, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Visitor

logger = logging.getLogger(__name__)


class ListItemVisitor(Visitor):
    name = "List Structure"
    description = "Lists should be made of LI elements holding Lbl and LBody"

    def enter_element(self, vctx):
        if vctx.role == "LI":
            self._check_list_item(vctx)
        elif vctx.role == "L":
            self._check_list(vctx)
        return True

    def _check_list_item(self, vctx):
        roles = vctx.child_roles
        count = len(roles)

        if count == 0:
            self._warn(vctx, "empty LI", "LI contains no structure elements")
        elif count == 1:
            only = roles[0]
            if only == "P":
                self._change(vctx, WRAP_SINGLE_P, "LI has a single P; enclosing it in LBody (missing Lbl)")
            elif only == "Lbl":
                self._warn(vctx, "missing LBody", "LI has a Lbl but no LBody")
            elif only == "LBody":
                self._warn(vctx, "missing Lbl", "LI has a LBody but no Lbl")
            else:
                self._warn(vctx, f"unexpected single child {only}", f"LI has unexpected single child {only}")
        elif count == 2:
            pair = tuple(roles)
            if pair == ("Lbl", "LBody"):
                return
            if pair == ("P", "LBody"):
                self._change(vctx, P_TO_LBL, "LI starts with P instead of Lbl")
            elif pair == ("P", "P"):
                self._change(vctx, PP_TO_LBL_LBODY, "LI holds P+P instead of Lbl+LBody")
            else:
                reason = f"unexpected children: {pair[0]}+{pair[1]}"
                self._warn(vctx, reason, f"LI has {reason}")
        else:
            reason = f"too many children ({count})"
            self._warn(vctx, reason, f"LI has {reason}")

    def _check_list(self, vctx):
        roles = vctx.child_roles
        if roles and len(roles) % 2 == 0 and all(role == "P" for role in roles):
            self.issues.append(
                Issue(
                    IssueType.LIST_ITEM_MALFORMED,
                    IssueSeverity.WARNING,
                    f"L holds {len(roles)} P elements instead of list items",
                    location=IssueLocation.at_element(vctx.handle, vctx.page),
                    fix=RegroupListParagraphs(vctx.handle),
                )
            )
            return

        for child, role in zip(vctx.children, roles):
            if role == "P":
                self.issues.append(
                    Issue(
                        IssueType.LIST_ITEM_MALFORMED,
                        IssueSeverity.WARNING,
                        "L has a P outside any LI",
                        location=IssueLocation.at_element(child, vctx.tree.resolve_page(child)),
                        fix=WrapInListItem(child),
                    )
                )

    def _change(self, vctx, action, message):
        self.issues.append(
            Issue(
                IssueType.LIST_ITEM_MALFORMED,
                IssueSeverity.WARNING,
                message,
                location=IssueLocation.at_element(vctx.handle, vctx.page),
                fix=NormalizeListItem(vctx.handle, action),
            )
        )

    def _warn(self, vctx, reason, message):
        logger.debug("[ListItemVisitor] %s: %s", vctx.path, reason)
        self.issues.append(
            Issue(
                IssueType.LIST_ITEM_MALFORMED,
                IssueSeverity.WARNING,
                message,
                location=IssueLocation.at_element(vctx.handle, vctx.page),
                fix=FlagForReview(vctx.handle, reason),
            )
        )


class ParagraphOfLinksVisitor(Visitor):
    name = "Paragraph of Links"
    description = "A run of links tagged as one paragraph should be a list"

    def enter_element(self, vctx):
        if vctx.role != "P" or len(vctx.children) < 2:
            return True
        # Content beside the links rules out a list
        if len(vctx.tree.kids(vctx.handle)) != len(vctx.children):
            return True
        if any(role != "Link" for role in vctx.child_roles):
            return True
        self.issues.append(
            Issue(
                IssueType.PARAGRAPH_OF_LINKS,
                IssueSeverity.ERROR,
                "Paragraph contains only links",
                location=IssueLocation.at_element(vctx.handle, vctx.page),
                fix=ListifyParagraphOfLinks(vctx.handle),
            )
        )
        return True
