"""
Tag schema validation: every element's role, parent and children are
checked against the constraints in ``tag_schema.TAG_RULES``.

These issues are reported for review; none of them carries a fix.
"""

import logging
from typing import Dict, Optional

from structfix.issues import Issue, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Visitor
from structfix.tag_schema import TAG_RULES, TagRule, children_match, compile_child_pattern, is_standard_role

logger = logging.getLogger(__name__)


class SchemaValidationVisitor(Visitor):
    name = "Tag Schema"
    description = "Structure elements should follow the PDF tag schema"

    def __init__(self, rules: Optional[Dict[str, TagRule]] = None):
        super().__init__()
        self.rules = TAG_RULES if rules is None else rules
        self._patterns = {
            role: compile_child_pattern(rule.child_pattern)
            for role, rule in self.rules.items()
            if rule.child_pattern
        }

    def enter_element(self, vctx):
        role = vctx.role
        if not is_standard_role(role):
            self._report(vctx, IssueType.TAG_UNKNOWN_ROLE, f"<{role}> role is not defined in the tag schema")
            return True

        rule = self.rules.get(role)
        if rule is None:
            return True

        if rule.parent_must_be and vctx.parent_role is not None and vctx.parent_role not in rule.parent_must_be:
            expected = "|".join(sorted(rule.parent_must_be))
            self._report(
                vctx, IssueType.TAG_WRONG_PARENT, f"<{role}> parent must be <{expected}> but is <{vctx.parent_role}>"
            )

        count = len(vctx.child_roles)
        if rule.min_children is not None and count < rule.min_children:
            self._report(
                vctx, IssueType.TAG_WRONG_CHILD_COUNT, f"<{role}> has {count} kids; min is {rule.min_children}"
            )
        if rule.max_children is not None and count > rule.max_children:
            self._report(
                vctx, IssueType.TAG_WRONG_CHILD_COUNT, f"<{role}> has {count} kids; max is {rule.max_children}"
            )

        missing = rule.required_children - set(vctx.child_roles)
        for required in sorted(missing):
            self._report(vctx, IssueType.TAG_WRONG_CHILD, f"<{role}> is missing required child <{required}>")

        if rule.allowed_children:
            for child, child_role in zip(vctx.children, vctx.child_roles):
                if child_role not in rule.allowed_children:
                    self._report(
                        vctx, IssueType.TAG_WRONG_CHILD, f"<{child_role}> not allowed under <{role}>", element=child
                    )

        pattern = self._patterns.get(role)
        if pattern is not None and vctx.child_roles and not children_match(pattern, vctx.child_roles):
            kids = ", ".join(vctx.child_roles)
            self._report(
                vctx,
                IssueType.TAG_WRONG_CHILD_PATTERN,
                f"<{role}> kids [{kids}] do not match pattern '{rule.child_pattern}'",
            )
        return True

    def _report(self, vctx, issue_type: IssueType, message: str, element: Optional[int] = None) -> None:
        handle = vctx.handle if element is None else element
        self.issues.append(
            Issue(
                issue_type,
                IssueSeverity.ERROR,
                message,
                location=IssueLocation.at_element(handle, vctx.page),
            )
        )
