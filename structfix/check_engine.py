"""
Check engine: runs checks and visitors, then applies fixes by priority.

Fixes are applied lowest priority first. Ties keep discovery order. A fix
that an earlier applied fix invalidates is skipped without running, and a
failing fix is recorded on its issue without stopping the rest.
"""

import logging
from typing import Callable, List, Sequence

from structfix.document_context import DocumentContext
from structfix.fixes.base import IssueFix
from structfix.issues import Issue, IssueList
from structfix.rules.base import Check, Visitor
from structfix.tree_walker import TreeWalker, validate_visitor_order

logger = logging.getLogger(__name__)

SKIPPED_NOTE = "Skipped: superseded by higher priority fix"

VisitorFactory = Callable[[], Visitor]


class CheckEngine:
    def __init__(self, checks: Sequence[Check] = (), visitor_factories: Sequence[VisitorFactory] = ()):
        self.checks = list(checks)
        self.visitor_factories = list(visitor_factories)
        # Fail before any document is touched
        validate_visitor_order(self.create_visitors())

    def create_visitors(self) -> List[Visitor]:
        return [factory() for factory in self.visitor_factories]

    def run_checks(self, ctx: DocumentContext) -> IssueList:
        issues = IssueList()
        for check in self.checks:
            found = check.find_issues(ctx)
            if found:
                logger.debug("[CheckEngine] %s found %d issue(s)", check.name or type(check).__name__, len(found))
            issues.extend(found)
        return issues

    def run_visitors(self, ctx: DocumentContext) -> IssueList:
        if not self.visitor_factories:
            return IssueList()
        walker = TreeWalker(self.create_visitors())
        return walker.walk(ctx)

    def detect_issues(self, ctx: DocumentContext) -> IssueList:
        issues = self.run_checks(ctx)
        issues.extend(self.run_visitors(ctx))
        logger.info("[CheckEngine] Detected %d issue(s)", len(issues))
        return issues

    def apply_fixes(self, ctx: DocumentContext, issues: Sequence[Issue]) -> IssueList:
        """Apply every fix carried by ``issues``; returns the issues now resolved."""
        candidates = sorted(
            (issue for issue in issues if issue.fix is not None),
            key=lambda issue: issue.fix.priority,
        )
        applied: List[IssueFix] = []
        resolved = IssueList()

        for issue in candidates:
            fix = issue.fix
            if any(earlier.invalidates(fix) for earlier in applied):
                logger.debug("[CheckEngine] Skipping %r: invalidated by an applied fix", fix)
                issue.mark_resolved(SKIPPED_NOTE)
                resolved.append(issue)
                continue

            try:
                fix.apply(ctx)
            except Exception as exc:
                note = f"{self._safe_describe(fix, ctx)} failed: {exc}"
                logger.warning("[CheckEngine] %s", note)
                issue.mark_failed(note)
                continue

            applied.append(fix)
            ctx.invalidate_caches()
            issue.mark_resolved(self._safe_describe(fix, ctx))
            resolved.append(issue)

        logger.info("[CheckEngine] Resolved %d of %d fixable issue(s)", len(resolved), len(candidates))
        return resolved

    @staticmethod
    def _safe_describe(fix: IssueFix, ctx: DocumentContext) -> str:
        try:
            return fix.describe(ctx)
        except Exception as exc:
            logger.debug("[CheckEngine] describe() failed for %r: %s", fix, exc)
            return type(fix).__name__
