"""
Remediation pipeline.

Phases, in order:
1. Preconditions: a document without a structure tree (or an image-only
   scan) cannot be remediated; FATAL issues abort the run.
2. Tag structure: detect tree issues, apply their fixes, re-validate.
3. Document level: detect catalog-level issues (language, tab order,
   tagged flag) and apply their fixes.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from structfix.check_engine import CheckEngine
from structfix.document_context import DocumentContext
from structfix.issues import IssueList
from structfix.pdf_tag_tree import load_tagged_document, save_tagged_document
from structfix.rules import DEFAULT_VISITORS, document_checks, precondition_checks, tree_checks
from structfix.rules.base import Check, Visitor
from structfix.utils.fix_report import FixReportFormatter, count_successful_fixes, group_fix_messages
from structfix.utils.issue_registry import IssueRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    original_tag_issues: IssueList = field(default_factory=IssueList)
    applied_tag_fixes: IssueList = field(default_factory=IssueList)
    remaining_tag_issues: IssueList = field(default_factory=IssueList)
    original_document_issues: IssueList = field(default_factory=IssueList)
    applied_document_fixes: IssueList = field(default_factory=IssueList)
    remaining_document_issues: IssueList = field(default_factory=IssueList)
    output_path: Optional[Path] = None
    aborted: bool = False

    @classmethod
    def aborted_with(cls, fatal_issues: IssueList) -> "ProcessingResult":
        return cls(
            original_document_issues=IssueList(fatal_issues),
            remaining_document_issues=IssueList(fatal_issues),
            aborted=True,
        )

    @property
    def total_detected(self) -> int:
        return len(self.original_tag_issues) + len(self.original_document_issues)

    @property
    def total_resolved(self) -> int:
        return len(self.applied_tag_fixes) + len(self.applied_document_fixes)

    @property
    def total_remaining(self) -> int:
        return len(self.remaining_tag_issues) + len(self.remaining_document_issues)

    @property
    def has_fatal(self) -> bool:
        return self.remaining_document_issues.has_fatal()


class RemediationService:
    def __init__(
        self,
        preconditions: Optional[Sequence[Check]] = None,
        tag_checks: Optional[Sequence[Check]] = None,
        visitor_factories: Optional[Sequence[Callable[[], Visitor]]] = None,
        doc_checks: Optional[Sequence[Check]] = None,
    ):
        self.precondition_engine = CheckEngine(
            preconditions if preconditions is not None else precondition_checks()
        )
        self.tag_engine = CheckEngine(
            tag_checks if tag_checks is not None else tree_checks(),
            visitor_factories if visitor_factories is not None else DEFAULT_VISITORS,
        )
        self.document_engine = CheckEngine(doc_checks if doc_checks is not None else document_checks())

    def analyze(self, ctx: DocumentContext) -> IssueList:
        """Detect without fixing."""
        issues = self.precondition_engine.run_checks(ctx)
        if issues.has_fatal():
            return issues
        issues.extend(self.tag_engine.detect_issues(ctx))
        issues.extend(self.document_engine.detect_issues(ctx))
        return issues

    def remediate(self, ctx: DocumentContext) -> ProcessingResult:
        fatal = self.precondition_engine.run_checks(ctx)
        if fatal.has_fatal():
            for issue in fatal:
                logger.error("[RemediationService] %s", issue.message)
            return ProcessingResult.aborted_with(fatal)

        logger.info("[RemediationService] Validating tag structure")
        original_tag_issues = self.tag_engine.detect_issues(ctx)
        applied_tag_fixes = self.tag_engine.apply_fixes(ctx, original_tag_issues)
        remaining_tag_issues = original_tag_issues.remaining()
        if applied_tag_fixes:
            logger.info("[RemediationService] Re-validating tag structure")
            remaining_tag_issues = self.tag_engine.detect_issues(ctx)

        logger.info("[RemediationService] Checking document-level compliance")
        document_issues = self.document_engine.detect_issues(ctx)
        applied_document_fixes = self.document_engine.apply_fixes(ctx, document_issues)

        result = ProcessingResult(
            original_tag_issues=original_tag_issues,
            applied_tag_fixes=applied_tag_fixes,
            remaining_tag_issues=remaining_tag_issues,
            original_document_issues=document_issues,
            applied_document_fixes=applied_document_fixes,
            remaining_document_issues=document_issues.remaining(),
        )
        logger.info(
            "[RemediationService] Detected %d, resolved %d, remaining %d",
            result.total_detected,
            result.total_resolved,
            result.total_remaining,
        )
        return result

    def process_file(self, input_path, output_path) -> ProcessingResult:
        """Load, remediate and save; nothing is written when the run aborts."""
        with load_tagged_document(input_path) as loaded:
            result = self.remediate(loaded.context)
            if not result.aborted:
                result.output_path = save_tagged_document(loaded, output_path)
        return result


def build_report(result: ProcessingResult) -> Dict[str, Any]:
    """JSON-serializable summary of a run for external formatters."""
    registry = IssueRegistry()
    for issue in result.original_tag_issues:
        registry.register_issue(issue, phase="tags")
    for issue in result.original_document_issues:
        registry.register_issue(issue, phase="document")

    formatter = FixReportFormatter()
    fixes: List[Dict[str, Any]] = formatter.build_entries(result.original_tag_issues, "tags")
    fixes.extend(formatter.build_entries(result.original_document_issues, "document"))

    applied = IssueList(result.applied_tag_fixes + result.applied_document_fixes)
    return {
        "summary": {
            "detected": result.total_detected,
            "resolved": result.total_resolved,
            "remaining": result.total_remaining,
            "itemsFixed": count_successful_fixes(applied),
            "aborted": result.aborted,
        },
        "issues": registry.issues,
        "fixes": fixes,
        "fixSummary": group_fix_messages(applied),
        "remaining": [str(issue) for issue in result.remaining_tag_issues + result.remaining_document_issues],
        "outputPath": str(result.output_path) if result.output_path else None,
    }
