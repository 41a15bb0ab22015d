"""
Utilities for reporting applied fixes alongside the issues that triggered them.

Each resolved issue is linked to the fix that handled it, and fixes are
aggregated under their group label so large batches read as one line.
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List

from structfix.issues import Issue
from structfix.utils.issue_registry import issue_id_for

# Groups at least this large are collapsed into a single counted line
GROUP_COLLAPSE_THRESHOLD = 3


def _item_count(issue: Issue) -> int:
    fix = issue.fix
    if fix is None:
        return 1
    return fix.resolved_item_count or 1


def count_successful_fixes(issues: Iterable[Issue]) -> int:
    """Count resolved items, honouring batch fixes that resolve several at once."""
    count = 0
    for issue in issues:
        if not issue.resolved or issue.fix is None:
            continue
        count += _item_count(issue)
    return count


def group_fix_messages(issues: Iterable[Issue]) -> List[str]:
    """One line per fix group; small groups list each fix's own description."""
    groups: Dict[str, List[Issue]] = OrderedDict()
    for issue in issues:
        if not issue.resolved or issue.fix is None:
            continue
        groups.setdefault(issue.fix.group_label, []).append(issue)

    lines: List[str] = []
    for label, members in groups.items():
        if len(members) >= GROUP_COLLAPSE_THRESHOLD:
            total = sum(_item_count(issue) for issue in members)
            lines.append(f"{total} {label}")
        else:
            lines.extend(issue.resolution_note or label for issue in members)
    return lines


class FixReportFormatter:
    """Provides normalized fix entries linked back to the issues they resolved."""

    def build_entry(self, issue: Issue, phase: str) -> Dict[str, Any]:
        fix = issue.fix
        entry: Dict[str, Any] = {
            "issueId": issue_id_for(issue),
            "phase": phase,
            "fixType": type(fix).__name__ if fix is not None else None,
            "group": fix.group_label if fix is not None else issue.type.group_label,
            "description": issue.resolution_note or issue.message,
            "success": issue.resolved and not issue.failed,
            "items": _item_count(issue),
        }
        if fix is not None:
            entry["priority"] = fix.priority
        if issue.resolution_note and issue.resolution_note.startswith("Skipped"):
            entry["skipped"] = True
        return entry

    def build_entries(self, issues: Iterable[Issue], phase: str) -> List[Dict[str, Any]]:
        return [self.build_entry(issue, phase) for issue in issues if issue.fix is not None]
