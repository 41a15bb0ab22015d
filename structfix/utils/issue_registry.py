"""Canonical issue registry for remediation reports.

Each issue is assigned a stable ``issueId`` so the same finding can be
referenced across the detection, fix and re-validation phases without
double-counting.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any, Dict, Iterable, List, Optional

from structfix.issues import Issue


def _slug(value: str) -> str:
    """Return a lowercase slug with non-alphanumerics replaced by hyphens."""
    normalized = re.sub(r"[^a-zA-Z0-9]+", "-", value.strip().lower())
    normalized = normalized.strip("-")
    return normalized or "issue"


def _normalize_pages(pages: Optional[Iterable[Any]]) -> List[int]:
    if not pages:
        return []

    normalized: List[int] = []
    for page in pages:
        try:
            number = int(page)
        except (TypeError, ValueError):
            continue
        if number > 0:
            normalized.append(number)

    return sorted(set(normalized))


def _page_token(pages: List[int]) -> Optional[str]:
    if not pages:
        return None
    unique = sorted(set(pages))
    if len(unique) == 1:
        return f"p{unique[0]}"

    first, last = unique[0], unique[-1]
    contiguous = unique == list(range(first, last + 1))
    if contiguous:
        return f"p{first}-{last}"

    limited = "_".join(str(num) for num in unique[:4])
    if len(unique) > 4:
        limited = f"{limited}_plus"
    return f"p{limited}"


def _short_hash(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:6]


def build_issue_id(
    kind: str,
    *,
    pages: Optional[Iterable[Any]] = None,
    extra: Optional[str] = None,
) -> str:
    """Return a deterministic issueId for a single run."""
    parts: List[str] = [_slug(kind)]

    pages_token = _page_token(_normalize_pages(pages))
    if pages_token:
        parts.append(pages_token)
    if extra:
        parts.append(_short_hash(str(extra)))

    return "-".join(parts)


def issue_id_for(issue: Issue) -> str:
    """issueId derived from the issue's type, page and message."""
    location = issue.location
    extra = issue.message
    if location.object_number is not None:
        extra = f"{issue.message}#{location.object_number}"
    pages = [location.page] if location.page else []
    return build_issue_id(issue.type.code, pages=pages, extra=extra)


def _status(issue: Issue) -> str:
    if issue.resolved:
        return "resolved"
    if issue.failed:
        return "failed"
    return "open"


class IssueRegistry:
    """Track canonical issues and merge repeats of the same finding."""

    def __init__(self) -> None:
        self._issues: List[Dict[str, Any]] = []
        self._index: Dict[str, Dict[str, Any]] = {}

    def reset(self) -> None:
        self._issues = []
        self._index = {}

    def register_issue(self, issue: Issue, *, phase: str) -> Dict[str, Any]:
        """Register or return the canonical entry for ``issue``."""
        location = issue.location
        pages = [location.page] if location.page else []
        issue_id = issue_id_for(issue)

        incoming: Dict[str, Any] = {
            "issueId": issue_id,
            "category": issue.type.code,
            "group": issue.type.group_label,
            "severity": issue.severity.value,
            "description": issue.message,
            "pages": pages,
            "phase": phase,
            "status": _status(issue),
            "occurrences": 1,
        }
        if location.object_number is not None:
            incoming["objectNumber"] = location.object_number
        if issue.resolution_note:
            incoming["resolution"] = issue.resolution_note
        if issue.fix is not None:
            incoming["fixType"] = type(issue.fix).__name__

        existing = self._index.get(issue_id)
        if existing:
            self._merge_issue(existing, incoming)
            return existing

        self._issues.append(incoming)
        self._index[issue_id] = incoming
        return incoming

    def _merge_issue(self, target: Dict[str, Any], incoming: Dict[str, Any]) -> None:
        """Merge a repeat into an existing canonical issue."""
        target["occurrences"] = target.get("occurrences", 1) + 1
        target["pages"] = sorted(set(target.get("pages") or []) | set(incoming.get("pages") or []))
        # An open repeat keeps the finding open
        if incoming["status"] != "resolved":
            target["status"] = incoming["status"]
        for key in ("resolution", "fixType", "objectNumber"):
            if not target.get(key) and incoming.get(key):
                target[key] = incoming[key]

    @property
    def issues(self) -> List[Dict[str, Any]]:
        return list(self._issues)


__all__ = ["IssueRegistry", "build_issue_id", "issue_id_for"]
