"""
Fonts whose ToUnicode maps ligature glyphs to characters that break text
extraction and search.
"""

import logging

from structfix.fixes.ligature_fixes import RemapLigatures, find_broken_mappings
from structfix.issues import Issue, IssueList, IssueLocation, IssueSeverity, IssueType
from structfix.rules.base import Check

logger = logging.getLogger(__name__)


class BadlyMappedLigatureCheck(Check):
    name = "Ligature Mappings"

    def find_issues(self, ctx):
        issues = IssueList()
        for font in ctx.fonts:
            if font.subtype != "Type0" or not font.to_unicode:
                continue
            replacements = find_broken_mappings(font)
            if not replacements:
                continue
            issues.append(
                Issue(
                    IssueType.LIGATURE_MAPPING_BROKEN,
                    IssueSeverity.WARNING,
                    f"Font {font.name} has {len(replacements)} broken ligature mapping(s)",
                    location=IssueLocation.at_object(font.object_number, font.first_page),
                    fix=RemapLigatures(font, replacements),
                )
            )
        return issues
