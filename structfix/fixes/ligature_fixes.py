"""
ToUnicode repairs for fonts that map ligature glyphs badly.
"""

import logging
from typing import Dict

from structfix.fixes.base import IssueFix, P_LIGATURES

logger = logging.getLogger(__name__)

LIGATURE_CODEPOINT_EXPANSIONS = {
    0xFB00: "ff",
    0xFB01: "fi",
    0xFB02: "fl",
    0xFB03: "ffi",
    0xFB04: "ffl",
    0xFB05: "st",
    0xFB06: "st",
}

# Arial subset CIDs seen mapped to only the first letter of their ligature
ARIAL_CID_EXPANSIONS = {
    0x00BF: "fi",
    0x1087: "ff",
    0x108B: "st",
}


def find_broken_mappings(font) -> Dict[int, str]:
    """Return ``{code: corrected text}`` for every broken ligature mapping in ``font``."""
    arial_like = "arial" in (font.name or "").lower()
    corrections: Dict[int, str] = {}
    for code, current in sorted(font.to_unicode.items()):
        if not current or len(current) != 1:
            continue
        replacement = LIGATURE_CODEPOINT_EXPANSIONS.get(ord(current))
        if replacement is None and arial_like:
            candidate = ARIAL_CID_EXPANSIONS.get(code)
            if candidate and candidate[0] == current:
                replacement = candidate
        if replacement and replacement != current:
            corrections[code] = replacement
    return corrections


class RemapLigatures(IssueFix):
    priority = P_LIGATURES

    def __init__(self, font, replacements: Dict[int, str]):
        self.font = font
        self.replacements = dict(replacements)
        self.changed = 0

    @property
    def resolved_item_count(self):
        return len(self.replacements)

    def apply(self, ctx):
        self.changed = 0
        for code, text in self.replacements.items():
            if code in self.font.to_unicode and self.font.to_unicode[code] != text:
                self.font.to_unicode[code] = text
                self.changed += 1
        if self.changed:
            self.font.dirty = True
            logger.info("[RemapLigatures] Remapped %d code(s) in %s", self.changed, self.font.name)

    def describe(self, ctx):
        return f"Corrected {len(self.replacements)} ligature mapping(s) in font {self.font.name}"

    def invalidates(self, other):
        return (
            isinstance(other, RemapLigatures)
            and other is not self
            and other.font.object_number == self.font.object_number
        )

    @property
    def group_label(self):
        return "ligature mappings corrected"
