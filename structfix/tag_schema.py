"""
PDF structure types, the role groups the remediation rules rely on, and
the parent and child constraints the tag schema check enforces.
Based on ISO 32000-1 (PDF 1.7), 14.8.4 and ISO 14289-1 (PDF/UA-1).
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

# Standard PDF structure types as defined in ISO 32000-1:2008, 14.8.4
STANDARD_STRUCTURE_TYPES = {
    # Grouping elements
    'Document': 'Root element of document tag tree',
    'Part': 'Large division of document',
    'Art': 'Article - self-contained body of text',
    'Sect': 'Generic container, section of document',
    'Div': 'Generic block-level element',

    # Paragraph-like elements
    'BlockQuote': 'Block of quoted text',
    'Caption': 'Brief description of table or figure',
    'TOC': 'Table of contents',
    'TOCI': 'Individual TOC item',
    'Index': 'Index section',
    'NonStruct': 'Non-structural grouping',
    'Private': 'Private application data',

    # Heading elements
    'H': 'Generic heading',
    'H1': 'Level 1 heading',
    'H2': 'Level 2 heading',
    'H3': 'Level 3 heading',
    'H4': 'Level 4 heading',
    'H5': 'Level 5 heading',
    'H6': 'Level 6 heading',

    # Paragraph elements
    'P': 'Paragraph',

    # List elements
    'L': 'List',
    'LI': 'List item',
    'Lbl': 'List item label',
    'LBody': 'List item body',

    # Table elements
    'Table': 'Table',
    'TR': 'Table row',
    'TH': 'Table header cell',
    'TD': 'Table data cell',
    'THead': 'Table header row group',
    'TBody': 'Table body row group',
    'TFoot': 'Table footer row group',

    # Inline elements
    'Span': 'Generic inline element',
    'Quote': 'Inline quoted text',
    'Note': 'Footnote or endnote',
    'Reference': 'Citation reference',
    'BibEntry': 'Bibliography entry',
    'Code': 'Computer code',
    'Link': 'Hyperlink',
    'Annot': 'Annotation',

    # Illustration elements
    'Figure': 'Graphic or image',
    'Formula': 'Mathematical formula',
    'Form': 'Interactive form field',

    # Ruby and Warichu (East Asian annotations)
    'Ruby': 'Ruby annotation',
    'RB': 'Ruby base text',
    'RT': 'Ruby annotation text',
    'RP': 'Ruby punctuation',
    'Warichu': 'Warichu annotation',
    'WT': 'Warichu text',
    'WP': 'Warichu punctuation',
}

DOCUMENT_ROLE = 'Document'
PART_ROLE = 'Part'

# Containers that add no semantics of their own
GROUPING_ROLES = frozenset({'Part', 'Sect', 'Art', 'Div'})

# Containers whose direct children may be re-grouped into lists
SECTION_CONTAINER_ROLES = frozenset({'Document', 'Part', 'Sect', 'Div', 'Art'})

LIST_ROLES = frozenset({'L', 'LI', 'Lbl', 'LBody'})

TABLE_ROLES = frozenset({'Table', 'TR', 'TH', 'TD', 'THead', 'TBody', 'TFoot'})

# Roles whose content may turn out to be page furniture
ARTIFACT_CANDIDATE_ROLES = frozenset({'P', 'Link', 'Span', 'Figure', 'Lbl', 'LBody'})

# Elements never used as a geometric anchor for a new Link tag
LINK_ANCHOR_EXCLUDED_ROLES = frozenset({'Link', 'Reference', 'Document', 'Part'})


def is_standard_role(role: str) -> bool:
    return role in STANDARD_STRUCTURE_TYPES


def is_container_role(role: str) -> bool:
    """Document-level containers that stop warning escalation."""
    return role in (DOCUMENT_ROLE, PART_ROLE)


# ---------------------------------------------------------------- tag schema


@dataclass(frozen=True)
class TagRule:
    """
    Constraints on one role. Empty sets and None mean "no constraint".

    ``child_pattern`` is a regular expression over child role names, e.g.
    ``"Caption? THead? (TR+|TBody+) TFoot?"``, matched against the whole
    sequence of struct children.
    """

    parent_must_be: FrozenSet[str] = frozenset()
    allowed_children: FrozenSet[str] = frozenset()
    required_children: FrozenSet[str] = frozenset()
    min_children: Optional[int] = None
    max_children: Optional[int] = None
    child_pattern: Optional[str] = None


# List shape (L, LI) is left to the list rules, which can repair it
TAG_RULES = {
    'LI': TagRule(parent_must_be=frozenset({'L'})),
    'Lbl': TagRule(parent_must_be=frozenset({'LI'})),
    'LBody': TagRule(parent_must_be=frozenset({'LI'})),

    'Table': TagRule(
        allowed_children=frozenset({'TR', 'THead', 'TBody', 'TFoot', 'Caption'}),
        min_children=1,
        child_pattern='Caption? THead? (TR+|TBody+) TFoot? Caption?',
    ),
    'THead': TagRule(parent_must_be=frozenset({'Table'}), allowed_children=frozenset({'TR'})),
    'TBody': TagRule(parent_must_be=frozenset({'Table'}), allowed_children=frozenset({'TR'})),
    'TFoot': TagRule(parent_must_be=frozenset({'Table'}), allowed_children=frozenset({'TR'})),
    'TR': TagRule(
        parent_must_be=frozenset({'Table', 'THead', 'TBody', 'TFoot'}),
        allowed_children=frozenset({'TH', 'TD'}),
    ),
    'TH': TagRule(parent_must_be=frozenset({'TR'})),
    'TD': TagRule(parent_must_be=frozenset({'TR'})),

    'TOC': TagRule(allowed_children=frozenset({'TOCI', 'TOC', 'Caption'})),
    'TOCI': TagRule(parent_must_be=frozenset({'TOC'})),

    'Ruby': TagRule(allowed_children=frozenset({'RB', 'RT', 'RP'}), child_pattern='RB (RT|RP RT RP)'),
    'RB': TagRule(parent_must_be=frozenset({'Ruby'})),
    'RT': TagRule(parent_must_be=frozenset({'Ruby'})),
    'RP': TagRule(parent_must_be=frozenset({'Ruby'})),
    'Warichu': TagRule(allowed_children=frozenset({'WT', 'WP'}), child_pattern='WP? WT WP?'),
    'WT': TagRule(parent_must_be=frozenset({'Warichu'})),
    'WP': TagRule(parent_must_be=frozenset({'Warichu'})),
}

_NO_CONSTRAINTS = TagRule()

_PATTERN_TOKEN = re.compile(r"[A-Za-z][A-Za-z0-9]*|[()|?*+]|\s+")


def compile_child_pattern(pattern: str) -> re.Pattern:
    """
    Turn a child pattern over role names into a regex matched against the
    children joined as ``"Role Role "``.
    """
    parts = []
    position = 0
    for match in _PATTERN_TOKEN.finditer(pattern):
        if match.start() != position:
            raise ValueError(f"Unexpected character in child pattern {pattern!r} at {position}")
        token = match.group()
        position = match.end()
        if token.isspace():
            continue
        if token[0].isalpha():
            parts.append(f"(?:{re.escape(token)} )")
        else:
            parts.append(token)
    if position != len(pattern):
        raise ValueError(f"Unexpected character in child pattern {pattern!r} at {position}")
    return re.compile("".join(parts))


def children_match(pattern: re.Pattern, child_roles) -> bool:
    return pattern.fullmatch("".join(f"{role} " for role in child_roles)) is not None


def tag_rule(role: str) -> TagRule:
    return TAG_RULES.get(role, _NO_CONSTRAINTS)


def schema_errors(rules=None) -> List[str]:
    """Inconsistencies inside a rule table: unknown role names, bad counts and patterns."""
    rules = TAG_RULES if rules is None else rules
    errors = []
    for role, rule in rules.items():
        if not is_standard_role(role):
            errors.append(f"{role}: not a standard structure type")
        referenced = rule.parent_must_be | rule.allowed_children | rule.required_children
        for other in sorted(referenced):
            if not is_standard_role(other):
                errors.append(f"{role}: refers to unknown role {other}")
        if rule.allowed_children and not rule.required_children <= rule.allowed_children:
            errors.append(f"{role}: required children are not all allowed")
        if (
            rule.min_children is not None
            and rule.max_children is not None
            and rule.min_children > rule.max_children
        ):
            errors.append(f"{role}: min_children is greater than max_children")
        if rule.child_pattern:
            try:
                compile_child_pattern(rule.child_pattern)
            except (ValueError, re.error) as exc:
                errors.append(f"{role}: invalid child pattern ({exc})")
    return errors

