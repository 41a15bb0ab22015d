import pytest

from structfix.check_engine import SKIPPED_NOTE, CheckEngine
from structfix.errors import VisitorConfigurationError
from structfix.fixes.base import IssueFix
from structfix.issues import Issue, IssueList, IssueSeverity, IssueType
from structfix.rules.base import Check, Visitor
from structfix.rules.bullet_rules import BulletGlyphVisitor
from structfix.rules.list_rules import ListItemVisitor
from structfix.rules.nesting_rules import NeedlessNestingVisitor
from structfix.rules.page_parts_rules import MissingPagePartsVisitor
from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr, rect


class RecordingFix(IssueFix):
    def __init__(self, label, priority, log, fail=False, invalidates_labels=()):
        self.label = label
        self.priority = priority
        self.log = log
        self.fail = fail
        self.invalidates_labels = set(invalidates_labels)

    def apply(self, ctx):
        self.log.append(self.label)
        if self.fail:
            raise RuntimeError("target vanished")

    def describe(self, ctx):
        return f"applied {self.label}"

    def invalidates(self, other):
        return isinstance(other, RecordingFix) and other.label in self.invalidates_labels


def _issue(fix):
    return Issue(IssueType.EMPTY_ELEMENT, IssueSeverity.WARNING, "test issue", fix=fix)


@pytest.fixture
def ctx():
    tree, _ = build_tree(El("Document", El("P", mcr(0))))
    return make_context(tree)


def test_fixes_apply_in_priority_order_with_stable_ties(ctx):
    log = []
    issues = [
        _issue(RecordingFix("late", 30, log)),
        _issue(RecordingFix("first-tie", 20, log)),
        _issue(RecordingFix("early", 10, log)),
        _issue(RecordingFix("second-tie", 20, log)),
    ]

    resolved = CheckEngine().apply_fixes(ctx, issues)

    assert log == ["early", "first-tie", "second-tie", "late"]
    assert len(resolved) == 4
    assert all(issue.resolution_note.startswith("applied") for issue in resolved)


def test_invalidated_fix_is_skipped_without_apply(ctx):
    log = []
    winner = _issue(RecordingFix("winner", 10, log, invalidates_labels={"loser"}))
    loser = _issue(RecordingFix("loser", 20, log))

    resolved = CheckEngine().apply_fixes(ctx, [loser, winner])

    assert log == ["winner"]
    assert loser.resolved
    assert loser.resolution_note == SKIPPED_NOTE
    assert loser in resolved


def test_failed_fix_does_not_stop_the_rest(ctx):
    log = []
    broken = _issue(RecordingFix("broken", 10, log, fail=True))
    healthy = _issue(RecordingFix("healthy", 20, log))

    resolved = CheckEngine().apply_fixes(ctx, [broken, healthy])

    assert log == ["broken", "healthy"]
    assert broken.failed and not broken.resolved
    assert broken.resolution_note == "applied broken failed: target vanished"
    assert healthy.resolved
    assert resolved == [healthy]


def test_failed_fix_does_not_invalidate_later_fixes(ctx):
    log = []
    broken = _issue(RecordingFix("broken", 10, log, fail=True, invalidates_labels={"later"}))
    later = _issue(RecordingFix("later", 20, log))

    CheckEngine().apply_fixes(ctx, [broken, later])

    assert log == ["broken", "later"]
    assert later.resolution_note == "applied later"


def test_issues_without_fix_are_ignored(ctx):
    bare = Issue(IssueType.FIGURE_MISSING_ALT, IssueSeverity.WARNING, "no fix here")

    resolved = CheckEngine().apply_fixes(ctx, [bare])

    assert resolved == []
    assert not bare.resolved


class CountingVisitor(Visitor):
    def enter_element(self, vctx):
        self.issues.append(Issue(IssueType.EMPTY_ELEMENT, IssueSeverity.WARNING, vctx.path))
        return True


class ConstantCheck(Check):
    name = "Constant"

    def find_issues(self, ctx):
        return IssueList([Issue(IssueType.LANGUAGE_NOT_SET, IssueSeverity.ERROR, "constant")])


def test_detect_issues_merges_checks_and_visitors(ctx):
    engine = CheckEngine([ConstantCheck()], [CountingVisitor])

    issues = engine.detect_issues(ctx)

    assert [issue.message for issue in issues] == ["constant", "Document[1]", "Document[1]/P[2]"]


def test_repeated_detection_does_not_accumulate(ctx):
    engine = CheckEngine([], [CountingVisitor])

    first = engine.detect_issues(ctx)
    second = engine.detect_issues(ctx)

    assert len(first) == len(second) == 2


def _signature(issue):
    fix = issue.fix
    targets = getattr(fix, "wrappers", None) or getattr(fix, "elements", None) or getattr(fix, "element", None)
    return issue.type, issue.message, issue.location, type(fix).__name__, targets


def test_stateful_visitors_report_the_same_issues_on_every_run():
    tree, names = build_tree(
        El(
            "Document",
            El("Sect", El("P", mcr(0), name="a"), El("P", mcr(1), name="b"), name="sect"),
            El("L", El("LI", El("P", mcr(2)), El("P", mcr(3)))),
        )
    )
    bounds = {
        1: {
            0: rect(70, 695, 300, 705),
            1: rect(70, 675, 300, 685),
            2: rect(70, 500, 90, 510),
            3: rect(100, 500, 300, 510),
        }
    }
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0]})
    engine = CheckEngine([], [NeedlessNestingVisitor, ListItemVisitor, BulletGlyphVisitor])

    first = engine.detect_issues(ctx)
    second = engine.detect_issues(ctx)

    assert [issue.type for issue in first] == [
        IssueType.NEEDLESS_NESTING,
        IssueType.LIST_ITEM_MALFORMED,
        IssueType.LIST_TAGGED_AS_PARAGRAPHS,
    ]
    assert [_signature(issue) for issue in second] == [_signature(issue) for issue in first]
    assert first[0].fix.wrappers == [names["sect"]]
    assert second[2].fix.elements == [names["a"], names["b"]]


def test_engine_rejects_misordered_visitors_at_construction():
    with pytest.raises(VisitorConfigurationError):
        CheckEngine([], [MissingPagePartsVisitor, NeedlessNestingVisitor])

    with pytest.raises(ValueError):
        CheckEngine([], [MissingPagePartsVisitor])
