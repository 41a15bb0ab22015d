import pytest

from structfix.check_engine import CheckEngine
from structfix.document_context import Annotation
from structfix.fixes.artifact_fixes import ConvertToArtifact
from structfix.issues import IssueType
from structfix.rules.artifact_rules import MissingAltTextVisitor, MistaggedArtifactVisitor, looks_like_artifact_text
from structfix.tests.utils.tree_builders import El, build_tree, image_kinds, make_context, mcr, objr, rect, text_kinds


@pytest.mark.parametrize(
    "text",
    [
        "7",
        "Page 7",
        "7 of 9",
        "Page 3 of 12",
        "https://intranet.example.com/policies/travel [3/14/2024 10:15:00 AM]",
        "[3/14/2024 9:05:33 pm]",
    ],
)
def test_page_furniture_text_is_recognised(text):
    assert looks_like_artifact_text(text)


@pytest.mark.parametrize("text", ["", "   ", "Chapter 7 introduces the method", "Page seven", "2024 forecast"])
def test_ordinary_text_is_not_furniture(text):
    assert not looks_like_artifact_text(text)


def _detect(tree, **content):
    ctx = make_context(tree, **content)
    return ctx, CheckEngine([], [MistaggedArtifactVisitor]).detect_issues(ctx)


def test_footer_paragraph_is_flagged():
    tree, names = build_tree(El("Document", El("P", mcr(0)), El("P", mcr(1), name="footer")))

    _ctx, issues = _detect(tree, text={1: {0: "Body text", 1: "Page 2 of 5"}})

    assert [issue.type for issue in issues] == [IssueType.MISTAGGED_ARTIFACT]
    assert issues[0].location.element == names["footer"]
    assert issues[0].message == 'Tagged content should be artifact: "Page 2 of 5"'


def test_small_image_only_node_is_decorative():
    tree, _ = build_tree(El("Document", El("Figure", mcr(0))))

    _ctx, issues = _detect(tree, kinds={1: image_kinds(0)}, bounds={1: {0: rect(10, 10, 22, 22)}})

    assert [issue.message for issue in issues] == ["Decorative image should be artifact"]


def test_large_image_is_not_decorative():
    tree, _ = build_tree(El("Document", El("Figure", mcr(0))))

    _ctx, issues = _detect(tree, kinds={1: image_kinds(0)}, bounds={1: {0: rect(0, 0, 200, 200)}})

    assert issues == []


def test_image_with_alt_text_is_never_decorative():
    tree, _ = build_tree(El("Document", El("Figure", mcr(0), alt="Company logo")))

    _ctx, issues = _detect(tree, kinds={1: image_kinds(0)}, bounds={1: {0: rect(10, 10, 22, 22)}})

    assert issues == []


def test_image_mixed_with_text_is_not_decorative():
    tree, _ = build_tree(El("Document", El("Figure", mcr(0), mcr(1))))
    kinds = {1: {**image_kinds(0), **text_kinds(1)}}

    _ctx, issues = _detect(tree, kinds=kinds, bounds={1: {0: rect(0, 0, 12, 12), 1: rect(0, 0, 12, 12)}})

    assert issues == []


def test_flagged_node_is_not_descended():
    tree, _ = build_tree(El("Document", El("P", El("Span", mcr(0)), mcr(1))))

    _ctx, issues = _detect(tree, text={1: {0: "12"}})

    assert len(issues) == 1


def test_numbered_list_label_is_not_a_page_number():
    tree, names = build_tree(
        El("Document", El("L", El("LI", El("Lbl", mcr(0), name="label"), El("LBody", mcr(1)))))
    )

    _ctx, issues = _detect(tree, text={1: {0: "1", 1: "First step"}})

    assert issues == []


def test_list_label_still_matches_print_timestamp():
    tree, names = build_tree(El("Document", El("L", El("LI", El("Lbl", mcr(0), name="label")))))

    _ctx, issues = _detect(tree, text={1: {0: "[3/14/2024 9:05:33 PM]"}})

    assert [issue.location.element for issue in issues] == [names["label"]]


def test_conversion_records_artifacts_and_removes_links():
    tree, names = build_tree(
        El("Document", El("P", mcr(0)), El("P", mcr(1), mcr(2), objr(40), name="footer"))
    )
    link = Annotation(object_number=40, page=1, subtype="Link", rect=rect(0, 0, 10, 10), struct_parent=3)
    ctx = make_context(tree, annotations=[link])

    fix = ConvertToArtifact(tree, names["footer"])
    fix.apply(ctx)

    assert tree.render() == "Document[P]"
    assert ctx.artifact_mcids[1] == {1, 2}
    assert link.removed
    assert fix.describe(ctx) == "Converted P to artifact (2 marked content sequence(s))"


def test_conversion_is_idempotent():
    tree, names = build_tree(El("Document", El("P", mcr(0)), El("P", mcr(1), name="footer")))
    ctx = make_context(tree)

    ConvertToArtifact(tree, names["footer"]).apply(ctx)
    once = tree.render(include_content=True)
    ConvertToArtifact(tree, names["footer"]).apply(ctx)

    assert tree.render(include_content=True) == once
    assert ctx.artifact_mcids[1] == {1}


def test_conversion_of_ancestor_supersedes_descendant():
    tree, names = build_tree(El("Document", El("P", El("Span", mcr(0), name="span"), name="outer")))
    outer = ConvertToArtifact(tree, names["outer"])
    inner = ConvertToArtifact(tree, names["span"])

    assert outer.invalidates(inner)
    assert not inner.invalidates(outer)


def test_meaningful_figure_without_alt_is_reported():
    tree, names = build_tree(
        El("Document", El("Figure", mcr(0), name="chart"), El("Figure", mcr(1), alt="Revenue by quarter"))
    )
    ctx = make_context(
        tree,
        kinds={1: image_kinds(0, 1)},
        bounds={1: {0: rect(0, 0, 300, 200), 1: rect(0, 300, 300, 500)}},
    )

    issues = CheckEngine([], [MissingAltTextVisitor]).detect_issues(ctx)

    assert [issue.type for issue in issues] == [IssueType.FIGURE_MISSING_ALT]
    assert issues[0].location.element == names["chart"]
    assert issues[0].fix is None
