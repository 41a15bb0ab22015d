from structfix.check_engine import CheckEngine
from structfix.fixes.page_parts_fixes import NormalizePageParts
from structfix.issues import IssueType
from structfix.rules.nesting_rules import NeedlessNestingVisitor
from structfix.rules.page_parts_rules import MissingPagePartsVisitor
from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr


def _interleaved():
    return build_tree(
        El(
            "Document",
            El("H1", mcr(0, page=1), name="h1_p1"),
            El("P", mcr(0, page=2), name="p_p2"),
            El("P", mcr(1, page=1), name="p_p1"),
            El("H1", mcr(1, page=2), name="h1_p2"),
            name="doc",
        )
    )


def _engine(min_pages=2):
    return CheckEngine([], [NeedlessNestingVisitor, lambda: MissingPagePartsVisitor(min_pages=min_pages)])


def test_flat_multi_page_document_is_detected():
    tree, _ = _interleaved()

    issues = _engine().detect_issues(make_context(tree, page_count=2))

    assert [issue.type for issue in issues] == [IssueType.PAGE_PARTS_NOT_NORMALIZED]
    assert "4 element(s)" in issues[0].message


def test_short_documents_are_left_alone(monkeypatch):
    monkeypatch.setenv("STRUCTFIX_PAGE_PARTS_MIN_PAGES", "3")
    tree, _ = _interleaved()
    engine = CheckEngine([], [NeedlessNestingVisitor, MissingPagePartsVisitor])

    assert engine.detect_issues(make_context(tree, page_count=2)) == []


def test_interleaved_pages_keep_relative_order():
    tree, names = _interleaved()
    ctx = make_context(tree, page_count=2)

    fix = NormalizePageParts()
    fix.apply(ctx)

    parts = tree.struct_kids(names["doc"])
    assert tree.render() == "Document[Part[H1,P],Part[P,H1]]"
    assert tree.struct_kids(parts[0]) == [names["h1_p1"], names["p_p1"]]
    assert tree.struct_kids(parts[1]) == [names["p_p2"], names["h1_p2"]]
    assert [tree.node(part).title for part in parts] == ["p. 1", "p. 2"]
    assert fix.describe(ctx) == "Normalized page Parts: created 2 Part(s), moved 4 element(s)"


def test_page_partitioning_is_idempotent():
    tree, _ = _interleaved()
    ctx = make_context(tree, page_count=2)

    NormalizePageParts().apply(ctx)
    once = tree.render(include_content=True)
    second = NormalizePageParts()
    second.apply(ctx)

    assert tree.render(include_content=True) == once
    assert second.created == 0 and second.moved == 0


def test_page_parts_are_not_redetected_after_fix():
    tree, _ = _interleaved()
    ctx = make_context(tree, page_count=2)
    engine = _engine()

    engine.apply_fixes(ctx, engine.detect_issues(ctx))

    assert engine.detect_issues(ctx) == []


def test_existing_page_part_is_reused():
    tree, names = build_tree(
        El(
            "Document",
            El("Part", El("H1", mcr(0, page=1)), page=1, name="part1"),
            El("P", mcr(1, page=1)),
            El("P", mcr(0, page=2)),
            name="doc",
        )
    )
    ctx = make_context(tree, page_count=2)

    fix = NormalizePageParts()
    fix.apply(ctx)

    assert tree.render() == "Document[Part[H1,P],Part[P]]"
    assert tree.struct_kids(names["doc"])[0] == names["part1"]
    assert fix.created == 1


def test_elements_without_page_stay_in_place():
    tree, _ = build_tree(El("Document", El("P"), El("H1", mcr(0, page=1)), El("P", mcr(0, page=2))))

    NormalizePageParts().apply(make_context(tree, page_count=2))

    assert tree.render() == "Document[P,Part[H1],Part[P]]"


def test_page_created_out_of_order_is_inserted_before_later_pages():
    tree, _ = build_tree(El("Document", El("P", mcr(0, page=3)), El("H1", mcr(0, page=1))))

    NormalizePageParts().apply(make_context(tree, page_count=3))

    assert [tree.node(part).page for part in tree.struct_kids(tree.document_element())] == [1, 3]
