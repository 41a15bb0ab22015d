from structfix.check_engine import CheckEngine
from structfix.issues import IssueType
from structfix.rules.bullet_rules import BulletGlyphVisitor
from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr, rect


def _engine():
    return CheckEngine([], [BulletGlyphVisitor])


def test_paragraphs_beside_bullets_form_one_run():
    tree, names = build_tree(
        El("Document", El("P", mcr(0), name="a"), El("P", mcr(1), name="b"), El("P", mcr(2)), name="doc")
    )
    bounds = {1: {0: rect(70, 695, 300, 705), 1: rect(70, 675, 300, 685), 2: rect(70, 600, 300, 610)}}
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0]})

    issues = _engine().detect_issues(ctx)

    assert [issue.type for issue in issues] == [IssueType.LIST_TAGGED_AS_PARAGRAPHS]
    assert issues[0].fix.elements == [names["a"], names["b"]]

    _engine().apply_fixes(ctx, issues)

    assert tree.render() == "Document[L[LI[LBody[P]],LI[LBody[P]]],P]"


def test_bullet_run_wrap_is_idempotent():
    tree, _ = build_tree(El("Document", El("P", mcr(0))))
    ctx = make_context(tree, bounds={1: {0: rect(70, 695, 300, 705)}}, bullets={1: [700.0]})
    fix = _engine().detect_issues(ctx)[0].fix

    fix.apply(ctx)
    once = tree.render()
    fix.apply(ctx)

    assert tree.render() == once == "Document[L[LI[LBody[P]]]]"


def _three_item_run():
    tree, names = build_tree(
        El(
            "Document",
            El("P", mcr(0), name="a"),
            El("P", mcr(1), name="b"),
            El("P", mcr(2), name="c"),
            El("Sect", name="sect"),
            name="doc",
        )
    )
    bounds = {1: {0: rect(70, 695, 300, 705), 1: rect(70, 675, 300, 685), 2: rect(70, 655, 300, 665)}}
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0, 660.0]})
    return tree, names, ctx


def test_run_split_across_containers_is_wrapped_in_each():
    tree, names, ctx = _three_item_run()
    fix = _engine().detect_issues(ctx)[0].fix
    assert fix.elements == [names["a"], names["b"], names["c"]]

    # An earlier fix moved the last member elsewhere
    tree.add_kid(names["sect"], names["c"])
    fix.apply(ctx)

    assert tree.render() == "Document[L[LI[LBody[P]],LI[LBody[P]]],Sect[L[LI[LBody[P]]]]]"
    assert fix.wrapped == 3
    assert fix.resolved_item_count == 3


def test_detached_run_members_are_not_counted():
    tree, names, ctx = _three_item_run()
    fix = _engine().detect_issues(ctx)[0].fix
    assert fix.resolved_item_count == 3

    tree.detach(names["c"])
    fix.apply(ctx)

    assert tree.render() == "Document[L[LI[LBody[P]],LI[LBody[P]]],Sect]"
    assert fix.resolved_item_count == 2
    assert fix.describe(ctx) == "Wrapped 2 bullet-aligned element(s) in a list"


def test_runs_are_broken_by_lists_and_unmatched_elements():
    tree, _ = build_tree(
        El(
            "Document",
            El("P", mcr(0)),
            El("L", El("LI", El("Lbl"), El("LBody"))),
            El("P", mcr(1)),
        )
    )
    bounds = {1: {0: rect(70, 695, 300, 705), 1: rect(70, 675, 300, 685)}}
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0]})

    issues = _engine().detect_issues(ctx)

    assert [len(issue.fix.elements) for issue in issues] == [1, 1]


def test_no_bullets_means_no_issues():
    tree, _ = build_tree(El("Document", El("P", mcr(0))))
    ctx = make_context(tree, bounds={1: {0: rect(70, 695, 300, 705)}})

    assert _engine().detect_issues(ctx) == []


def test_tall_paragraph_is_drilled_into_per_bullet():
    tree, names = build_tree(El("Document", El("P", mcr(0), mcr(1), mcr(2), name="p")))
    bounds = {1: {0: rect(70, 695, 300, 705), 1: rect(70, 675, 300, 685), 2: rect(70, 600, 300, 660)}}
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0]})

    issues = _engine().detect_issues(ctx)

    assert [issue.type for issue in issues] == [IssueType.BULLET_ALIGNED_KIDS_IN_ELEMENT] * 2
    assert [issue.fix.bullet_y for issue in issues] == [700.0, 680.0]

    _engine().apply_fixes(ctx, issues)

    assert tree.render(include_content=True) == (
        "Document[P[L[LI[LBody[P[mcid0@p1]]],LI[LBody[P[mcid1@p1]]]],mcid2@p1]]"
    )


def test_drilled_items_are_ordered_top_to_bottom():
    tree, names = build_tree(El("Document", El("P", mcr(0), mcr(1), mcr(2), name="p")))
    bounds = {1: {0: rect(70, 695, 300, 705), 1: rect(70, 675, 300, 685), 2: rect(70, 600, 300, 660)}}
    ctx = make_context(tree, bounds=bounds, bullets={1: [700.0, 680.0]})
    issues = _engine().detect_issues(ctx)

    for issue in reversed(issues):
        issue.fix.apply(ctx)

    bullet_list = tree.struct_kids(names["p"])[0]
    titles = [tree.node(item).title for item in tree.struct_kids(bullet_list)]
    assert titles == ["y=700", "y=680"]


def test_tolerance_override(monkeypatch):
    monkeypatch.setenv("STRUCTFIX_BULLET_Y_TOLERANCE", "0.5")
    tree, _ = build_tree(El("Document", El("P", mcr(0))))
    # Bullet sits 2pt above the text box
    ctx = make_context(tree, bounds={1: {0: rect(70, 690, 300, 698)}}, bullets={1: [700.0]})

    assert _engine().detect_issues(ctx) == []
    assert len(CheckEngine([], [lambda: BulletGlyphVisitor(tolerance=3.0)]).detect_issues(ctx)) == 1
