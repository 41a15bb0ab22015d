from structfix.check_engine import CheckEngine
from structfix.fixes.figure_fixes import ChangeFigureRole
from structfix.issues import IssueType
from structfix.rules.figure_rules import FigureWithTextVisitor
from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr


def _engine():
    return CheckEngine([], [FigureWithTextVisitor])


def _figure_document(text, role_map=None, role="Figure"):
    tree, names = build_tree(El("Document", El(role, mcr(0), name="figure")), role_map=role_map)
    return tree, names, make_context(tree, text={1: {0: text}})


def test_figure_holding_text_becomes_a_paragraph():
    tree, names, ctx = _figure_document("Quarterly revenue by region")
    engine = _engine()

    issues = engine.detect_issues(ctx)

    assert [issue.type for issue in issues] == [IssueType.FIGURE_WITH_TEXT]
    assert issues[0].message == 'Figure contains text: "Quarterly revenue by region"'
    assert issues[0].location.element == names["figure"]

    resolved = engine.apply_fixes(ctx, issues)

    assert tree.render() == "Document[P]"
    assert resolved[0].resolution_note == f"Changed Figure to P for element #{names['figure']} (p. 1)"


def test_long_figure_text_is_shortened_in_the_message():
    text = "This figure caption runs well past thirty characters"
    _tree, _names, ctx = _figure_document(text)

    issues = _engine().detect_issues(ctx)

    assert issues[0].message == f'Figure contains text: "{text[:30]}..."'


def test_figures_without_real_text_are_left_alone():
    for text in ["", " ", "x", "Page 3"]:
        _tree, _names, ctx = _figure_document(text)

        assert _engine().detect_issues(ctx) == []


def test_role_mapped_figure_is_retagged_once():
    tree, names, ctx = _figure_document("Chart legend text", role_map={"Image": "Figure"}, role="Image")
    fix = _engine().detect_issues(ctx)[0].fix

    fix.apply(ctx)
    fix.apply(ctx)

    assert tree.role(names["figure"]) == "P"
    assert not fix.changed


def test_detached_figure_is_not_retagged():
    tree, names, ctx = _figure_document("Chart legend text")
    fix = ChangeFigureRole(names["figure"])

    tree.detach(names["figure"])
    fix.apply(ctx)

    assert tree.role(names["figure"]) == "Figure"
    assert fix.describe(ctx) == f"Changed Figure to P for element #{names['figure']}"
