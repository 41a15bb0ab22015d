from pathlib import Path

import pikepdf
import pytest

from structfix.check_engine import CheckEngine
from structfix.content_source import StaticContentSource
from structfix.document_context import PUSHBUTTON_FLAG, Annotation
from structfix.issues import IssueType
from structfix.pdf_tag_tree import load_tagged_document, save_tagged_document
from structfix.remediation_service import RemediationService
from structfix.rules.widget_rules import UnexpectedWidgetCheck
from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr, objr, rect, text_kinds


def _widget(number=70, field_type="Btn", flags=PUSHBUTTON_FLAG):
    return Annotation(
        object_number=number,
        page=1,
        subtype="Widget",
        rect=rect(400, 50, 500, 70),
        struct_parent=1,
        field_type=field_type,
        field_flags=flags,
    )


def _form_document(*form_kids, annotations):
    tree, names = build_tree(
        El("Document", El("P", mcr(0)), El("Form", *form_kids, name="form"), name="doc")
    )
    return tree, names, make_context(tree, annotations=annotations)


def test_push_button_is_reported_and_removed():
    widget = _widget()
    tree, names, ctx = _form_document(objr(70), annotations=[widget])
    engine = CheckEngine([UnexpectedWidgetCheck()])

    issues = engine.detect_issues(ctx)

    assert [issue.type for issue in issues] == [IssueType.UNEXPECTED_WIDGET]
    assert issues[0].message == "Unexpected Widget annotation found on page 1"
    assert issues[0].location.object_number == 70

    resolved = engine.apply_fixes(ctx, issues)

    assert widget.removed
    assert tree.render() == "Document[P]"
    assert not tree.is_attached(names["form"])
    assert resolved[0].resolution_note == "Removed Widget annotation obj. #70 (p. 1)"
    assert engine.detect_issues(ctx) == []


def test_form_element_with_other_content_is_kept():
    widget = _widget()
    tree, _names, ctx = _form_document(mcr(1), objr(70), annotations=[widget])

    UnexpectedWidgetCheck().find_issues(ctx)[0].fix.apply(ctx)

    assert tree.render(include_content=True) == "Document[P[mcid0@p1],Form[mcid1@p1]]"


def test_other_form_fields_are_not_unexpected():
    annotations = [
        _widget(71, flags=0),
        _widget(72, field_type="Tx", flags=0),
        _widget(73, field_type=None, flags=0),
    ]
    _tree, _names, ctx = _form_document(objr(71), annotations=annotations)

    assert UnexpectedWidgetCheck().find_issues(ctx) == []


def test_widget_removal_is_idempotent():
    widget = _widget()
    tree, _names, ctx = _form_document(objr(70), annotations=[widget])
    fix = UnexpectedWidgetCheck().find_issues(ctx)[0].fix

    fix.apply(ctx)
    once = tree.render(include_content=True)
    fix.apply(ctx)

    assert tree.render(include_content=True) == once
    assert fix.references_removed == 0


def _build_form_pdf(output_path: Path) -> None:
    """One page with a tagged paragraph and a tagged print button in the AcroForm."""
    pdf = pikepdf.Pdf.new()
    pdf.pages.append(pikepdf.Page(pikepdf.Dictionary(Type=pikepdf.Name("/Page"), MediaBox=pikepdf.Array([0, 0, 612, 792]))))
    page = pdf.pages[0]

    field = pdf.make_indirect(
        pikepdf.Dictionary(FT=pikepdf.Name("/Btn"), Ff=PUSHBUTTON_FLAG, T=pikepdf.String("Print"), Kids=pikepdf.Array([]))
    )
    widget = pdf.make_indirect(
        pikepdf.Dictionary(
            Type=pikepdf.Name("/Annot"),
            Subtype=pikepdf.Name("/Widget"),
            Rect=pikepdf.Array([400, 50, 500, 70]),
            Parent=field,
            P=page.obj,
            StructParent=1,
        )
    )
    field.Kids.append(widget)
    pdf.Root.AcroForm = pdf.make_indirect(pikepdf.Dictionary(Fields=pikepdf.Array([field])))
    page.obj.Annots = pikepdf.Array([widget])
    page.obj.Contents = pdf.make_indirect(
        pikepdf.Stream(pdf, b"/P <</MCID 0>> BDC\nBT 50 700 Td (Order form) Tj ET\nEMC")
    )

    struct_tree = pdf.make_indirect(
        pikepdf.Dictionary(Type=pikepdf.Name("/StructTreeRoot"), K=pikepdf.Array([]), ParentTreeNextKey=2)
    )
    pdf.Root.StructTreeRoot = struct_tree
    document = pdf.make_indirect(
        pikepdf.Dictionary(Type=pikepdf.Name("/StructElem"), S=pikepdf.Name("/Document"), K=pikepdf.Array([]), P=struct_tree)
    )
    paragraph = pdf.make_indirect(
        pikepdf.Dictionary(
            Type=pikepdf.Name("/StructElem"), S=pikepdf.Name("/P"), K=pikepdf.Array([0]), Pg=page.obj, P=document
        )
    )
    form = pdf.make_indirect(
        pikepdf.Dictionary(
            Type=pikepdf.Name("/StructElem"),
            S=pikepdf.Name("/Form"),
            K=pikepdf.Array([pikepdf.Dictionary(Type=pikepdf.Name("/OBJR"), Obj=widget, Pg=page.obj)]),
            Pg=page.obj,
            P=document,
        )
    )
    document.K.extend([paragraph, form])
    struct_tree.K.append(document)
    page.obj.StructParents = 0
    struct_tree.ParentTree = pdf.make_indirect(
        pikepdf.Dictionary(Nums=pikepdf.Array([0, pikepdf.Array([paragraph]), 1, form]))
    )
    pdf.save(output_path)


@pytest.fixture
def form_pdf(tmp_path: Path) -> Path:
    path = tmp_path / "form.pdf"
    _build_form_pdf(path)
    return path


def _content():
    return StaticContentSource(
        1,
        bounds={1: {0: rect(50, 695, 150, 712)}},
        text={1: {0: "Order form"}},
        kinds={1: text_kinds(0)},
    )


def test_inherited_field_type_and_flags_are_read(form_pdf: Path):
    with load_tagged_document(form_pdf, content=_content()) as loaded:
        [annotation] = loaded.context.annotations

        assert annotation.subtype == "Widget"
        assert annotation.field_type == "Btn"
        assert annotation.field_flags == PUSHBUTTON_FLAG
        assert annotation.is_pushbutton


def test_removed_push_button_leaves_page_form_and_tags(form_pdf: Path, tmp_path: Path):
    output = tmp_path / "remediated.pdf"

    with load_tagged_document(form_pdf, content=_content()) as loaded:
        result = RemediationService().remediate(loaded.context)
        save_tagged_document(loaded, output)

    assert IssueType.UNEXPECTED_WIDGET in {issue.type for issue in result.original_tag_issues}
    assert result.remaining_tag_issues == []

    with pikepdf.open(output) as pdf:
        page = pdf.pages[0]
        assert len(page.obj.get("/Annots", pikepdf.Array())) == 0
        assert "/AcroForm" not in pdf.Root
        document = pdf.Root.StructTreeRoot.K[0]
        assert [str(kid.S) for kid in document.K] == ["/P"]
