import pytest

from structfix.tag_tree import ROOT, MarkedContentRef, TagTree
from structfix.tests.utils.tree_builders import El, build_tree, mcr, objr


def test_render_outlines_roles_and_content():
    tree, _ = build_tree(El("Document", El("H1", mcr(0)), El("P", mcr(1), objr(7))))

    assert tree.render() == "Document[H1,P]"
    assert tree.render(include_content=True) == "Document[H1[mcid0@p1],P[mcid1@p1,obj7@p1]]"


def test_mapped_role_follows_role_map():
    tree, names = build_tree(El("Heading1", mcr(0), name="h"), role_map={"Heading1": "H1"})

    assert tree.role(names["h"]) == "Heading1"
    assert tree.mapped_role(names["h"]) == "H1"


def test_mapped_role_stops_on_role_map_cycle():
    tree, names = build_tree(El("A", name="a"), role_map={"A": "B", "B": "A"})

    assert tree.mapped_role(names["a"]) in {"A", "B"}


def test_insert_kid_moves_element_between_parents():
    tree, names = build_tree(El("Document", El("Sect", El("P", name="p"), name="sect"), name="doc"))

    tree.insert_kid(names["doc"], 0, names["p"])

    assert tree.render() == "Document[P,Sect]"
    assert tree.parent(names["p"]) == names["doc"]


def test_insert_kid_within_same_parent_adjusts_index():
    tree, names = build_tree(
        El("Document", El("H1", name="a"), El("P", name="b"), El("Span", name="c"), name="doc")
    )

    tree.insert_kid(names["doc"], 3, names["a"])

    assert tree.render() == "Document[P,Span,H1]"


def test_insert_kid_rejects_cycles():
    tree, names = build_tree(El("Document", El("Sect", name="sect"), name="doc"))

    with pytest.raises(ValueError):
        tree.insert_kid(names["sect"], 0, names["doc"])


def test_detached_subtree_is_no_longer_attached():
    tree, names = build_tree(El("Document", El("Sect", El("P", name="p"), name="sect")))

    tree.detach(names["sect"])

    assert not tree.is_attached(names["sect"])
    assert not tree.is_attached(names["p"])
    assert tree.render() == "Document"


def test_resolve_page_prefers_content_then_ancestors():
    tree, names = build_tree(
        El("Part", El("P", mcr(0, page=3), name="with_content"), El("Span", name="bare"), page=2)
    )

    assert tree.resolve_page(names["with_content"]) == 3
    assert tree.resolve_page(names["bare"]) == 2


def test_resolve_page_unknown_is_zero():
    tree, names = build_tree(El("Document", El("P", name="p")))

    assert tree.resolve_page(names["p"]) == 0


def test_iter_preorder_is_document_order_and_excludes_start():
    tree, names = build_tree(
        El("Document", El("Sect", El("H1"), El("P")), El("L", El("LI")), name="doc")
    )

    roles = [tree.role(handle) for handle in tree.iter_preorder(names["doc"])]

    assert roles == ["Sect", "H1", "P", "L", "LI"]


def test_content_refs_are_collected_in_document_order():
    tree, names = build_tree(El("Document", El("P", mcr(2)), El("P", mcr(0), mcr(1)), name="doc"))

    assert tree.content_refs(names["doc"]) == [
        MarkedContentRef(2, 1),
        MarkedContentRef(0, 1),
        MarkedContentRef(1, 1),
    ]


def test_wrap_inserts_wrapper_at_original_position():
    tree, names = build_tree(El("LI", El("Lbl"), El("P", name="p"), name="li"))

    wrapper = tree.wrap(names["p"], "LBody")

    assert tree.render() == "LI[Lbl,LBody[P]]"
    assert tree.parent(wrapper) == names["li"]


def test_set_attribute_rejects_unknown_names():
    tree = TagTree()
    handle = tree.new_element("P")

    with pytest.raises(ValueError):
        tree.set_attribute(handle, "lang", "en")


def test_unknown_handle_raises_key_error():
    tree = TagTree()

    with pytest.raises(KeyError):
        tree.node(42)
    assert tree.root == ROOT
