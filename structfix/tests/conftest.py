import pytest

from structfix.tests.utils.tree_builders import El, build_tree, make_context, mcr


@pytest.fixture
def simple_document():
    """Document with a heading and a paragraph on one page."""
    tree, names = build_tree(
        El("Document", El("H1", mcr(0), name="heading"), El("P", mcr(1), name="paragraph"), name="document")
    )
    return tree, names


@pytest.fixture
def simple_context(simple_document):
    tree, _names = simple_document
    return make_context(tree, text={1: {0: "Accessible Heading", 1: "Meaningful paragraph text."}})
