from __future__ import annotations

import pytest

from html_extractor.document import parse
from html_extractor.exceptions import MissingAttributeError, MissingTextNodeError
from html_extractor.schemas import (
    AttributeTarget,
    InnerMarkupTarget,
    OuterMarkupTarget,
    TextTarget,
)
from html_extractor.targets import extract_target


def _node(html: str, element_id: str):
    return parse(html).find(id=element_id)


def test_text_concatenates_descendants_and_trims() -> None:
    node = _node('<div id="t">\n   Hello <b>big</b> world \n</div>', "t")

    assert extract_target(node, TextTarget()) == "Hello big world"


def test_text_node_index_picks_one_text_node() -> None:
    node = _node('<div id="bar">ignore first<br>ignore second<br> 2 </div>', "bar")

    assert extract_target(node, TextTarget(node=0)) == "ignore first"
    assert extract_target(node, TextTarget(node=2)) == "2"


def test_missing_text_node_is_an_error() -> None:
    node = _node('<div id="bar">only</div>', "bar")

    with pytest.raises(MissingTextNodeError):
        extract_target(node, TextTarget(node=3))


def test_attribute_value_is_returned_verbatim() -> None:
    node = _node('<a id="l" href=" /path?q=1 ">x</a>', "l")

    assert extract_target(node, AttributeTarget(name="href")) == " /path?q=1 "


def test_empty_attribute_is_not_missing() -> None:
    node = _node('<input id="i" value="">', "i")

    assert extract_target(node, AttributeTarget(name="value")) == ""


def test_absent_attribute_raises_instead_of_empty_string() -> None:
    node = _node('<div id="d"></div>', "d")

    with pytest.raises(MissingAttributeError) as excinfo:
        extract_target(node, AttributeTarget(name="data-x"))

    assert excinfo.value.kind == "missing_attribute"
    assert excinfo.value.details["attribute"] == "data-x"


def test_multi_valued_attribute_is_joined() -> None:
    node = _node('<div id="d" class="a  b"></div>', "d")

    assert extract_target(node, AttributeTarget(name="class")) == "a b"


def test_inner_markup_keeps_child_structure() -> None:
    node = _node('<div id="g">\n  inner<br>html\n</div>', "g")

    assert extract_target(node, InnerMarkupTarget()) == "inner<br/>html"


def test_outer_markup_includes_own_tag() -> None:
    node = _node('<div><span id="s">a<i>b</i></span></div>', "s")

    assert extract_target(node, OuterMarkupTarget()) == '<span id="s">a<i>b</i></span>'
