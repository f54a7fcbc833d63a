"""
Target Extractor: turns one matched node into a raw string.

Pure function of (node, target).  `element` and `presence` targets never
reach this stage; the runner handles them directly.
"""

from bs4 import Tag

from .schemas import (
    TextTarget, AttributeTarget, InnerMarkupTarget, OuterMarkupTarget, TargetMode,
)
from .exceptions import MissingAttributeError, MissingTextNodeError


def extract_target(node: Tag, target: TargetMode) -> str:
    """
    Extract the raw string selected by `target` from `node`.

    text          all descendant text concatenated, then trimmed
    text[n]       the n-th descendant text node, trimmed
    attribute     attribute value; absence is an error, never ""
    inner_markup  children serialized back to markup, trimmed
    outer_markup  the node with its own tag
    """
    if isinstance(target, TextTarget):
        if target.node is None:
            return node.get_text().strip()
        return _nth_text_node(node, target.node)

    if isinstance(target, AttributeTarget):
        value = node.get(target.name)
        if value is None:
            raise MissingAttributeError(
                f"attribute `{target.name}` is not found on <{node.name}>",
                details={"attribute": target.name, "tag": node.name}
            )
        # bs4 returns multi-valued attributes (class, rel, ...) as lists
        if isinstance(value, list):
            value = " ".join(value)
        return value

    if isinstance(target, InnerMarkupTarget):
        return node.decode_contents().strip()

    if isinstance(target, OuterMarkupTarget):
        return str(node)

    raise TypeError(f"target mode '{target.mode}' does not produce a string")


def _nth_text_node(node: Tag, index: int) -> str:
    for i, text in enumerate(node.strings):
        if i == index:
            return text.strip()
    raise MissingTextNodeError(
        f"text node {index} is not found in <{node.name}>",
        details={"index": index, "tag": node.name}
    )
