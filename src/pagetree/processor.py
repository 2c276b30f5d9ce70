# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Node processor: one recursive pass from RawNode to raw SimplifiedNode tree.

Each input node yields nothing, one node, or a list of nodes (a transparent
wrapper splices its children into the parent's position). Interactive
elements never enter the tree; they are appended to the ``interactive``
accumulator passed down the recursion, in discovery order.
"""

from __future__ import annotations

import logging
from functools import partial

from pagetree import InteractiveElement, SimplifiedNode
from pagetree.classify import (
    DROPPED_TAGS,
    TagClass,
    classify_tag,
    extract_attributes,
    is_visible,
    normalize_text,
    resolve_url,
)
from pagetree.errors import UnresolvableURLError
from pagetree.snapshot import RawKind, RawNode
from pagetree.tables import RowMode, extract_table

logger = logging.getLogger(__name__)

NodeYield = SimplifiedNode | list[SimplifiedNode] | None


def as_list(result: NodeYield) -> list[SimplifiedNode]:
    if result is None:
        return []
    if isinstance(result, SimplifiedNode):
        return [result]
    return result


def _resolve_attr(node: RawNode, name: str, base_uri: str) -> str | None:
    """Resolved URL attribute, the raw value when unresolvable, None when absent/empty."""
    raw = node.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return resolve_url(raw, base_uri)
    except UnresolvableURLError:
        logger.debug("Keeping unresolved %s=%r on <%s>", name, raw, node.tag)
        return raw.strip()


def _video_src(node: RawNode, base_uri: str) -> str | None:
    src = _resolve_attr(node, "src", base_uri)
    if src:
        return src
    for child in node.element_children():
        if child.tag == "source":
            src = _resolve_attr(child, "src", base_uri)
            if src:
                return src
    return None


def _interactive_element(node: RawNode, base_uri: str) -> InteractiveElement:
    return InteractiveElement(
        tag=node.tag,
        attributes=extract_attributes(node),
        text=normalize_text(node.text_content()) or None,
        href=_resolve_attr(node, "href", base_uri) if node.tag == "a" else None,
    )


def process_children(
    node: RawNode,
    base_uri: str,
    interactive: list[InteractiveElement],
    *,
    row_mode: RowMode = RowMode.ALL,
) -> list[SimplifiedNode]:
    out: list[SimplifiedNode] = []
    for child in node.children:
        out.extend(as_list(process_node(child, base_uri, interactive, row_mode=row_mode)))
    return out


def process_node(
    node: RawNode,
    base_uri: str,
    interactive: list[InteractiveElement],
    *,
    row_mode: RowMode = RowMode.ALL,
) -> NodeYield:
    """Simplify one snapshot node.

    Args:
        node: Element or text node (anything else yields nothing).
        base_uri: Document base URI for href/src/poster resolution.
        interactive: Accumulator for interactive elements, appended in traversal order.
        row_mode: Table data-row policy, forwarded to the table extractor.

    Returns:
        A node, a list of nodes to splice into the parent, or None.
    """
    if node.kind is RawKind.TEXT:
        text = normalize_text(node.text)
        return SimplifiedNode.content("span", text=text) if text else None

    if node.kind is not RawKind.ELEMENT:
        return None

    if node.tag in DROPPED_TAGS or not is_visible(node):
        return None

    tag_class = classify_tag(node)

    if tag_class is TagClass.INTERACTIVE:
        interactive.append(_interactive_element(node, base_uri))
        return None

    if tag_class is TagClass.TRANSPARENT:
        return process_children(node, base_uri, interactive, row_mode=row_mode) or None

    tag = node.tag

    if tag == "table":
        recurse = partial(process_node, base_uri=base_uri, interactive=interactive, row_mode=row_mode)
        return extract_table(node, lambda cell: as_list(recurse(cell)), row_mode=row_mode)

    if tag == "img":
        alt = normalize_text(node.get("alt"))
        return SimplifiedNode.media(tag, src=_resolve_attr(node, "src", base_uri), alt=alt or None)

    if tag == "video":
        return SimplifiedNode.media(
            tag,
            src=_video_src(node, base_uri),
            poster=_resolve_attr(node, "poster", base_uri),
        )

    children = process_children(node, base_uri, interactive, row_mode=row_mode)
    return SimplifiedNode.content(
        tag,
        children=children,
        href=_resolve_attr(node, "href", base_uri) if tag == "a" else None,
        src=_resolve_attr(node, "src", base_uri),
    )


def process_body(
    body: RawNode,
    base_uri: str,
    *,
    row_mode: RowMode = RowMode.ALL,
) -> tuple[list[SimplifiedNode], list[InteractiveElement]]:
    """Run the node processor over ``body``'s children with a fresh accumulator."""
    interactive: list[InteractiveElement] = []
    nodes = process_children(body, base_uri, interactive, row_mode=row_mode)
    return nodes, interactive
