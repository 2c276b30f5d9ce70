# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Post-processing normalizer for the raw simplified tree.

Pass 1 (merge): coalesce consecutive inline-text siblings into
sentence-bounded runs. Pass 2 (collapse): post-order rewrite that drops
empty nodes, absorbs single children into their parent and re-encodes
links/code/preformatted text in markdown style.

Both passes are pure: they build new SimplifiedNode values and never touch
their input. ``header``/``rows`` of table nodes are passed through as-is.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any

from pagetree import SimplifiedNode
from pagetree.classify import HEADING_TAGS

logger = logging.getLogger(__name__)

MERGE_LENGTH_CEILING = 500
PARAGRAPH_BREAK = "\n\n"
INLINE_TAG = "span"

# Tags that never join an inline run, even when text-only
_RUN_BREAKING_TAGS = HEADING_TAGS | {"li"}

# Inline-rendered tags become generic inline text once they carry text
_INLINE_RETAG = frozenset({"a", "code", "pre", INLINE_TAG})

_OPENER_AT_END = re.compile(r"[(\[{\"'“‘«\n]$")
_NON_WORD_AT_START = re.compile(r"^\W")
_SENTENCE_END = re.compile(r"[.?!\s]$")
_NEWLINE_RUN = re.compile(r"\s*\n\s*")


# --- Pass 1: inline-run merge ---


def is_inline_text(node: SimplifiedNode) -> bool:
    """Text-only node eligible for merging (list items and headings excluded)."""
    return node.tag not in _RUN_BREAKING_TAGS and node.text is not None and node.populated().keys() == {"text"}


def _join(buffer: str, incoming: str) -> str:
    if _OPENER_AT_END.search(buffer) or _NON_WORD_AT_START.match(incoming):
        return buffer + incoming
    return f"{buffer} {incoming}"


def _flushed(tag: str, text: str) -> SimplifiedNode:
    return SimplifiedNode(tag=tag, text=text.rstrip("\n"))


def merge_inline_runs(
    nodes: Iterable[SimplifiedNode],
    *,
    force_merging: bool = False,
    max_length: int = MERGE_LENGTH_CEILING,
) -> list[SimplifiedNode]:
    """Merge one sibling sequence. Order is preserved; only inline runs coalesce.

    A short buffer that ends a sentence gets a paragraph break and stays
    open; an unfinished sentence (or ``force_merging``) keeps accumulating;
    anything else flushes.
    """
    out: list[SimplifiedNode] = []
    buf_tag: str | None = None
    buf_text = ""

    for node in nodes:
        if not is_inline_text(node):
            if buf_tag is not None:
                out.append(_flushed(buf_tag, buf_text))
                buf_tag = None
            out.append(node)
            continue

        text = node.text
        if buf_tag is None:
            buf_tag, buf_text = node.tag, text
        else:
            buf_text = _join(buf_text, text)

        ends_sentence = bool(_SENTENCE_END.search(text))
        if ends_sentence and len(buf_text) < max_length:
            buf_text += PARAGRAPH_BREAK
        elif not ends_sentence or force_merging:
            continue
        else:
            out.append(_flushed(buf_tag, buf_text))
            buf_tag = None

    if buf_tag is not None:
        out.append(_flushed(buf_tag, buf_text))
    return out


def merge_tree(nodes: Sequence[SimplifiedNode], *, max_length: int = MERGE_LENGTH_CEILING) -> list[SimplifiedNode]:
    """Apply Pass 1 to ``nodes`` and to every nested ``children`` sequence."""
    merged: list[SimplifiedNode] = []
    for node in nodes:
        if node.children is not None:
            children = merge_tree(node.children, max_length=max_length)
            node = replace(node, children=tuple(children))
        merged.append(node)
    return merge_inline_runs(merged, max_length=max_length)


# --- Pass 2: structural collapse ---


def _encode(tag: str, absorbed_tag: str | None, fields: dict[str, Any]) -> str:
    """Re-encode a text-carrying node; returns the (possibly) new tag.

    Code and preformatted wrapping keys on the tag of the absorbed child, so a
    bare <code> or <pre> keeps its text as-is until a parent absorbs it.
    """
    text: str = fields["text"]
    href = fields.pop("href", None)
    if href:
        text = f"[{text}]({href})"
    elif absorbed_tag == "code":
        text = f"`{text}`"
    elif absorbed_tag == "pre":
        text = f"\n```\n{text}\n```\n"
    elif tag == "li":
        text = _NEWLINE_RUN.sub(" ", text)
    fields["text"] = text
    return INLINE_TAG if tag in _INLINE_RETAG else tag


def _collapse(node: SimplifiedNode, max_length: int) -> tuple[SimplifiedNode, str] | None:
    """Collapse ``node``; returns (new node, original tag) or None when empty."""
    if node.is_degenerate:
        return None

    tag = node.tag
    fields = node.populated()
    absorbed_tag: str | None = None

    if node.children is not None:
        del fields["children"]
        collapsed = [c for c in (_collapse(child, max_length) for child in node.children) if c is not None]
        children = [c for c, _ in collapsed]
        # A lone child keeps its original tag for re-encoding
        if tag == "li" and len(children) > 1:
            children = merge_inline_runs(children, force_merging=True, max_length=max_length)
            collapsed = [(c, c.tag) for c in children]
        if len(children) == 1:
            child, absorbed_tag = collapsed[0]
            fields.update(child.populated())
        elif children:
            fields["children"] = tuple(children)

    if not fields:
        return None

    if tag not in HEADING_TAGS:
        if fields.get("href") and fields.get("href") == fields.get("src"):
            # image wrapped in a link to itself
            tag = "img"
            del fields["href"]
        if fields.get("text"):
            tag = _encode(tag, absorbed_tag, fields)

    return SimplifiedNode(tag=tag, **fields), node.tag


def collapse_node(node: SimplifiedNode, *, max_length: int = MERGE_LENGTH_CEILING) -> SimplifiedNode | None:
    result = _collapse(node, max_length)
    return result[0] if result is not None else None


def collapse_tree(nodes: Iterable[SimplifiedNode], *, max_length: int = MERGE_LENGTH_CEILING) -> list[SimplifiedNode]:
    """Apply Pass 2 to each top-level node, dropping the ones that collapse to nothing."""
    out: list[SimplifiedNode] = []
    for node in nodes:
        collapsed = collapse_node(node, max_length=max_length)
        if collapsed is not None:
            out.append(collapsed)
    return out


def normalize(nodes: Sequence[SimplifiedNode], *, max_length: int = MERGE_LENGTH_CEILING) -> list[SimplifiedNode]:
    """Pass 1 then Pass 2 over the raw body sequence."""
    merged = merge_tree(nodes, max_length=max_length)
    result = collapse_tree(merged, max_length=max_length)
    logger.debug("Normalized body: %d raw -> %d merged -> %d collapsed", len(nodes), len(merged), len(result))
    return result
