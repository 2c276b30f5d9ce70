# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Leaf predicates for the node processor.

- Tag classification: preserved-structural / interactive / transparent
- Visibility filter over engine-computed display/visibility
- Interactive attribute allow-list extraction
- Whitespace normalization and base-URI resolution
"""

from __future__ import annotations

import re
from enum import StrEnum
from urllib.parse import urljoin

from pagetree.errors import UnresolvableURLError
from pagetree.snapshot import RawKind, RawNode

_WS_RE = re.compile(r"\s+")


class TagClass(StrEnum):
    """How the node processor treats an element."""

    PRESERVED = "preserved"  # kept as its own structural node
    INTERACTIVE = "interactive"  # collected into the side list
    TRANSPARENT = "transparent"  # children promoted into the parent's position


HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})

PRESERVED_TAGS = HEADING_TAGS | {
    "p",
    "a",
    "ul",
    "ol",
    "li",
    "img",
    "table",
    "video",
    "iframe",
    "code",
    "pre",
    "article",
    "section",
}

INTERACTIVE_TAGS = frozenset({"button", "input", "select", "textarea"})

# Dropped outright, before classification
DROPPED_TAGS = frozenset({"script", "style"})

# Closed allow-list, in output order
INTERACTIVE_ATTRIBUTES = (
    "id",
    "name",
    "type",
    "value",
    "placeholder",
    "aria-label",
    "role",
    "title",
    "disabled",
    "checked",
    "required",
)

_HIDDEN_VISIBILITY = {"hidden", "collapse"}


def normalize_text(text: str | None) -> str:
    """Collapse every whitespace run to one space and trim."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text).strip()


def is_visible(node: RawNode) -> bool:
    """False when the computed style says the element is not displayed or not visible.

    Text nodes are never filtered.
    """
    if node.kind is not RawKind.ELEMENT:
        return True
    display = (node.style.get("display") or "").strip().lower()
    visibility = (node.style.get("visibility") or "").strip().lower()
    return display != "none" and visibility not in _HIDDEN_VISIBILITY


def is_interactive(node: RawNode) -> bool:
    if node.tag in INTERACTIVE_TAGS:
        return True
    # Only role-qualified anchors count; plain links stay structural
    return node.tag == "a" and (node.get("role") or "").strip().lower() == "button"


def classify_tag(node: RawNode) -> TagClass:
    if is_interactive(node):
        return TagClass.INTERACTIVE
    if node.tag in PRESERVED_TAGS:
        return TagClass.PRESERVED
    return TagClass.TRANSPARENT


def extract_attributes(node: RawNode) -> dict[str, str]:
    """Allow-listed attributes present on ``node``, in allow-list order."""
    return {name: node.get(name) or "" for name in INTERACTIVE_ATTRIBUTES if node.has(name)}


def resolve_url(value: str, base_uri: str) -> str:
    """Resolve ``value`` against ``base_uri``.

    Raises:
        UnresolvableURLError: when the reference cannot be joined (e.g. a
            malformed IPv6 authority).
    """
    try:
        return urljoin(base_uri, value.strip())
    except ValueError as e:
        raise UnresolvableURLError(f"Cannot resolve {value!r}: {e}", value=value, base=base_uri) from e
