# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page Tree: compact hierarchical representation of rendered web pages.

Turns a rendered DOM snapshot into a low-noise tree for chunking,
embedding, or LLM consumption:
- body: structural nodes (headings, paragraphs, lists, tables, media)
- interactive: flat, traversal-ordered list of actionable elements
- metadata: document-level title/description/author/canonical/og:image
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any

__all__ = [
    "DOMData",
    "InteractiveElement",
    "MetaData",
    "NodeKind",
    "SimplifiedNode",
]


class NodeKind(StrEnum):
    """Shape of a SimplifiedNode, derived from its populated field group."""

    CONTENT = "content"  # text and/or children
    TABLE = "table"  # header/rows
    MEDIA = "media"  # src/alt/poster only


_TABLE_FIELDS = ("header", "rows")
_MEDIA_FIELDS = ("src", "alt", "poster")


@dataclass(frozen=True, slots=True)
class SimplifiedNode:
    """A single node of the simplified tree.

    All fields except ``tag`` are optional; unset fields are ``None`` and
    never serialized.
    """

    tag: str
    text: str | None = None
    children: tuple[SimplifiedNode, ...] | None = None
    href: str | None = None
    src: str | None = None
    alt: str | None = None
    poster: str | None = None
    header: tuple[SimplifiedNode, ...] | None = None
    rows: tuple[tuple[SimplifiedNode, ...], ...] | None = None

    @classmethod
    def content(
        cls,
        tag: str,
        text: str | None = None,
        children: tuple[SimplifiedNode, ...] | list[SimplifiedNode] | None = None,
        **links: str | None,
    ) -> SimplifiedNode:
        return cls(tag=tag, text=text, children=tuple(children) if children else None, **links)

    @classmethod
    def table(
        cls,
        header: list[SimplifiedNode] | None = None,
        rows: list[list[SimplifiedNode]] | None = None,
        tag: str = "table",
    ) -> SimplifiedNode:
        return cls(
            tag=tag,
            header=tuple(header) if header else None,
            rows=tuple(tuple(r) for r in rows) if rows else None,
        )

    @classmethod
    def media(
        cls,
        tag: str,
        src: str | None = None,
        alt: str | None = None,
        poster: str | None = None,
    ) -> SimplifiedNode:
        return cls(tag=tag, src=src, alt=alt, poster=poster)

    @property
    def kind(self) -> NodeKind:
        if any(getattr(self, f) is not None for f in _TABLE_FIELDS):
            return NodeKind.TABLE
        if self.text is None and self.children is None and any(getattr(self, f) is not None for f in _MEDIA_FIELDS):
            return NodeKind.MEDIA
        return NodeKind.CONTENT

    @property
    def is_degenerate(self) -> bool:
        """True when ``tag`` is the only populated field."""
        return not self.populated()

    def populated(self) -> dict[str, Any]:
        """Populated fields other than ``tag``, in declaration order."""
        values = ((f.name, getattr(self, f.name)) for f in fields(self) if f.name != "tag")
        return {name: value for name, value in values if value is not None}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tag": self.tag}
        for name, value in self.populated().items():
            if name == "rows":
                data[name] = [[cell.to_dict() for cell in row] for row in value]
            elif name in ("children", "header"):
                data[name] = [child.to_dict() for child in value]
            else:
                data[name] = value
        return data


@dataclass(frozen=True, slots=True)
class InteractiveElement:
    """An actionable element, collected outside the structural tree."""

    tag: str
    attributes: Mapping[str, str] = field(default_factory=dict)  # allow-listed, allow-list order
    text: str | None = None
    href: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tag": self.tag, **self.attributes}
        if self.text:
            data["text"] = self.text
        if self.href:
            data["href"] = self.href
        return data


@dataclass(frozen=True, slots=True)
class MetaData:
    """Document-level metadata. Empty values are never stored."""

    title: str | None = None
    description: str | None = None
    author: str | None = None
    canonical: str | None = None
    og_image: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "canonical": self.canonical,
            "ogImage": self.og_image,
        }
        return {k: v for k, v in data.items() if v}


@dataclass(frozen=True, slots=True)
class DOMData:
    """Extraction result: metadata + simplified body + interactive list."""

    metadata: MetaData
    body: tuple[SimplifiedNode, ...] = ()
    interactive: tuple[InteractiveElement, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "body": [node.to_dict() for node in self.body],
            "interactive": [item.to_dict() for item in self.interactive],
        }
