# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Rendered-DOM snapshot: the input boundary of the extraction pipeline.

A snapshot is an immutable tree of RawNode values plus document-level
fields (base URI, title, meta/link tags). Two sources:

  1. Browser: ``RawDocument.from_snapshot()`` over the JSON value returned by
     the snapshot script in browser_session.py (computed style included).
  2. Offline: ``RawDocument.from_html()`` parses static markup with lxml and
     approximates computed style from inline ``style`` / ``hidden``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any
from urllib.parse import urljoin

import lxml.html
from lxml import etree

from pagetree.errors import MalformedNodeError, SnapshotError

logger = logging.getLogger(__name__)

_MAX_SNAPSHOT_DEPTH = 256

# DOM nodeType values emitted by the snapshot script
_NODE_TYPES = {1: "element", 3: "text"}

# Elements the UA stylesheet never renders
_UNRENDERED_TAGS = {"template", "noscript", "datalist", "head", "title", "meta", "link", "base"}

_STYLE_DECL = re.compile(r"(display|visibility)\s*:\s*([a-z-]+)", re.IGNORECASE)


class RawKind(StrEnum):
    ELEMENT = "element"
    TEXT = "text"
    OTHER = "other"  # comments, processing instructions, doctype, ...


@dataclass(frozen=True, slots=True)
class RawNode:
    """One node of a rendered DOM snapshot."""

    kind: RawKind
    tag: str = ""
    attrs: Mapping[str, str] = field(default_factory=dict)
    text: str = ""
    children: tuple[RawNode, ...] = ()
    style: Mapping[str, str] = field(default_factory=dict)  # computed display/visibility

    @classmethod
    def element(
        cls,
        tag: str,
        attrs: Mapping[str, str] | None = None,
        children: tuple[RawNode, ...] | list[RawNode] = (),
        style: Mapping[str, str] | None = None,
    ) -> RawNode:
        return cls(
            kind=RawKind.ELEMENT,
            tag=tag.lower(),
            attrs={k.lower(): v for k, v in (attrs or {}).items()},
            children=tuple(children),
            style=dict(style or {}),
        )

    @classmethod
    def text_node(cls, text: str) -> RawNode:
        return cls(kind=RawKind.TEXT, text=text)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name.lower(), default)

    def has(self, name: str) -> bool:
        return name.lower() in self.attrs

    def element_children(self) -> Iterator[RawNode]:
        return (c for c in self.children if c.kind is RawKind.ELEMENT)

    def text_content(self) -> str:
        """Concatenated text of all descendant text nodes (DOM ``textContent``)."""
        if self.kind is RawKind.TEXT:
            return self.text
        return "".join(child.text_content() for child in self.children)


@dataclass(frozen=True, slots=True)
class RawDocument:
    """A rendered document: body tree plus head-level fields."""

    base_uri: str
    body: RawNode
    title: str = ""
    metas: tuple[Mapping[str, str], ...] = ()  # {name, property, content}
    links: tuple[Mapping[str, str], ...] = ()  # {rel, href}

    @classmethod
    def from_snapshot(cls, data: Any) -> RawDocument:
        """Build from the browser snapshot script's JSON result."""
        if not isinstance(data, Mapping) or not isinstance(data.get("body"), Mapping):
            raise SnapshotError("Snapshot has no body")
        try:
            body = _node_from_snapshot(data["body"])
        except MalformedNodeError as e:
            raise SnapshotError(f"Snapshot body is malformed: {e}") from e
        return cls(
            base_uri=str(data.get("baseURI") or "about:blank"),
            body=body,
            title=str(data.get("title") or ""),
            metas=tuple(_string_map(m, ("name", "property", "content")) for m in data.get("metas") or ()),
            links=tuple(_string_map(m, ("rel", "href")) for m in data.get("links") or ()),
        )

    @classmethod
    def from_html(cls, html: str, base_uri: str = "about:blank") -> RawDocument:
        """Build from static markup (offline mode, no script execution)."""
        if not html or not html.strip():
            raise SnapshotError("Empty HTML input")
        try:
            parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
            doc = lxml.html.document_fromstring(html.encode("utf-8"), parser=parser)
        except (etree.ParserError, ValueError) as e:
            raise SnapshotError(f"lxml parsing failed: {e}") from e

        base_el = doc.find(".//head/base[@href]")
        if base_el is not None:
            base_uri = urljoin(base_uri, base_el.get("href", "").strip())

        body_el = doc.find("body")
        body = _node_from_lxml(body_el if body_el is not None else doc, depth=0)
        return cls(
            base_uri=base_uri,
            body=body,
            title=doc.findtext(".//title") or "",
            metas=tuple(
                {"name": m.get("name", ""), "property": m.get("property", ""), "content": m.get("content", "")}
                for m in doc.iter("meta")
            ),
            links=tuple({"rel": el.get("rel", ""), "href": el.get("href", "")} for el in doc.iter("link")),
        )


def _string_map(data: Any, keys: tuple[str, ...]) -> dict[str, str]:
    if not isinstance(data, Mapping):
        return dict.fromkeys(keys, "")
    return {k: str(data.get(k) or "") for k in keys}


def _node_from_snapshot(data: Any, depth: int = 0) -> RawNode:
    if not isinstance(data, Mapping) or "type" not in data:
        raise MalformedNodeError(f"Snapshot node without a type: {type(data).__name__}")

    kind = _NODE_TYPES.get(data["type"])
    if kind == "text":
        return RawNode.text_node(str(data.get("text") or ""))
    if kind is None:
        return RawNode(kind=RawKind.OTHER)

    tag = str(data.get("tag") or "").lower()
    if not tag:
        raise MalformedNodeError("Element node without a tag name")

    children: list[RawNode] = []
    if depth >= _MAX_SNAPSHOT_DEPTH:
        logger.warning("Max snapshot depth %d exceeded at <%s>, skipping subtree", _MAX_SNAPSHOT_DEPTH, tag)
    else:
        for child in data.get("children") or ():
            try:
                children.append(_node_from_snapshot(child, depth + 1))
            except MalformedNodeError:
                logger.debug("Skipping malformed snapshot node under <%s>", tag, exc_info=True)

    attrs = data.get("attrs") or {}
    style = data.get("style") or {}
    return RawNode.element(
        tag,
        attrs={str(k): str(v) for k, v in attrs.items()} if isinstance(attrs, Mapping) else None,
        children=children,
        style={str(k): str(v) for k, v in style.items()} if isinstance(style, Mapping) else None,
    )


def _static_style(el: lxml.html.HtmlElement, tag: str) -> dict[str, str]:
    """Approximate computed display/visibility for static markup."""
    style = {"display": "block", "visibility": "visible"}
    for prop, value in _STYLE_DECL.findall(el.get("style") or ""):
        style[prop.lower()] = value.lower()
    if tag in _UNRENDERED_TAGS or "hidden" in el.attrib:
        style["display"] = "none"
    if tag == "input" and (el.get("type") or "").lower() == "hidden":
        style["display"] = "none"
    return style


def _node_from_lxml(el: lxml.html.HtmlElement, depth: int) -> RawNode:
    # Comments, processing instructions and entities carry a non-string tag
    if not isinstance(el.tag, str):
        return RawNode(kind=RawKind.OTHER)

    tag = el.tag.lower()
    children: list[RawNode] = []
    if depth >= _MAX_SNAPSHOT_DEPTH:
        logger.warning("Max snapshot depth %d exceeded at <%s>, skipping subtree", _MAX_SNAPSHOT_DEPTH, tag)
    else:
        if el.text:
            children.append(RawNode.text_node(el.text))
        for child in el:
            children.append(_node_from_lxml(child, depth + 1))
            if child.tail:
                children.append(RawNode.text_node(child.tail))

    # Boolean attributes (``<input disabled>``) may come back without a value
    attrs = {k: v or "" for k, v in el.attrib.items()}
    return RawNode.element(tag, attrs=attrs, children=children, style=_static_style(el, tag))
