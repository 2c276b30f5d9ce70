# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for classify.py: tag classes, visibility, attributes, URLs, whitespace."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from pagetree.classify import (
    INTERACTIVE_ATTRIBUTES,
    TagClass,
    classify_tag,
    extract_attributes,
    is_visible,
    normalize_text,
    resolve_url,
)
from pagetree.errors import UnresolvableURLError
from pagetree.snapshot import RawNode
from tests._tree_helpers import HIDDEN, el

# ---------------------------------------------------------------------------
# normalize_text
# ---------------------------------------------------------------------------


class TestNormalizeText:
    def test_collapses_mixed_whitespace(self):
        assert normalize_text("  Hello \n\t  world\r\n ") == "Hello world"

    def test_none_and_empty(self):
        assert normalize_text(None) == ""
        assert normalize_text("") == ""
        assert normalize_text(" \n\t ") == ""

    def test_nbsp_collapses(self):
        assert normalize_text("a\u00a0\u00a0b") == "a b"

    @given(st.text(alphabet="ab \t\n\r", max_size=40))
    def test_single_spaces_no_padding(self, raw):
        out = normalize_text(raw)
        assert out == out.strip()
        assert "  " not in out
        assert not any(c in out for c in "\t\n\r")
        assert out.split(" ") == raw.split() or out == ""


# ---------------------------------------------------------------------------
# Tag classification
# ---------------------------------------------------------------------------


class TestClassifyTag:
    @pytest.mark.parametrize(
        "tag",
        ["h1", "h6", "p", "a", "ul", "ol", "li", "img", "table", "video", "iframe", "code", "pre", "article"],
    )
    def test_preserved(self, tag):
        assert classify_tag(el(tag)) is TagClass.PRESERVED

    @pytest.mark.parametrize("tag", ["button", "input", "select", "textarea"])
    def test_interactive(self, tag):
        assert classify_tag(el(tag)) is TagClass.INTERACTIVE

    @pytest.mark.parametrize("tag", ["div", "span", "b", "main", "nav", "td", "form", "label"])
    def test_transparent(self, tag):
        assert classify_tag(el(tag)) is TagClass.TRANSPARENT

    def test_plain_anchor_is_structural(self):
        assert classify_tag(el("a", attrs={"href": "/x"})) is TagClass.PRESERVED

    def test_role_button_anchor_is_interactive(self):
        assert classify_tag(el("a", attrs={"role": "button"})) is TagClass.INTERACTIVE

    def test_role_match_is_case_insensitive(self):
        assert classify_tag(el("a", attrs={"ROLE": " Button "})) is TagClass.INTERACTIVE

    def test_other_role_anchor_stays_structural(self):
        assert classify_tag(el("a", attrs={"role": "link"})) is TagClass.PRESERVED


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


class TestVisibility:
    def test_display_none_hidden(self):
        assert is_visible(el("div", style=HIDDEN)) is False

    @pytest.mark.parametrize("value", ["hidden", "collapse", "HIDDEN"])
    def test_visibility_hidden(self, value):
        assert is_visible(el("div", style={"display": "block", "visibility": value})) is False

    def test_missing_style_is_visible(self):
        assert is_visible(el("div")) is True

    def test_inline_display_visible(self):
        assert is_visible(el("span", style={"display": "inline", "visibility": "visible"})) is True

    def test_text_nodes_never_filtered(self):
        assert is_visible(RawNode.text_node("x")) is True


# ---------------------------------------------------------------------------
# Attribute allow-list
# ---------------------------------------------------------------------------


class TestExtractAttributes:
    def test_allow_list_order(self):
        node = el("input", attrs={"placeholder": "Search", "class": "big", "id": "q", "type": "text"})
        attrs = extract_attributes(node)
        assert list(attrs) == ["id", "type", "placeholder"]
        assert attrs == {"id": "q", "type": "text", "placeholder": "Search"}

    def test_non_listed_attributes_dropped(self):
        node = el("button", attrs={"onclick": "go()", "style": "color:red", "data-x": "1"})
        assert extract_attributes(node) == {}

    def test_boolean_attribute_kept_as_empty_string(self):
        assert extract_attributes(el("input", attrs={"disabled": ""})) == {"disabled": ""}

    def test_allow_list_is_closed(self):
        assert "href" not in INTERACTIVE_ATTRIBUTES
        assert INTERACTIVE_ATTRIBUTES[0] == "id"


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------


class TestResolveUrl:
    def test_relative_path(self):
        assert resolve_url("/x", "https://example.com") == "https://example.com/x"

    def test_relative_to_directory(self):
        assert resolve_url("img.png", "https://example.com/docs/page") == "https://example.com/docs/img.png"

    def test_absolute_unchanged(self):
        assert resolve_url("https://other.org/a", "https://example.com") == "https://other.org/a"

    def test_value_trimmed(self):
        assert resolve_url("  /x ", "https://example.com") == "https://example.com/x"

    def test_malformed_raises(self):
        with pytest.raises(UnresolvableURLError) as exc_info:
            resolve_url("http://[::1", "https://example.com")
        assert exc_info.value.value == "http://[::1"
        assert exc_info.value.base == "https://example.com"
