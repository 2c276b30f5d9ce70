# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageTree exception hierarchy.

All PageTree-specific errors inherit from PageTreeError, allowing callers
to catch the base class for any PageTree failure or specific subclasses
for targeted handling.

The core pipeline never lets MalformedNodeError or UnresolvableURLError
escape: the first is treated as an absent node, the second keeps the raw
attribute value.
"""

from __future__ import annotations


class PageTreeError(Exception):
    """Base exception for all PageTree errors."""


class MalformedNodeError(PageTreeError):
    """Snapshot node is neither an element nor a text node (or has no usable shape)."""


class UnresolvableURLError(PageTreeError):
    """An href/src value cannot be resolved against the document base URI."""

    def __init__(self, message: str, *, value: str = "", base: str = "") -> None:
        super().__init__(message)
        self.value = value
        self.base = base


class SnapshotError(PageTreeError):
    """No usable DOM snapshot could be built from the given input."""


class BrowserError(PageTreeError):
    """Browser session launch, navigation, or snapshot failure."""


class ExtractionError(PageTreeError):
    """Extraction failed as a whole (opaque wrapper for collaborator failures)."""
