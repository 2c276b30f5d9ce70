# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Document-level metadata extraction from a RawDocument head.

Cascade priority per field:
  title:       og:title > <title>
  description: og:description > meta[name=description]
  author:      meta[name=author]
  canonical:   link[rel=canonical] href (trimmed, not resolved)
  ogImage:     og:image
"""

from __future__ import annotations

import logging

from pagetree import MetaData
from pagetree.classify import normalize_text
from pagetree.snapshot import RawDocument

logger = logging.getLogger(__name__)


def _meta_content(doc: RawDocument, *, name: str = "", prop: str = "") -> str:
    """First non-empty normalized ``content`` of a matching meta tag."""
    for meta in doc.metas:
        if name and (meta.get("name") or "").strip().lower() != name:
            continue
        if prop and (meta.get("property") or "").strip().lower() != prop:
            continue
        content = normalize_text(meta.get("content"))
        if content:
            return content
    return ""


def _canonical_href(doc: RawDocument) -> str:
    for link in doc.links:
        rels = (link.get("rel") or "").lower().split()
        if "canonical" in rels:
            href = normalize_text(link.get("href"))
            if href:
                return href
    return ""


def _first(*candidates: str) -> str | None:
    for value in candidates:
        if value:
            return value
    return None


def extract_metadata(doc: RawDocument) -> MetaData:
    """Read title/description/author/canonical/og:image; empty fields stay absent."""
    metadata = MetaData(
        title=_first(_meta_content(doc, prop="og:title"), normalize_text(doc.title)),
        description=_first(_meta_content(doc, prop="og:description"), _meta_content(doc, name="description")),
        author=_first(_meta_content(doc, name="author")),
        canonical=_first(_canonical_href(doc)),
        og_image=_first(_meta_content(doc, prop="og:image")),
    )
    logger.debug("Metadata fields found: %s", sorted(metadata.to_dict()))
    return metadata
