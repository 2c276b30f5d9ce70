# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Extraction pipeline: snapshot → node processor → normalizer → DOMData.

Stages:
  1. Metadata extraction (head fields)
  2. Node processing of <body> (raw tree + interactive list)
  3. Post-processing: inline-run merge, then structural collapse

``extract_document`` is pure and synchronous; ``extract_dom_data`` adds the
browser round-trip and reports any rendering failure as ExtractionError.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from pagetree import DOMData
from pagetree.browser_session import BrowserConfig, create_session
from pagetree.errors import BrowserError, ExtractionError
from pagetree.metadata import extract_metadata
from pagetree.postprocess import MERGE_LENGTH_CEILING, normalize
from pagetree.processor import process_body
from pagetree.snapshot import RawDocument
from pagetree.tables import RowMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionConfig:
    """Tunables of the core pipeline."""

    merge_length_ceiling: int = MERGE_LENGTH_CEILING
    table_row_mode: RowMode = RowMode.ALL


def extract_document(doc: RawDocument, config: ExtractionConfig | None = None) -> DOMData:
    """Run the full pipeline over an already-rendered snapshot."""
    config = config or ExtractionConfig()
    t0 = time.perf_counter()

    metadata = extract_metadata(doc)
    raw_body, interactive = process_body(doc.body, doc.base_uri, row_mode=config.table_row_mode)
    body = normalize(raw_body, max_length=config.merge_length_ceiling)

    logger.debug(
        "Extracted %s: %d body nodes, %d interactive, %.1fms",
        doc.base_uri,
        len(body),
        len(interactive),
        (time.perf_counter() - t0) * 1000,
    )
    return DOMData(metadata=metadata, body=tuple(body), interactive=tuple(interactive))


def extract_html(html: str, base_uri: str = "about:blank", config: ExtractionConfig | None = None) -> DOMData:
    """Offline mode: static markup, visibility approximated from inline styles."""
    return extract_document(RawDocument.from_html(html, base_uri), config)


async def extract_dom_data(
    url: str,
    *,
    browser_config: BrowserConfig | None = None,
    config: ExtractionConfig | None = None,
) -> DOMData:
    """Render ``url`` in Chromium and extract it.

    Raises:
        ExtractionError: rendering failed (launch, navigation, timeout, snapshot).
    """
    try:
        async with create_session(browser_config) as session:
            await session.navigate(url)
            doc = await session.snapshot()
    except BrowserError as e:
        logger.warning("Rendering failed for %s: %s", url, e)
        raise ExtractionError(f"Could not render {url}: {e}") from e
    return extract_document(doc, config)


async def extract_rendered_html(
    html: str,
    *,
    browser_config: BrowserConfig | None = None,
    config: ExtractionConfig | None = None,
) -> DOMData:
    """Render raw markup in Chromium (scripts and styles applied), then extract."""
    try:
        async with create_session(browser_config) as session:
            await session.load_html(html)
            doc = await session.snapshot()
    except BrowserError as e:
        raise ExtractionError(f"Could not render HTML: {e}") from e
    return extract_document(doc, config)
