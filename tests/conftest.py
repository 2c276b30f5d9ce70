# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import pagetree  # noqa: F401
except ImportError:
    raise ImportError("pagetree is not installed. Run: pip install -e '.[dev]'") from None

import pytest


@pytest.fixture(autouse=True)
def _block_real_browser(monkeypatch):
    """Safety net: prevent real Chromium launches in unit tests.

    Applies to every test. Tests that exercise BrowserSession patch
    ``pagetree.browser_session.async_playwright`` themselves; that patch
    takes priority over this fixture.
    """

    def _no_real_playwright():
        raise RuntimeError(
            "Test tried to start a real browser. Patch 'pagetree.browser_session.async_playwright' in your test."
        )

    monkeypatch.setattr("pagetree.browser_session.async_playwright", _no_real_playwright)
