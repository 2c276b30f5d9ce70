# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Playwright browser session: renders a page and snapshots its DOM.

Owns Chromium lifecycle, navigation wait policy and timeouts. The snapshot
script runs inside the page and returns a JSON tree carrying each element's
computed display/visibility, which RawDocument.from_snapshot() consumes.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import BrowserError, SnapshotError
from .snapshot import RawDocument

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

WAIT_STRATEGIES = ("load", "domcontentloaded", "networkidle", "hybrid")

_AUTO_INSTALL_TIMEOUT = 300  # seconds, Chromium is a ~140MB download

# Walks document.body; script/style subtrees are not descended into.
_SNAPSHOT_JS = """
() => {
  const SKIP_CHILDREN = new Set(['script', 'style', 'noscript', 'template']);
  const walk = (node) => {
    if (node.nodeType === Node.TEXT_NODE) return { type: 3, text: node.textContent || '' };
    if (node.nodeType !== Node.ELEMENT_NODE) return { type: node.nodeType };
    const tag = node.tagName.toLowerCase();
    const attrs = {};
    for (const a of node.attributes) attrs[a.name] = a.value;
    let style = {};
    try {
      const cs = getComputedStyle(node);
      style = { display: cs.display, visibility: cs.visibility };
    } catch (e) {}
    const children = SKIP_CHILDREN.has(tag) ? [] : Array.from(node.childNodes, walk);
    return { type: 1, tag, attrs, style, children };
  };
  return {
    baseURI: document.baseURI,
    title: document.title,
    metas: Array.from(document.querySelectorAll('meta'), (m) => ({
      name: m.getAttribute('name') || '',
      property: m.getAttribute('property') || '',
      content: m.getAttribute('content') || '',
    })),
    links: Array.from(document.querySelectorAll('link[rel]'), (l) => ({
      rel: l.getAttribute('rel') || '',
      href: l.getAttribute('href') || '',
    })),
    body: document.body ? walk(document.body) : null,
  };
}
"""


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass
class BrowserConfig:
    """Browser launch and navigation configuration."""

    headless: bool = True
    locale: str = DEFAULT_LOCALE
    viewport_width: int = 1280
    viewport_height: int = 800
    user_agent: str = DEFAULT_USER_AGENT
    timeout_ms: int = 30000
    wait_until: str = "load"  # load | domcontentloaded | networkidle | hybrid
    networkidle_budget_ms: int = 6000  # hybrid mode: networkidle attempt budget

    @classmethod
    def from_env(cls) -> BrowserConfig:
        """Defaults overridden by PAGETREE_HEADLESS / PAGETREE_TIMEOUT_MS / PAGETREE_WAIT_UNTIL."""
        config = cls(headless=_env_bool("PAGETREE_HEADLESS", True))
        timeout = os.environ.get("PAGETREE_TIMEOUT_MS", "").strip()
        if timeout:
            try:
                config.timeout_ms = int(timeout)
            except ValueError:
                logger.warning("Ignoring invalid PAGETREE_TIMEOUT_MS=%r", timeout)
        wait_until = os.environ.get("PAGETREE_WAIT_UNTIL", "").strip().lower()
        if wait_until in WAIT_STRATEGIES:
            config.wait_until = wait_until
        elif wait_until:
            logger.warning("Ignoring unknown PAGETREE_WAIT_UNTIL=%r", wait_until)
        return config


def chromium_launch_args(config: BrowserConfig) -> list[str]:
    return [
        "--disable-blink-features=AutomationControlled",
        f"--lang={config.locale}",
        "--disable-extensions",
        "--disable-dev-shm-usage",
        "--disable-background-networking",
        "--disable-gpu",
        "--no-first-run",
        "--noerrdialogs",
    ]


async def _auto_install_chromium() -> bool:
    """Run ``playwright install chromium``. Returns True on success."""
    logger.info("Chromium not found, running 'playwright install chromium' …")
    try:
        proc = await asyncio.create_subprocess_exec(
            sys.executable,
            "-m",
            "playwright",
            "install",
            "chromium",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=_AUTO_INSTALL_TIMEOUT)
    except (OSError, TimeoutError):
        logger.warning("Chromium auto-install failed", exc_info=True)
        return False
    if proc.returncode != 0:
        logger.warning(
            "playwright install chromium failed (rc=%d): %s",
            proc.returncode,
            stderr.decode(errors="replace")[:500],
        )
        return False
    logger.info("Chromium installed successfully")
    return True


class BrowserSession:
    """A single Chromium page used to render and snapshot documents."""

    def __init__(self, config: BrowserConfig | None = None):
        self.config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session not started. Use async with or call start().")
        return self._page

    async def _launch_browser(self) -> None:
        args = chromium_launch_args(self.config)
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless, args=args)
        except PlaywrightError as exc:
            if "executable doesn't exist" not in str(exc).lower():
                raise BrowserError(f"Chromium launch failed: {exc}") from exc
            if not await _auto_install_chromium():
                raise BrowserError(
                    "Chromium is not installed and auto-install failed. Please run: playwright install chromium"
                ) from exc
            self._browser = await self._playwright.chromium.launch(headless=self.config.headless, args=args)

    async def start(self) -> None:
        """Launch browser and create the working page."""
        try:
            self._playwright = await async_playwright().start()
            await self._launch_browser()
            self._context = await self._browser.new_context(
                viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
                locale=self.config.locale,
                user_agent=self.config.user_agent,
                accept_downloads=False,
            )
            self._page = await self._context.new_page()
        except PlaywrightError as exc:
            await self.stop()
            raise BrowserError(f"Browser session start failed: {exc}") from exc
        except BrowserError:
            await self.stop()
            raise
        logger.info("Browser session started (headless=%s)", self.config.headless)

    async def stop(self) -> None:
        """Close browser and clean up. Safe to call on a crashed browser."""
        if self._context:
            with suppress(Exception):
                await self._context.close()
            self._context = None
        self._page = None
        if self._browser:
            with suppress(Exception):
                await self._browser.close()
            self._browser = None
        if self._playwright:
            with suppress(Exception):
                await self._playwright.stop()
            self._playwright = None
        logger.info("Browser session stopped")

    async def __aenter__(self) -> BrowserSession:
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    async def navigate(self, url: str) -> int | None:
        """Navigate to ``url`` using the configured wait policy.

        "hybrid" waits for the load event, then gives networkidle a bounded
        budget before proceeding anyway.

        Returns:
            HTTP status of the main response, if any.
        """
        wait_until = self.config.wait_until
        goto_wait = "load" if wait_until == "hybrid" else wait_until
        try:
            response = await self.page.goto(url, wait_until=goto_wait, timeout=self.config.timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise BrowserError(f"Navigation timed out after {self.config.timeout_ms}ms: {url}") from exc
        except PlaywrightError as exc:
            raise BrowserError(f"Navigation failed: {exc}") from exc

        if wait_until == "hybrid":
            idle_task = asyncio.ensure_future(self.page.wait_for_load_state("networkidle"))
            done, _pending = await asyncio.wait({idle_task}, timeout=self.config.networkidle_budget_ms / 1000)
            if idle_task in done:
                if idle_task.exception() is not None:
                    logger.debug("networkidle wait ended with error: %s", idle_task.exception())
            else:
                idle_task.cancel()
                with suppress(asyncio.CancelledError):
                    await idle_task
                logger.info(
                    "networkidle budget exceeded (%.1fs), snapshotting after load",
                    self.config.networkidle_budget_ms / 1000,
                )

        status = response.status if response else None
        logger.info("Navigated to %s (status=%s, wait=%s)", url, status, wait_until)
        return status

    async def load_html(self, html: str) -> None:
        """Render raw HTML content directly (no network navigation)."""
        try:
            await self.page.set_content(html, wait_until="domcontentloaded", timeout=self.config.timeout_ms)
        except PlaywrightError as exc:
            raise BrowserError(f"Loading HTML failed: {exc}") from exc

    async def snapshot(self) -> RawDocument:
        """Snapshot the rendered DOM with computed visibility."""
        try:
            data = await self.page.evaluate(_SNAPSHOT_JS)
        except PlaywrightError as exc:
            raise BrowserError(f"DOM snapshot failed: {exc}") from exc
        try:
            return RawDocument.from_snapshot(data)
        except SnapshotError as exc:
            raise BrowserError(f"DOM snapshot unusable: {exc}") from exc


@asynccontextmanager
async def create_session(
    config: BrowserConfig | None = None,
) -> AsyncGenerator[BrowserSession, None]:
    """Context manager to create and manage a browser session."""
    session = BrowserSession(config)
    await session.start()
    try:
        yield session
    finally:
        await session.stop()
