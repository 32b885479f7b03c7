"""Fetch scheduler: batched, bounded-concurrency archival of external links.

Pipeline per run::

    launch browser → for each batch: gather(archive one link) → close browser

Links are partitioned into batches of at most ``concurrency``.  Batches run
strictly one after another; the links inside a batch run concurrently.  A
link whose snapshot already exists is skipped without touching the network,
so re-running over a growing corpus only fetches what is new.

Failures of individual links (timeout, navigation error, browser error,
storage error) are logged and counted, never raised.  Only a browser launch
failure aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from archiver.browser import BrowserHandle, BrowserPage, Launcher, playwright_launcher
from archiver.config import settings
from archiver.errors import CapabilityLaunchError
from archiver.fingerprint import fingerprint
from archiver.models import ArchiveSummary
from archiver.store import ArchiveStore

logger = logging.getLogger(__name__)

WAIT_UNTIL = "networkidle"

_ARCHIVED = "archived"
_SKIPPED = "skipped"
_FAILED = "failed"


# ---------------------------------------------------------------------------
# Single page capture
# ---------------------------------------------------------------------------

async def fetch_page(browser: BrowserHandle, url: str, timeout: float) -> Optional[str]:
    """Render *url* in a fresh page and return its markup, or ``None`` on failure.

    The whole capture (page open, navigation, content read) is bounded by
    *timeout* seconds.  The page is closed on every path; the close itself is
    bounded by the same timeout.
    """
    page: Optional[BrowserPage] = None

    async def _capture() -> str:
        nonlocal page
        page = await browser.new_page()
        await page.goto(url, timeout=timeout * 1000, wait_until=WAIT_UNTIL)
        return await page.content()

    try:
        return await asyncio.wait_for(_capture(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("[FETCH] ✗ Timed out after %.1fs: %s", timeout, url)
        return None
    except Exception as exc:
        logger.warning("[FETCH] ✗ Failed %s: %s", url, exc)
        return None
    finally:
        if page is not None:
            try:
                await asyncio.wait_for(page.close(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.debug("[FETCH] Page close timed out for %s", url)
            except Exception as exc:
                logger.debug("[FETCH] Page close failed for %s: %s", url, exc)


async def _archive_one(
    browser: BrowserHandle,
    store: ArchiveStore,
    url: str,
    timeout: float,
) -> str:
    fp = fingerprint(url)
    if await store.exists(fp):
        logger.debug("[ARCHIVE] Already archived: %s", url)
        return _SKIPPED

    markup = await fetch_page(browser, url, timeout)
    if markup is None:
        return _FAILED

    try:
        created = await store.write(fp, markup)
    except OSError as exc:
        logger.warning("[ARCHIVE] ✗ Could not store snapshot for %s: %s", url, exc)
        return _FAILED

    if not created:
        return _SKIPPED
    logger.info("[ARCHIVE] ✓ Snapshot saved: %s → %s", url, fp)
    return _ARCHIVED


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------

def make_batches(links: Iterable[str], size: int) -> List[List[str]]:
    """Split *links* into consecutive lists of at most *size* items.

    Links are sorted first so batch composition is reproducible across runs.
    """
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    ordered = sorted(links)
    return [ordered[i:i + size] for i in range(0, len(ordered), size)]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def run_archive(
    links: Iterable[str],
    store: ArchiveStore,
    *,
    launch: Optional[Launcher] = None,
    concurrency: Optional[int] = None,
    page_timeout: Optional[float] = None,
) -> ArchiveSummary:
    """Archive every link in *links* into *store* and return a summary.

    Args:
        links: External URLs to archive (typically the output of
            :func:`~archiver.discovery.discover`).
        store: Destination snapshot store.
        launch: Browser launch capability.  Defaults to a headless
            Playwright Chromium (``settings.headless``).
        concurrency: Maximum links in flight at once.  Defaults to
            ``settings.concurrency``.
        page_timeout: Per-page timeout in seconds.  Defaults to
            ``settings.page_timeout``.

    Raises:
        ValueError: If *concurrency* < 1 or *page_timeout* <= 0.
        CapabilityLaunchError: If the browser cannot be launched.  Raised
            before any link is processed.
    """
    concurrency = settings.concurrency if concurrency is None else concurrency
    page_timeout = settings.page_timeout if page_timeout is None else page_timeout
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")
    if page_timeout <= 0:
        raise ValueError(f"page_timeout must be > 0, got {page_timeout}")

    batches = make_batches(links, concurrency)
    summary = ArchiveSummary(total=sum(len(b) for b in batches))

    launch = launch or playwright_launcher(headless=settings.headless)
    try:
        browser = await launch()
    except CapabilityLaunchError:
        raise
    except Exception as exc:
        raise CapabilityLaunchError(f"Browser launch failed: {exc}") from exc

    try:
        for number, batch in enumerate(batches, start=1):
            logger.debug(
                "[ARCHIVE] Batch %d/%d (%d link(s))", number, len(batches), len(batch)
            )
            outcomes = await asyncio.gather(
                *(_archive_one(browser, store, url, page_timeout) for url in batch),
                return_exceptions=True,
            )
            for url, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.warning("[ARCHIVE] ✗ Unexpected error for %s: %s", url, outcome)
                    summary.record_failure(url)
                elif outcome == _ARCHIVED:
                    summary.archived += 1
                elif outcome == _SKIPPED:
                    summary.skipped += 1
                else:
                    summary.record_failure(url)
    finally:
        try:
            await browser.close()
        except Exception as exc:
            logger.warning("[ARCHIVE] Browser close failed: %s", exc)

    logger.info(
        "[ARCHIVE] Archive complete: %d link(s) processed "
        "(%d archived, %d skipped, %d failed)",
        summary.total, summary.archived, summary.skipped, summary.failed,
    )
    return summary


async def archive(
    links: Iterable[str],
    store: ArchiveStore,
    *,
    launch: Optional[Launcher] = None,
    concurrency: Optional[int] = None,
    page_timeout: Optional[float] = None,
) -> int:
    """Archive *links* into *store*; return the number of links considered.

    See :func:`run_archive` for arguments and errors.
    """
    summary = await run_archive(
        links,
        store,
        launch=launch,
        concurrency=concurrency,
        page_timeout=page_timeout,
    )
    return summary.total
