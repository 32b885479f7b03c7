"""Tests for the fetch scheduler (batched archival runs).

Mocking strategy:
- ``FakeBrowser`` implements :class:`~archiver.browser.BrowserHandle` in
  memory, so no Playwright install or network access is needed.
- Per-URL behaviour (``"hang"`` / ``"error"``) simulates timeouts and
  navigation failures.
- The store writes to pytest's ``tmp_path``.

pytest-asyncio runs with ``asyncio_mode = "auto"`` (see pyproject.toml), so
``async def`` tests are collected directly.
"""

from __future__ import annotations

import asyncio

import pytest

from archiver.browser import BrowserHandle
from archiver.config import settings
from archiver.errors import CapabilityLaunchError
from archiver.fingerprint import fingerprint
from archiver.models import ArchiveSummary
from archiver.scheduler import archive, fetch_page, make_batches, run_archive
from archiver.store import ArchiveStore


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakePage:
    def __init__(self, browser: "FakeBrowser") -> None:
        self._browser = browser
        self.url: str | None = None
        self.closed = False

    async def goto(self, url: str, *, timeout: float, wait_until: str) -> None:
        browser = self._browser
        browser.navigations.append(url)
        browser.goto_kwargs.append({"timeout": timeout, "wait_until": wait_until})
        browser.events.append(("start", url))
        browser.in_flight += 1
        browser.max_in_flight = max(browser.max_in_flight, browser.in_flight)
        try:
            behaviour = browser.behaviours.get(url)
            if behaviour == "hang":
                await asyncio.sleep(10)
            elif behaviour == "error":
                raise RuntimeError("net::ERR_NAME_NOT_RESOLVED")
            await asyncio.sleep(0.05)
            self.url = url
        finally:
            browser.in_flight -= 1
            browser.events.append(("end", url))

    async def content(self) -> str:
        return f"<html><body>snapshot of {self.url}</body></html>"

    async def close(self) -> None:
        self.closed = True
        self._browser.closed_pages += 1


class FakeBrowser(BrowserHandle):
    def __init__(self, behaviours: dict[str, str] | None = None) -> None:
        self.behaviours = behaviours or {}
        self.navigations: list[str] = []
        self.goto_kwargs: list[dict] = []
        self.events: list[tuple[str, str]] = []
        self.pages: list[FakePage] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed_pages = 0
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


def _launcher(browser: FakeBrowser):
    async def launch() -> BrowserHandle:
        return browser

    return launch


_LINKS = {f"https://site{i}.example.com/page" for i in range(5)}


@pytest.fixture
def store(tmp_path) -> ArchiveStore:
    return ArchiveStore(tmp_path / "archives")


# ---------------------------------------------------------------------------
# make_batches
# ---------------------------------------------------------------------------

class TestMakeBatches:
    def test_splits_into_bounded_batches(self) -> None:
        batches = make_batches(["e", "d", "c", "b", "a"], 2)
        assert batches == [["a", "b"], ["c", "d"], ["e"]]

    def test_empty_input(self) -> None:
        assert make_batches(set(), 3) == []

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(ValueError):
            make_batches(["a"], 0)


# ---------------------------------------------------------------------------
# fetch_page
# ---------------------------------------------------------------------------

class TestFetchPage:
    async def test_returns_markup_and_closes_page(self) -> None:
        browser = FakeBrowser()
        html = await fetch_page(browser, "https://a.example.com", timeout=1.0)

        assert html == "<html><body>snapshot of https://a.example.com</body></html>"
        assert browser.pages[0].closed is True

    async def test_waits_for_network_idle_with_millisecond_timeout(self) -> None:
        browser = FakeBrowser()
        await fetch_page(browser, "https://a.example.com", timeout=2.5)

        assert browser.goto_kwargs == [{"timeout": 2500.0, "wait_until": "networkidle"}]

    async def test_navigation_error_returns_none_and_closes_page(self) -> None:
        browser = FakeBrowser({"https://bad.example.com": "error"})
        html = await fetch_page(browser, "https://bad.example.com", timeout=1.0)

        assert html is None
        assert browser.pages[0].closed is True

    async def test_timeout_returns_none_and_closes_page(self) -> None:
        browser = FakeBrowser({"https://slow.example.com": "hang"})
        html = await fetch_page(browser, "https://slow.example.com", timeout=0.05)

        assert html is None
        assert browser.pages[0].closed is True

    async def test_hanging_page_close_is_bounded(self) -> None:
        class StuckPage(FakePage):
            async def close(self) -> None:
                await asyncio.sleep(10)

        class StuckBrowser(FakeBrowser):
            async def new_page(self) -> FakePage:
                return StuckPage(self)

        html = await asyncio.wait_for(
            fetch_page(StuckBrowser(), "https://a.example.com", timeout=0.2), timeout=2.0
        )

        assert html == "<html><body>snapshot of https://a.example.com</body></html>"

    async def test_new_page_failure_returns_none(self) -> None:
        class BrokenBrowser(FakeBrowser):
            async def new_page(self) -> FakePage:
                raise RuntimeError("Target closed")

        assert await fetch_page(BrokenBrowser(), "https://a.example.com", 1.0) is None


# ---------------------------------------------------------------------------
# run_archive / archive
# ---------------------------------------------------------------------------

class TestRunArchive:
    async def test_archives_every_link(self, store: ArchiveStore) -> None:
        browser = FakeBrowser()
        summary = await run_archive(
            _LINKS, store, launch=_launcher(browser), concurrency=2, page_timeout=1.0
        )

        assert isinstance(summary, ArchiveSummary)
        assert summary.total == 5
        assert summary.archived == 5
        assert summary.failed == 0
        for url in _LINKS:
            assert store.read(fingerprint(url)) == f"<html><body>snapshot of {url}</body></html>"
        assert browser.closed is True

    async def test_archive_returns_total_count(self, store: ArchiveStore) -> None:
        count = await archive(
            _LINKS, store, launch=_launcher(FakeBrowser()), concurrency=5, page_timeout=1.0
        )
        assert count == 5

    async def test_rerun_performs_no_navigation(self, store: ArchiveStore) -> None:
        first = FakeBrowser()
        await run_archive(_LINKS, store, launch=_launcher(first), concurrency=3, page_timeout=1.0)
        assert len(first.navigations) == 5

        second = FakeBrowser()
        summary = await run_archive(
            _LINKS, store, launch=_launcher(second), concurrency=3, page_timeout=1.0
        )

        assert second.navigations == []
        assert summary.total == 5
        assert summary.skipped == 5
        assert summary.archived == 0

    async def test_existing_snapshot_is_not_overwritten(self, store: ArchiveStore) -> None:
        url = "https://kept.example.com"
        store.root.mkdir(parents=True)
        store.path_for(fingerprint(url)).write_text("original", encoding="utf-8")

        browser = FakeBrowser()
        await run_archive({url}, store, launch=_launcher(browser), page_timeout=1.0)

        assert browser.navigations == []
        assert store.read(fingerprint(url)) == "original"

    async def test_one_timeout_does_not_abort_batch(self, store: ArchiveStore) -> None:
        slow = "https://site2.example.com/page"
        browser = FakeBrowser({slow: "hang"})

        summary = await run_archive(
            _LINKS, store, launch=_launcher(browser), concurrency=5, page_timeout=0.2
        )

        assert summary.total == 5
        assert summary.archived == 4
        assert summary.failed_urls == [slow]
        assert not store.has(fingerprint(slow))
        for url in _LINKS - {slow}:
            assert store.has(fingerprint(url))
        assert browser.closed_pages == 5

    async def test_navigation_error_is_contained(self, store: ArchiveStore) -> None:
        bad = "https://site0.example.com/page"
        browser = FakeBrowser({bad: "error"})

        count = await archive(
            _LINKS, store, launch=_launcher(browser), concurrency=2, page_timeout=1.0
        )

        assert count == 5
        assert len(store.fingerprints()) == 4

    async def test_failed_link_is_retried_on_next_run(self, store: ArchiveStore) -> None:
        url = "https://flaky.example.com"
        await run_archive(
            {url}, store, launch=_launcher(FakeBrowser({url: "error"})), page_timeout=1.0
        )
        assert not store.has(fingerprint(url))

        browser = FakeBrowser()
        summary = await run_archive({url}, store, launch=_launcher(browser), page_timeout=1.0)

        assert browser.navigations == [url]
        assert summary.archived == 1

    async def test_storage_error_is_contained(self, store: ArchiveStore, monkeypatch) -> None:
        broken = "https://site1.example.com/page"
        real_write = store.write

        async def flaky_write(fp: str, markup: str) -> bool:
            if fp == fingerprint(broken):
                raise OSError("disk full")
            return await real_write(fp, markup)

        monkeypatch.setattr(store, "write", flaky_write)
        summary = await run_archive(
            _LINKS, store, launch=_launcher(FakeBrowser()), concurrency=5, page_timeout=1.0
        )

        assert summary.failed_urls == [broken]
        assert summary.archived == 4

    async def test_concurrency_is_bounded_per_batch(self, store: ArchiveStore) -> None:
        browser = FakeBrowser()
        await run_archive(_LINKS, store, launch=_launcher(browser), concurrency=2, page_timeout=1.0)

        assert browser.max_in_flight == 2

    async def test_batches_run_sequentially(self, store: ArchiveStore) -> None:
        browser = FakeBrowser()
        await run_archive(_LINKS, store, launch=_launcher(browser), concurrency=2, page_timeout=1.0)

        first_batch = set(sorted(_LINKS)[:2])
        last_end_of_first = max(
            i for i, (kind, url) in enumerate(browser.events)
            if kind == "end" and url in first_batch
        )
        first_start_of_rest = min(
            i for i, (kind, url) in enumerate(browser.events)
            if kind == "start" and url not in first_batch
        )
        assert last_end_of_first < first_start_of_rest

    async def test_launch_failure_is_fatal(self, store: ArchiveStore) -> None:
        async def launch() -> BrowserHandle:
            raise CapabilityLaunchError("chromium missing")

        with pytest.raises(CapabilityLaunchError):
            await run_archive(_LINKS, store, launch=launch, page_timeout=1.0)

        assert store.fingerprints() == []

    async def test_unexpected_launch_error_is_wrapped(self, store: ArchiveStore) -> None:
        async def launch() -> BrowserHandle:
            raise RuntimeError("Executable doesn't exist")

        with pytest.raises(CapabilityLaunchError, match="Executable"):
            await run_archive(_LINKS, store, launch=launch, page_timeout=1.0)

    async def test_rejects_invalid_concurrency(self, store: ArchiveStore) -> None:
        browser = FakeBrowser()
        with pytest.raises(ValueError):
            await run_archive(_LINKS, store, launch=_launcher(browser), concurrency=0)
        assert browser.navigations == []

    async def test_rejects_non_positive_timeout(self, store: ArchiveStore) -> None:
        with pytest.raises(ValueError):
            await run_archive(_LINKS, store, launch=_launcher(FakeBrowser()), page_timeout=0)

    async def test_empty_link_set(self, store: ArchiveStore) -> None:
        browser = FakeBrowser()
        assert await archive(set(), store, launch=_launcher(browser)) == 0
        assert browser.closed is True

    async def test_defaults_come_from_settings(self, store: ArchiveStore, monkeypatch) -> None:
        monkeypatch.setattr("archiver.scheduler.settings.concurrency", 1)
        browser = FakeBrowser()
        await run_archive(_LINKS, store, launch=_launcher(browser))

        assert browser.max_in_flight == 1
        assert browser.goto_kwargs[0]["timeout"] == pytest.approx(settings.page_timeout * 1000)
