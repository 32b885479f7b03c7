"""External link archiver CLI: entry-point for archival and rendering.

Usage:
    python cli/main.py --help

Commands:
    links        → list external links found in the documents directory
    archive      → snapshot every external link with a headless browser
    status       → show which discovered links already have snapshots
    render       → render a Markdown file to HTML with snapshot links
    fingerprint  → print the snapshot file name for a URL
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from archiver.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
from typing import Optional

import typer

from archiver.browser import playwright_launcher
from archiver.config import settings
from archiver.discovery import discover, load_documents
from archiver.errors import CapabilityLaunchError
from archiver.fingerprint import fingerprint
from archiver.logging_config import configure_logging
from archiver.scheduler import run_archive
from archiver.store import ArchiveStore

app = typer.Typer(
    name="archiver",
    help="Archive external links referenced from Markdown documents.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: ARCHIVER_LOG_LEVEL or INFO)."
    ),
) -> None:
    """Configure logging for every sub-command."""
    configure_logging(log_level or settings.log_level)


def _discover_links(docs_dir: Path) -> set[str]:
    try:
        documents = load_documents(docs_dir)
    except FileNotFoundError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)
    return discover(documents)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------
@app.command("links")
def links_cmd(
    docs_dir: Optional[Path] = typer.Option(None, "--docs-dir", help="Markdown directory."),
) -> None:
    """List every unique external link in the documents directory."""
    links = _discover_links(docs_dir or settings.docs_dir)
    for href in sorted(links):
        typer.echo(href)
    typer.echo(f"[links] {len(links)} external link(s)")


# ---------------------------------------------------------------------------
# Archival
# ---------------------------------------------------------------------------
@app.command("archive")
def archive_cmd(
    docs_dir: Optional[Path] = typer.Option(None, "--docs-dir", help="Markdown directory."),
    archive_dir: Optional[Path] = typer.Option(None, "--archive-dir", help="Snapshot directory."),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", min=1, help="Pages fetched concurrently per batch."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-page timeout in seconds."
    ),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window."),
) -> None:
    """Snapshot every external link that has no snapshot yet."""
    links = _discover_links(docs_dir or settings.docs_dir)
    store = ArchiveStore(archive_dir or settings.archive_dir)
    launch = playwright_launcher(headless=settings.headless and not headed)

    typer.echo(f"[archive] {len(links)} external link(s) → {store.root}")
    try:
        summary = asyncio.run(
            run_archive(
                links,
                store,
                launch=launch,
                concurrency=concurrency,
                page_timeout=timeout,
            )
        )
    except CapabilityLaunchError as exc:
        typer.echo(f"❌ Browser launch failed: {exc}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)

    typer.echo(
        f"[archive] Archive complete: {summary.total} link(s) processed "
        f"({summary.archived} new, {summary.skipped} existing, {summary.failed} failed)"
    )
    for url in summary.failed_urls:
        typer.echo(f"  ✗ {url}")


@app.command("status")
def status_cmd(
    docs_dir: Optional[Path] = typer.Option(None, "--docs-dir", help="Markdown directory."),
    archive_dir: Optional[Path] = typer.Option(None, "--archive-dir", help="Snapshot directory."),
) -> None:
    """Report which discovered links already have a snapshot."""
    links = _discover_links(docs_dir or settings.docs_dir)
    store = ArchiveStore(archive_dir or settings.archive_dir)

    missing = sorted(href for href in links if not store.has(fingerprint(href)))
    typer.echo(f"[status] {len(links) - len(missing)}/{len(links)} link(s) archived")
    for href in missing:
        typer.echo(f"  missing: {href}")


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
@app.command("render")
def render_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown file."),
    prefix: Optional[str] = typer.Option(
        None, "--prefix", help="Public URL prefix of the snapshot directory."
    ),
) -> None:
    """Render a Markdown file to HTML with snapshot links after external links."""
    from archiver.render import render_markdown

    typer.echo(render_markdown(path.read_text(encoding="utf-8"), archive_prefix=prefix), nl=False)


@app.command("fingerprint")
def fingerprint_cmd(
    url: str = typer.Argument(..., help="URL to fingerprint."),
) -> None:
    """Print the snapshot file name for URL."""
    typer.echo(fingerprint(url))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
