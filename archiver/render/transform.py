"""markdown-it-py integration: append a snapshot link after external links.

Usage::

    from markdown_it import MarkdownIt
    from archiver.render import external_archive_plugin

    md = MarkdownIt().use(external_archive_plugin, archive_prefix="/archives")
    html = md.render("[docs](https://example.com)")

The override composes with whatever ``link_close`` rule was installed before
it.  The base output is always emitted first and the affordance is appended
after it, never interleaved.
"""

from __future__ import annotations

import logging
from typing import Callable, MutableMapping, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml
from markdown_it.token import Token
from markdown_it.utils import OptionsDict

from archiver.config import settings
from archiver.discovery import is_external_link
from archiver.fingerprint import fingerprint
from archiver.render.matcher import match_open

logger = logging.getLogger(__name__)

ICON_HTML = "📦"

DefaultRender = Callable[[Sequence[Token], int, OptionsDict, MutableMapping], str]


def snapshot_url(href: str, archive_prefix: str) -> str:
    """Return the public URL of the snapshot for *href*."""
    return f"{archive_prefix.rstrip('/')}/{fingerprint(href)}"


def archive_affordance(href: str, archive_prefix: str) -> str:
    """Return the markup fragment linking to the snapshot of *href*."""
    target = escapeHtml(snapshot_url(href, archive_prefix))
    return (
        f'&nbsp;<a href="{target}" class="archive-link" target="_blank" '
        f'rel="noopener noreferrer" title="Auto Snapshot">{ICON_HTML}</a>'
    )


def render_link_close(
    tokens: Sequence[Token],
    idx: int,
    options: OptionsDict,
    env: MutableMapping,
    default_render: DefaultRender,
    *,
    archive_prefix: str = "/archives",
) -> str:
    """Render the ``link_close`` token at *idx*.

    Returns *default_render*'s output, followed by a snapshot affordance when
    the matching ``link_open`` carries an external ``href``.  An unbalanced
    stream or a missing/internal href yields the default output unchanged.
    """
    base = default_render(tokens, idx, options, env)

    open_token = match_open(tokens, idx)
    if open_token is None:
        logger.debug("[RENDER] No matching link_open for token %d", idx)
        return base

    href = open_token.attrGet("href")
    if not isinstance(href, str) or not is_external_link(href):
        return base

    logger.debug("[RENDER] Annotating external link: %s", href)
    return base + archive_affordance(href, archive_prefix)


def external_archive_plugin(md: MarkdownIt, archive_prefix: Optional[str] = None) -> None:
    """Install the snapshot-affordance ``link_close`` rule on *md*.

    Args:
        md: The parser/renderer to extend.
        archive_prefix: Public URL prefix of the archive directory.  Defaults
            to ``settings.archive_url_prefix``.
    """
    prefix = archive_prefix if archive_prefix is not None else settings.archive_url_prefix
    previous = md.renderer.rules.get("link_close")

    def default_render(
        tokens: Sequence[Token], idx: int, options: OptionsDict, env: MutableMapping
    ) -> str:
        if previous is not None:
            return previous(tokens, idx, options, env)
        return md.renderer.renderToken(tokens, idx, options, env)

    def link_close(self, tokens, idx, options, env) -> str:
        return render_link_close(
            tokens, idx, options, env, default_render, archive_prefix=prefix
        )

    md.add_render_rule("link_close", link_close)


def render_markdown(text: str, archive_prefix: Optional[str] = None) -> str:
    """Render Markdown *text* to HTML with snapshot affordances."""
    md = MarkdownIt().use(external_archive_plugin, archive_prefix=archive_prefix)
    return md.render(text)
