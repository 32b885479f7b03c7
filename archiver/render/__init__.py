"""Render package: token matching and the markdown-it snapshot plugin."""

from archiver.render.matcher import match_open
from archiver.render.transform import (
    external_archive_plugin,
    render_link_close,
    render_markdown,
)

__all__ = ["match_open", "render_link_close", "external_archive_plugin", "render_markdown"]
