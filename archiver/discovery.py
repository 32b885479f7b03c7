"""Link discovery: find every external link referenced from a Markdown corpus."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

# Permissive on purpose: anything shaped like ``[label](target)`` counts,
# including image syntax.  ``.`` does not cross newlines.
_LINK_PATTERN = re.compile(r"\[.*?\]\((.*?)\)")
_EXTERNAL_PATTERN = re.compile(r"^https?://")


def is_external_link(href: str | None) -> bool:
    """Return ``True`` if *href* starts with ``http://`` or ``https://``."""
    if not href:
        return False
    return _EXTERNAL_PATTERN.match(href) is not None


def discover(documents: Iterable[str]) -> set[str]:
    """Return the set of unique external link targets across *documents*.

    Targets are whitespace-trimmed and compared as exact strings.  Internal or
    malformed targets are dropped silently.
    """
    links: set[str] = set()
    for content in documents:
        for match in _LINK_PATTERN.finditer(content):
            href = match.group(1).strip()
            if is_external_link(href):
                links.add(href)
    return links


def load_documents(
    docs_dir: Path,
    suffix: str = ".md",
    recursive: bool = False,
) -> List[str]:
    """Read every ``*suffix`` file in *docs_dir* as UTF-8 text.

    Files are returned in sorted path order.  Undecodable bytes become
    U+FFFD so one damaged file cannot stop discovery.

    Raises:
        FileNotFoundError: If *docs_dir* does not exist.
    """
    docs_dir = Path(docs_dir)
    if not docs_dir.is_dir():
        raise FileNotFoundError(f"Documents directory not found: {docs_dir}")

    pattern = f"**/*{suffix}" if recursive else f"*{suffix}"
    paths = sorted(p for p in docs_dir.glob(pattern) if p.is_file())
    return [p.read_text(encoding="utf-8", errors="replace") for p in paths]
