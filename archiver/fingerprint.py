"""Content-addressed snapshot names derived from a URL.

Archival and rendering run independently (often in different processes) and
meet only through this function, so its output must never depend on anything
but the URL string.
"""

from __future__ import annotations

import hashlib

SNAPSHOT_EXTENSION = ".html"


def fingerprint(url: str) -> str:
    """Return the snapshot file name for *url*: ``<md5 hex><extension>``.

    The URL is hashed verbatim (no normalisation), so ``https://a.com`` and
    ``https://a.com/`` are distinct snapshots.
    """
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()
    return f"{digest}{SNAPSHOT_EXTENSION}"
