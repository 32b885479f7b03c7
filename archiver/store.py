"""Write-once snapshot storage on the local filesystem.

Each record is a single file ``<root>/<fingerprint>`` holding the captured
markup verbatim.  Existence of the file is the only idempotency signal: a
record is never overwritten, refreshed or deleted by this package.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List

from archiver.errors import ArchiveRecordNotFound
from archiver.fingerprint import SNAPSHOT_EXTENSION

logger = logging.getLogger(__name__)


class ArchiveStore:
    """Fingerprint-keyed snapshot directory.

    Filesystem calls in the async methods run on a worker thread so that
    concurrent archival tasks can suspend at storage I/O.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"ArchiveStore(root={str(self.root)!r})"

    def path_for(self, fingerprint: str) -> Path:
        """Return the file path of the record stored under *fingerprint*."""
        return self.root / fingerprint

    def has(self, fingerprint: str) -> bool:
        return self.path_for(fingerprint).is_file()

    async def exists(self, fingerprint: str) -> bool:
        """Return ``True`` if a snapshot is already stored for *fingerprint*."""
        return await asyncio.to_thread(self.has, fingerprint)

    async def write(self, fingerprint: str, markup: str) -> bool:
        """Persist *markup* under *fingerprint*.

        Returns:
            ``True`` if the record was created, ``False`` if one already
            existed (the existing snapshot is left untouched).

        Raises:
            OSError: If the directory or file cannot be written.
        """
        return await asyncio.to_thread(self._write_once, fingerprint, markup)

    def _write_once(self, fingerprint: str, markup: str) -> bool:
        path = self.path_for(fingerprint)
        self.root.mkdir(parents=True, exist_ok=True)
        try:
            # Mode "x" refuses to clobber a record written by another run.
            with path.open("x", encoding="utf-8", newline="") as fh:
                fh.write(markup)
        except FileExistsError:
            logger.debug("[STORE] Record already present: %s", path)
            return False
        return True

    def read(self, fingerprint: str) -> str:
        """Return the stored snapshot for *fingerprint*.

        Raises:
            ArchiveRecordNotFound: If no record exists.
        """
        path = self.path_for(fingerprint)
        if not path.is_file():
            raise ArchiveRecordNotFound(fingerprint)
        return path.read_text(encoding="utf-8")

    def fingerprints(self) -> List[str]:
        """Return the sorted fingerprints of every stored snapshot."""
        if not self.root.is_dir():
            return []
        return sorted(
            p.name
            for p in self.root.iterdir()
            if p.is_file() and p.name.endswith(SNAPSHOT_EXTENSION)
        )
