"""Data models for the archival pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class ArchiveSummary:
    """Outcome of one archival run.

    ``total`` counts every link considered, whether it was newly archived,
    already present, or failed.
    """

    total: int = 0
    archived: int = 0
    skipped: int = 0
    failed: int = 0
    failed_urls: List[str] = field(default_factory=list)

    def record_failure(self, url: str) -> None:
        self.failed += 1
        self.failed_urls.append(url)
