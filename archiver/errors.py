"""Exceptions raised by the archiver.

Per-link fetch failures have no exception type here: the scheduler contains them
and reports them through logging and :class:`~archiver.models.ArchiveSummary`.
"""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for archiver errors."""


class CapabilityLaunchError(ArchiverError):
    """The shared headless browser could not be started.

    Fatal: raised before any batch is processed.
    """


class ArchiveRecordNotFound(ArchiverError, KeyError):
    """No snapshot is stored under the requested fingerprint."""

    def __init__(self, fingerprint: str) -> None:
        super().__init__(fingerprint)
        self.fingerprint = fingerprint

    def __str__(self) -> str:
        return f"No archive record for {self.fingerprint!r}"
