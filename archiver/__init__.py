"""External link archiver: snapshot outbound links and annotate rendered Markdown."""

from archiver.discovery import discover, is_external_link, load_documents
from archiver.fingerprint import fingerprint
from archiver.models import ArchiveSummary
from archiver.scheduler import archive, run_archive
from archiver.store import ArchiveStore

__all__ = [
    "fingerprint",
    "discover",
    "is_external_link",
    "load_documents",
    "ArchiveStore",
    "ArchiveSummary",
    "archive",
    "run_archive",
]
