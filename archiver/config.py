"""Centralised settings for the external link archiver.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Corpus / storage
    # ------------------------------------------------------------------
    docs_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("ARCHIVER_DOCS_DIR", "docs"))
    )
    archive_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ARCHIVER_ARCHIVE_DIR", "docs/public/archives")
        )
    )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    # Public URL under which ``archive_dir`` is served.
    archive_url_prefix: str = field(
        default_factory=lambda: os.environ.get("ARCHIVER_URL_PREFIX", "/archives")
    )

    # ------------------------------------------------------------------
    # Fetch scheduler
    # ------------------------------------------------------------------
    concurrency: int = field(
        default_factory=lambda: int(os.environ.get("ARCHIVER_CONCURRENCY", "5"))
    )
    page_timeout: float = field(
        default_factory=lambda: float(os.environ.get("ARCHIVER_PAGE_TIMEOUT", "30.0"))
    )
    headless: bool = field(
        default_factory=lambda: _env_bool("ARCHIVER_HEADLESS", "true")
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("ARCHIVER_LOG_LEVEL", "INFO")
    )

    def ensure_archive_dir(self) -> None:
        """Create the archive directory if it does not exist."""
        self.archive_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton; import this everywhere:
#   from archiver.config import settings
settings = Settings()
