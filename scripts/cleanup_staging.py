"""Cron entry point for purging abandoned upload staging folders."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta

from src.themedeck.config import load_config
from src.themedeck.logging import configure_logging
from src.themedeck.media.media_cleanup import AssetCleanup
from src.themedeck.media.theme_file_store import ThemeFileStore
from src.themedeck.themes.themes_repository import ThemeRepository
from src.themedeck.uploads.session_service import UploadSessionService
from src.themedeck.uploads.uploads_repository import UploadSessionRepository


@dataclass(slots=True)
class CleanupSummary:
    sessions_purged: int
    dry_run: bool


def perform_cleanup(
    *,
    dry_run: bool,
    reference_time: datetime | None = None,
    retention_hours: int | None = None,
) -> CleanupSummary:
    """Purge closed sessions older than the retention window."""
    config = load_config()
    upload_repo = UploadSessionRepository(config.session_factory)
    theme_repo = ThemeRepository(config.session_factory)

    now = reference_time or datetime.utcnow()
    hours = retention_hours if retention_hours is not None else config.staging_retention_hours
    older_than = timedelta(hours=hours)

    cleanup = AssetCleanup(
        sessions=UploadSessionService(repo=upload_repo),
        repo=upload_repo,
        themes=theme_repo,
        store=ThemeFileStore(config.storage),
    )
    if dry_run:
        stale = cleanup.stale_sessions(now, older_than)
        return CleanupSummary(sessions_purged=len(stale), dry_run=True)

    purged = cleanup.purge_stale_staging(now, older_than)
    return CleanupSummary(sessions_purged=purged, dry_run=False)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Purge staging folders of abandoned upload sessions.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without deleting files.")
    parser.add_argument(
        "--retention-hours",
        type=int,
        default=None,
        help="Override STAGING_RETENTION_HOURS for this run.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        summary = perform_cleanup(dry_run=args.dry_run, retention_hours=args.retention_hours)
    except Exception as exc:
        print(f"cleanup failed: {exc}", file=sys.stderr)
        return 2

    if summary.dry_run:
        print(f"cleanup dry-run, sessions_stale={summary.sessions_purged}", file=sys.stdout)
    else:
        print(f"cleanup done, sessions_purged={summary.sessions_purged}", file=sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
