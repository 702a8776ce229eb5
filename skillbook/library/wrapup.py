"""End-of-session wrap-up: record a changelog entry, optionally bump the version."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from skillbook.core.errors import ChangelogError
from skillbook.library.changelog import ChangelogEntry, append_entry
from skillbook.library.manifest import VersionManifest, load_manifest, save_manifest

logger = logging.getLogger(__name__)


@dataclass
class WrapupResult:
    entry: ChangelogEntry
    changelog_path: Path
    manifest: Optional[VersionManifest] = None


def record_session(
    library_dir: Path,
    summary: str,
    title: Optional[str] = None,
    completed: Optional[list[str]] = None,
    key_decisions: Optional[list[str]] = None,
    files_changed: Optional[list[str]] = None,
    bump: Optional[str] = None,
    today: Optional[date] = None,
) -> WrapupResult:
    """Append a session entry to CHANGELOG.md.

    With ``bump`` ("major", "minor" or "patch") the manifest version is
    bumped and its releaseDate set to the entry date.

    Raises:
        ChangelogError: If the summary is empty
        FileNotFoundError: If ``bump`` is given and there is no version.json
        ManifestError: If the existing manifest is invalid
    """
    if not summary.strip():
        raise ChangelogError("A session summary is required")

    library_dir = Path(library_dir)
    entry_date = today or date.today()

    manifest = None
    if bump:
        manifest = load_manifest(library_dir).bump(bump, today=entry_date)

    entry = ChangelogEntry(
        date=entry_date,
        title=title,
        summary=summary.strip(),
        completed=list(completed or []),
        key_decisions=list(key_decisions or []),
        files_changed=list(files_changed or []),
    )
    path = append_entry(library_dir, entry)

    if manifest is not None:
        save_manifest(library_dir, manifest)
        logger.info("Bumped library version to %s", manifest.version)

    logger.info("Recorded session %s in %s", entry_date, path)
    return WrapupResult(entry=entry, changelog_path=path, manifest=manifest)
