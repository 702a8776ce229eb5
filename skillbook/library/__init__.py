"""Library maintenance - changelog, version manifest, linting, updates."""

from skillbook.library.changelog import Changelog, ChangelogEntry, append_entry, load_changelog, parse_changelog
from skillbook.library.manifest import VersionManifest, load_manifest, parse_manifest, save_manifest
from skillbook.library.lint import LibraryLinter, LintIssue, LintReport, lint_library
from skillbook.library.update import LibraryUpdater, UpdateResult, UpdateStatus
from skillbook.library.wrapup import WrapupResult, record_session

__all__ = [
    "Changelog",
    "ChangelogEntry",
    "append_entry",
    "load_changelog",
    "parse_changelog",
    "VersionManifest",
    "load_manifest",
    "parse_manifest",
    "save_manifest",
    "LibraryLinter",
    "LintIssue",
    "LintReport",
    "lint_library",
    "LibraryUpdater",
    "UpdateResult",
    "UpdateStatus",
    "WrapupResult",
    "record_session",
]
