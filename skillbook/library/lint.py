"""Documentation hygiene checks for a skill library."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from skillbook.core.errors import ManifestError
from skillbook.core.logging import log_lint
from skillbook.library.changelog import (
    CHANGELOG_FILENAME,
    NEWEST_FIRST,
    OLDEST_FIRST,
    Changelog,
    parse_changelog,
)
from skillbook.library.manifest import MANIFEST_FILENAME, VersionManifest, parse_manifest
from skillbook.skills.parser import SKILL, STACK, Skill, SkillParser

ERROR = "error"
WARNING = "warning"

NAME_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


@dataclass
class LintIssue:
    """A single hygiene finding."""
    severity: str
    rule: str
    path: Optional[Path]
    message: str

    def __str__(self) -> str:
        location = f"{self.path}: " if self.path else ""
        return f"{self.severity} [{self.rule}] {location}{self.message}"


@dataclass
class LintReport:
    """All findings for one library."""
    library_dir: Path
    issues: list[LintIssue] = field(default_factory=list)
    documents_checked: int = 0

    @property
    def errors(self) -> list[LintIssue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> list[LintIssue]:
        return [i for i in self.issues if i.severity == WARNING]

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, severity: str, rule: str, path: Optional[Path], message: str) -> None:
        self.issues.append(LintIssue(severity, rule, path, message))


class LibraryLinter:
    """Runs every hygiene rule over a library directory."""

    def __init__(self, library_dir: Path):
        self.library_dir = Path(library_dir)
        self._parser = SkillParser()

    def run(self) -> LintReport:
        report = LintReport(library_dir=self.library_dir)
        documents = self._check_documents(report)
        report.documents_checked = len(documents)
        changelog = self._check_changelog(report)
        self._check_manifest(report, changelog)
        log_lint(self.library_dir, report.documents_checked, len(report.errors), len(report.warnings))
        return report

    # --- documents ---

    def _check_documents(self, report: LintReport) -> list[Skill]:
        documents: list[Skill] = []
        seen: dict[str, Path] = {}

        for dirname, kind in (("skills", SKILL), ("stacks", STACK)):
            skills, failures = self._parser.parse_directory(self.library_dir / dirname, kind=kind)
            for path, message in failures:
                report.add(ERROR, "frontmatter", path, message)
            for skill in skills:
                documents.append(skill)
                self._check_document(report, skill)
                if skill.name in seen:
                    report.add(
                        ERROR, "duplicate-name", skill.source_path,
                        f"name '{skill.name}' already used by {seen[skill.name]}",
                    )
                else:
                    seen[skill.name] = skill.source_path

        return documents

    def _check_document(self, report: LintReport, skill: Skill) -> None:
        path = skill.source_path
        if not NAME_PATTERN.match(skill.name):
            report.add(WARNING, "name-format", path, f"name '{skill.name}' is not lowercase kebab-case")
        if path is not None and path.name == "SKILL.md" and path.parent.name != skill.name:
            report.add(
                WARNING, "name-dir-mismatch", path,
                f"name '{skill.name}' differs from directory '{path.parent.name}'",
            )
        if skill.kind == SKILL and not skill.triggers:
            report.add(WARNING, "no-triggers", path, "description declares no trigger words")

    # --- changelog ---

    def _check_changelog(self, report: LintReport) -> Optional[Changelog]:
        path = self.library_dir / CHANGELOG_FILENAME
        if not path.exists():
            report.add(WARNING, "changelog-missing", path, "no changelog")
            return None

        try:
            changelog = parse_changelog(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as e:
            report.add(ERROR, "changelog-invalid", path, f"not valid UTF-8: {e}")
            return None

        for header in changelog.undated:
            report.add(ERROR, "changelog-date", path, f"line {header.line}: entry header without a valid date: '{header.text}'")

        for entry in changelog.entries:
            if not entry.summary:
                report.add(WARNING, "changelog-summary", path, f"line {entry.line}: entry {entry.date} has no Summary")

        if len(changelog.entries) >= 2 and changelog.order not in (NEWEST_FIRST, OLDEST_FIRST):
            if len({e.date for e in changelog.entries}) > 1:
                report.add(WARNING, "changelog-order", path, "entry dates are not in chronological order")

        return changelog

    # --- manifest ---

    def _check_manifest(self, report: LintReport, changelog: Optional[Changelog]) -> None:
        path = self.library_dir / MANIFEST_FILENAME
        if not path.exists():
            report.add(WARNING, "manifest-missing", path, "no version manifest")
            return

        try:
            manifest: VersionManifest = parse_manifest(path.read_text(encoding="utf-8"))
        except (ManifestError, UnicodeDecodeError) as e:
            report.add(ERROR, "manifest-invalid", path, str(e))
            return

        latest = changelog.latest if changelog else None
        if latest is not None and manifest.released < latest.date:
            report.add(
                WARNING, "manifest-changelog-date", path,
                f"releaseDate {manifest.release_date} is older than the newest changelog entry ({latest.date})",
            )


def lint_library(library_dir: Path) -> LintReport:
    """Convenience wrapper around LibraryLinter."""
    return LibraryLinter(library_dir).run()
