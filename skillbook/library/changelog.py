"""CHANGELOG.md session log: parsing and append-only writes.

Entry format::

    ## 2026-01-15 - Railway skill refresh
    ### Summary
    Free text.
    ### Completed
    - bullet
    ### Key Decisions
    - bullet
    ### Files Changed
    - skills/railway/SKILL.md
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from skillbook.core.errors import ChangelogError

CHANGELOG_FILENAME = "CHANGELOG.md"

DEFAULT_PREAMBLE = "# Changelog\n\nSession log of documentation changes. Newest first.\n"

ENTRY_HEADER_PATTERN = re.compile(r"^##\s+(?!#)(.*)$")
# "2026-01-15", "2026-01-15 - Title", "2026-01-15: Title" or "2026-01-15 Title"
DATED_HEADER_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:\s*[-:–—]\s*(.*)|\s+(.*))?$")
SECTION_HEADER_PATTERN = re.compile(r"^###\s+(.*?)\s*$")
BULLET_PATTERN = re.compile(r"^\s*(?:[-*]|\d+[.)])\s+(.*)$")

SECTION_KEYS = {
    "summary": "summary",
    "completed": "completed",
    "key decisions": "key_decisions",
    "decisions": "key_decisions",
    "files changed": "files_changed",
}

NEWEST_FIRST = "newest_first"
OLDEST_FIRST = "oldest_first"


@dataclass
class ChangelogEntry:
    """One date-stamped work session."""
    date: date
    title: Optional[str] = None
    summary: str = ""
    completed: list[str] = field(default_factory=list)
    key_decisions: list[str] = field(default_factory=list)
    files_changed: list[str] = field(default_factory=list)
    line: int = 0  # 1-based line of the header in the source file

    def to_markdown(self) -> str:
        header = f"## {self.date.isoformat()}"
        if self.title:
            header += f" - {self.title}"
        parts = [header, ""]
        if self.summary:
            parts += ["### Summary", "", self.summary.strip(), ""]
        for heading, items in (
            ("Completed", self.completed),
            ("Key Decisions", self.key_decisions),
            ("Files Changed", self.files_changed),
        ):
            if items:
                parts += [f"### {heading}", ""]
                parts += [f"- {item}" for item in items]
                parts.append("")
        return "\n".join(parts)


@dataclass
class UndatedHeader:
    """A ``##`` heading in the entry area that carries no valid date."""
    text: str
    line: int


@dataclass
class Changelog:
    """Parsed CHANGELOG.md."""
    preamble: str
    entries: list[ChangelogEntry] = field(default_factory=list)
    undated: list[UndatedHeader] = field(default_factory=list)

    @property
    def latest(self) -> Optional[ChangelogEntry]:
        if not self.entries:
            return None
        return max(self.entries, key=lambda e: e.date)

    @property
    def order(self) -> Optional[str]:
        """NEWEST_FIRST, OLDEST_FIRST, or None when mixed or undecidable."""
        dates = [e.date for e in self.entries]
        if len(dates) < 2 or len(set(dates)) == 1:
            return None
        if all(a >= b for a, b in zip(dates, dates[1:])):
            return NEWEST_FIRST
        if all(a <= b for a, b in zip(dates, dates[1:])):
            return OLDEST_FIRST
        return None


def parse_changelog(text: str) -> Changelog:
    """Parse changelog text into entries."""
    lines = text.splitlines()
    preamble_lines: list[str] = []
    entries: list[ChangelogEntry] = []
    undated: list[UndatedHeader] = []

    current: Optional[ChangelogEntry] = None
    section: Optional[str] = None
    summary_lines: list[str] = []
    in_fence = False

    def finish() -> None:
        if current is not None:
            current.summary = "\n".join(summary_lines).strip()

    for number, line in enumerate(lines, start=1):
        if line.strip().startswith("```"):
            in_fence = not in_fence

        header = None if in_fence else ENTRY_HEADER_PATTERN.match(line)
        if header:
            dated = DATED_HEADER_PATTERN.match(header.group(1).strip())
            entry_date = None
            if dated:
                try:
                    entry_date = date.fromisoformat(dated.group(1))
                except ValueError:
                    entry_date = None
            if entry_date is None:
                # Headings before the first entry belong to the preamble
                if current is None and not entries:
                    if _looks_like_entry(header.group(1)):
                        undated.append(UndatedHeader(header.group(1).strip(), number))
                    else:
                        preamble_lines.append(line)
                    continue
                undated.append(UndatedHeader(header.group(1).strip(), number))
                # Content under a dateless heading belongs to no entry
                finish()
                current = None
                section = None
                continue

            finish()
            title = (dated.group(2) or dated.group(3) or "").strip() or None
            current = ChangelogEntry(date=entry_date, title=title, line=number)
            entries.append(current)
            section = None
            summary_lines = []
            continue

        if current is None:
            if not undated:
                preamble_lines.append(line)
            continue

        sub = None if in_fence else SECTION_HEADER_PATTERN.match(line)
        if sub:
            section = SECTION_KEYS.get(sub.group(1).lower().rstrip(":"))
            continue

        if section == "summary":
            summary_lines.append(line)
        elif section is not None:
            bullet = BULLET_PATTERN.match(line)
            if bullet:
                getattr(current, section).append(bullet.group(1).strip())

    finish()
    preamble = "\n".join(preamble_lines).strip()
    return Changelog(preamble=preamble + "\n" if preamble else "", entries=entries, undated=undated)


def _looks_like_entry(heading: str) -> bool:
    """A dateless heading that starts with digits is a malformed entry, not preamble."""
    return bool(re.match(r"^\d", heading.strip()))


def load_changelog(library_dir: Path) -> Changelog:
    """Load ``<library_dir>/CHANGELOG.md``.

    Raises:
        FileNotFoundError: If the changelog does not exist
    """
    path = Path(library_dir) / CHANGELOG_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"Changelog not found: {path}")
    return parse_changelog(path.read_text(encoding="utf-8"))


def append_entry(library_dir: Path, entry: ChangelogEntry) -> Path:
    """Add an entry to CHANGELOG.md without touching existing entries.

    The entry goes after the preamble for newest-first logs (and new
    or single-entry logs), at the end for oldest-first logs.

    Raises:
        ChangelogError: If the existing file is not valid UTF-8
    """
    path = Path(library_dir) / CHANGELOG_FILENAME
    block = entry.to_markdown().rstrip("\n") + "\n"

    if not path.exists():
        path.write_text(f"{DEFAULT_PREAMBLE}\n{block}", encoding="utf-8")
        return path

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ChangelogError(f"{path} is not valid UTF-8: {e}") from e

    changelog = parse_changelog(text)

    if not changelog.entries:
        text = text.rstrip("\n")
        new_text = f"{text}\n\n{block}" if text else f"{DEFAULT_PREAMBLE}\n{block}"
    elif changelog.order == OLDEST_FIRST:
        new_text = f"{text.rstrip(chr(10))}\n\n{block}"
    else:
        lines = text.splitlines(keepends=True)
        insert_at = changelog.entries[0].line - 1
        head = "".join(lines[:insert_at])
        tail = "".join(lines[insert_at:])
        new_text = f"{head}{block}\n{tail}"

    path.write_text(new_text, encoding="utf-8")
    return path
