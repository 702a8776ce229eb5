"""Parser for skill and stack documents.

Documents are Markdown with YAML frontmatter:
- ``name`` and ``description`` are required
- trigger words live inside the description prose, e.g.
  ``"Deploy to Railway. Trigger words: railway, deploy, 502."``
- the Markdown body holds instructions, examples, guidelines and
  troubleshooting notes
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from skillbook.core.errors import SkillParseError

logger = logging.getLogger(__name__)

SKILL = "skill"
STACK = "stack"


@dataclass
class SkillMetadata:
    """Document metadata from YAML frontmatter."""
    name: str
    description: str
    version: str = "1.0.0"
    author: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)  # Extracted from description + explicit list
    enabled: bool = True


@dataclass
class Skill:
    """A skill or stack document."""
    metadata: SkillMetadata
    instructions: str  # The markdown body
    kind: str = SKILL
    source_path: Optional[Path] = None

    # Parsed sections from markdown
    examples: list[str] = field(default_factory=list)
    guidelines: list[str] = field(default_factory=list)
    common_issues: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def description(self) -> str:
        return self.metadata.description

    @property
    def triggers(self) -> list[str]:
        return self.metadata.triggers

    def to_prompt(self) -> str:
        """Convert document to prompt injection format."""
        label = "Stack" if self.kind == STACK else "Skill"
        prompt = f"## {label}: {self.name}\n\n"
        prompt += f"{self.description}\n\n"
        prompt += self.instructions
        return prompt


# "Trigger words: a, b, or c." / "Triggers on: ..." / "Keywords - ..."
TRIGGER_PATTERN = re.compile(
    r'\b(?:trigger\s+words?|triggers?(?:\s+on)?|keywords?)(?:\s*:|\s+-\s)\s*(.+?)(?:\.(?:\s|$)|$|\n)',
    re.IGNORECASE,
)


def extract_triggers(description: str) -> list[str]:
    """Pull the comma-separated trigger words out of description prose.

    Args:
        description: Free-text description from frontmatter

    Returns:
        Lowercased, de-duplicated trigger words in order of appearance
    """
    triggers: list[str] = []
    for match in TRIGGER_PATTERN.finditer(description):
        terms = match.group(1).split(",")
        # "a, b or c": the conjunction only ever joins the last two terms
        terms[-1:] = re.split(r'\s+(?:or|and)\s+', terms[-1], flags=re.IGNORECASE)
        for term in terms:
            term = term.strip().strip("\"'`").strip()
            term = re.sub(r'^(?:or|and)\s+', '', term, flags=re.IGNORECASE)
            term = term.rstrip(".;").strip().lower()
            if term:
                triggers.append(term)
    return _dedupe(triggers)


def document_name(path: Path) -> str:
    """Name implied by a document's location (directory for SKILL.md/README.md)."""
    if path.name in ("SKILL.md", "README.md"):
        return path.parent.name
    name = path.name
    for suffix in (".skill.md", ".md"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def _as_bool(value: object, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "no", "off", "0", "")
    return bool(value)


KEY_LINE_PATTERN = re.compile(r'^([A-Za-z_][\w-]*)\s*:(?:\s+(.*))?$')


def _loose_scalar(text: str) -> object:
    """YAML value of ``text`` when it is one, else the text itself."""
    text = text.strip()
    try:
        value = yaml.safe_load(text)
    except yaml.YAMLError:
        if text[:1] in ("[", "{"):
            raise
        return text
    if isinstance(value, dict):
        return text
    return value


def read_loose_frontmatter(text: str) -> Optional[dict]:
    """Read frontmatter line by line when it is not valid YAML.

    Descriptions such as ``Deploy. Trigger words: a, b.`` hold a second
    ``": "`` that plain YAML rejects. Each top-level line is split on its
    first colon only; indented ``- item`` lines under an empty key form a
    list and other indented lines continue the previous value.

    Returns:
        The mapping, or None when the text is not a flat ``key: value`` block
    """
    data: dict = {}
    key: Optional[str] = None
    try:
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if line[0] in " \t":
                if key is None:
                    return None
                current = data[key]
                if stripped == "-" or stripped.startswith("- "):
                    if current is None:
                        current = data[key] = []
                    if not isinstance(current, list):
                        return None
                    current.append(_loose_scalar(stripped[1:]))
                elif current is None:
                    data[key] = stripped
                elif isinstance(current, str):
                    data[key] = f"{current} {stripped}"
                else:
                    return None
                continue
            match = KEY_LINE_PATTERN.match(line.rstrip())
            if not match:
                return None
            key = match.group(1)
            value = (match.group(2) or "").strip()
            if not value or value in ("|", ">", "|-", ">-"):
                data[key] = None
            else:
                data[key] = _loose_scalar(value)
    except yaml.YAMLError:
        return None
    return data or None


class SkillParser:
    """Parser for skill and stack Markdown files."""

    FRONTMATTER_PATTERN = re.compile(
        r'^---\s*\n(.*?)\n---\s*(?:\n|\Z)',
        re.DOTALL
    )

    # Section patterns
    EXAMPLES_PATTERN = re.compile(
        r'^##\s*Examples?\s*\n(.*?)(?=^##\s|\Z)',
        re.DOTALL | re.IGNORECASE | re.MULTILINE
    )
    GUIDELINES_PATTERN = re.compile(
        r'^##\s*Guidelines?\s*\n(.*?)(?=^##\s|\Z)',
        re.DOTALL | re.IGNORECASE | re.MULTILINE
    )
    COMMON_ISSUES_PATTERN = re.compile(
        r'^##\s*(?:Common\s+Issues|Troubleshooting)\s*\n(.*?)(?=^##\s|\Z)',
        re.DOTALL | re.IGNORECASE | re.MULTILINE
    )

    LIST_ITEM_PATTERN = re.compile(r'^(?:[-*•]|\d+[.)])\s+(.*)$')

    def parse_file(self, path: Path, kind: str = SKILL) -> Skill:
        """Parse a document file.

        Args:
            path: Path to the Markdown file
            kind: ``"skill"`` or ``"stack"``

        Returns:
            Parsed Skill object

        Raises:
            FileNotFoundError: If the file does not exist
            SkillParseError: If the format is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Skill file not found: {path}")

        content = path.read_text(encoding="utf-8")
        try:
            skill = self.parse_string(content, kind=kind, fallback_name=document_name(path))
        except SkillParseError as e:
            raise SkillParseError(e.message, path) from None
        skill.source_path = path
        return skill

    def parse_string(
        self,
        content: str,
        kind: str = SKILL,
        fallback_name: Optional[str] = None,
    ) -> Skill:
        """Parse document content from string.

        Stacks may omit frontmatter; their name then comes from
        ``fallback_name`` and their description from the first paragraph.

        Raises:
            SkillParseError: If the format is invalid
        """
        match = self.FRONTMATTER_PATTERN.match(content)
        if match:
            frontmatter = self._read_frontmatter(match.group(1))
            body = content[match.end():]
        elif kind == STACK:
            frontmatter = {}
            if fallback_name:
                frontmatter["name"] = fallback_name
            first = self._first_paragraph(content)
            if first:
                frontmatter["description"] = first
            body = content
        else:
            raise SkillParseError("Invalid skill format: missing YAML frontmatter")

        if not frontmatter.get("name"):
            raise SkillParseError("missing required 'name' field in frontmatter")
        if not frontmatter.get("description"):
            raise SkillParseError("missing required 'description' field in frontmatter")

        description = str(frontmatter["description"]).strip()
        explicit = [t.lower() for t in _as_list(frontmatter.get("triggers"))]

        metadata = SkillMetadata(
            name=str(frontmatter["name"]).strip(),
            description=description,
            version=str(frontmatter.get("version", "1.0.0")),
            author=frontmatter.get("author"),
            tags=_as_list(frontmatter.get("tags")),
            triggers=_dedupe(extract_triggers(description) + explicit),
            enabled=_as_bool(frontmatter.get("enabled")),
        )

        return Skill(
            metadata=metadata,
            instructions=body.strip(),
            kind=kind,
            examples=self._extract_list_items(self.EXAMPLES_PATTERN.search(body)),
            guidelines=self._extract_list_items(self.GUIDELINES_PATTERN.search(body)),
            common_issues=self._extract_list_items(self.COMMON_ISSUES_PATTERN.search(body)),
        )

    def _read_frontmatter(self, text: str) -> dict:
        try:
            frontmatter = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            loose = read_loose_frontmatter(text)
            if loose is None:
                raise SkillParseError(f"Invalid YAML frontmatter: {e}")
            logger.debug("Frontmatter is not strict YAML, read it line by line")
            return loose
        if not isinstance(frontmatter, dict):
            loose = read_loose_frontmatter(text)
            if loose is None:
                raise SkillParseError("Invalid YAML frontmatter: expected a mapping")
            return loose
        return frontmatter

    def _first_paragraph(self, content: str) -> Optional[str]:
        """First block of non-heading text, joined into one line."""
        lines: list[str] = []
        for line in content.splitlines():
            stripped = line.strip()
            if stripped.startswith("#") or stripped.startswith("```"):
                if lines:
                    break
                continue
            if not stripped:
                if lines:
                    break
                continue
            lines.append(stripped)
        return " ".join(lines) or None

    def _extract_list_items(self, match: Optional[re.Match]) -> list[str]:
        """Extract markdown list items (bullets or numbered) from a section."""
        if not match:
            return []

        items = []
        for line in match.group(1).split("\n"):
            item = self.LIST_ITEM_PATTERN.match(line.strip())
            if item:
                items.append(item.group(1).strip())
        return items

    def parse_directory(self, directory: Path, kind: str = SKILL) -> tuple[list[Skill], list[tuple[Path, str]]]:
        """Parse every document in a directory.

        Skills are found as ``<dir>/<name>/SKILL.md`` and ``<dir>/*.skill.md``;
        stacks as ``<dir>/*.md`` and ``<dir>/<name>/README.md``.

        Returns:
            (parsed documents, [(path, error message)] for failures)
        """
        skills: list[Skill] = []
        failures: list[tuple[Path, str]] = []

        if not directory.exists():
            return skills, failures

        for path in self._document_paths(directory, kind):
            try:
                skills.append(self.parse_file(path, kind=kind))
            except (SkillParseError, FileNotFoundError, UnicodeDecodeError) as e:
                logger.warning("Failed to parse %s: %s", path, e)
                failures.append((path, str(e)))

        return skills, failures

    def _document_paths(self, directory: Path, kind: str) -> list[Path]:
        paths: list[Path] = []
        index_name = "SKILL.md" if kind == SKILL else "README.md"
        for child in sorted(directory.iterdir()):
            if child.is_dir():
                index = child / index_name
                if index.exists():
                    paths.append(index)
        if kind == SKILL:
            paths.extend(sorted(directory.glob("*.skill.md")))
        else:
            paths.extend(p for p in sorted(directory.glob("*.md")) if p.name.lower() != "readme.md")
        return paths


def create_skill_template(name: str, description: str, triggers: Optional[list[str]] = None) -> str:
    """Create a SKILL.md template.

    Args:
        name: Skill name (lowercase, hyphen-separated)
        description: Brief skill description
        triggers: Trigger words appended to the description

    Returns:
        SKILL.md template content
    """
    full_description = description.strip()
    if triggers:
        if not full_description.endswith("."):
            full_description += "."
        full_description += f" Trigger words: {', '.join(triggers)}."

    frontmatter = yaml.safe_dump(
        {"name": name, "description": full_description, "version": "1.0.0", "tags": []},
        sort_keys=False,
        allow_unicode=True,
        width=1000,
    )

    return f'''---
{frontmatter.rstrip()}
---

# {name.replace("-", " ").title()}

{description.strip()}

## Instructions

1. Install and configure the tool
2. Show the minimal working setup
3. Point out the production settings

## Examples

- Example usage 1
- Example usage 2

## Common Issues

- Symptom: cause and fix
'''
