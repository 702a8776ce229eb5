"""Skill registry for discovering and managing library documents.

Priority order (higher wins on name conflict):
1. Project overlay (<project>/.skillbook/skills/)
2. User overlay (~/.skillbook/skills/)
3. Library (<library>/skills/ and <library>/stacks/)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from skillbook.core.errors import SkillbookError, ErrorCategory
from skillbook.skills.parser import SKILL, STACK, Skill, SkillParser, create_skill_template

logger = logging.getLogger(__name__)

SKILLS_DIRNAME = "skills"
STACKS_DIRNAME = "stacks"


class SkillRegistry:
    """Registry for managing and discovering skills and stacks."""

    def __init__(
        self,
        library_dir: Path,
        user_skills_dir: Optional[Path] = None,
    ):
        """Initialize skill registry.

        Args:
            library_dir: Library root holding skills/ and stacks/
            user_skills_dir: User overlay directory (~/.skillbook/skills/)
        """
        self.library_dir = Path(library_dir)
        self.user_skills_dir = user_skills_dir

        self._skills: dict[str, Skill] = {}
        self._parser = SkillParser()
        self.failures: list[tuple[Path, str]] = []

    @property
    def skills_dir(self) -> Path:
        return self.library_dir / SKILLS_DIRNAME

    @property
    def stacks_dir(self) -> Path:
        return self.library_dir / STACKS_DIRNAME

    def discover(self, project_dir: Optional[Path] = None) -> dict[str, Skill]:
        """Discover all available documents.

        Later sources override earlier ones by name. Documents that fail
        to parse are logged and recorded in ``failures``.

        Args:
            project_dir: Project directory to search for an overlay

        Returns:
            Dictionary of name -> Skill
        """
        self._skills = {}
        self.failures = []

        sources: list[tuple[Path, str]] = [
            (self.skills_dir, SKILL),
            (self.stacks_dir, STACK),
        ]
        if self.user_skills_dir is not None:
            sources.append((self.user_skills_dir, SKILL))
        if project_dir is not None:
            sources.append((Path(project_dir) / ".skillbook" / "skills", SKILL))

        for directory, kind in sources:
            skills, failures = self._parser.parse_directory(directory, kind=kind)
            self.failures.extend(failures)
            for skill in skills:
                if skill.name in self._skills:
                    logger.debug("%s overrides %s", skill.source_path, self._skills[skill.name].source_path)
                self._skills[skill.name] = skill

        logger.info("Discovered %d documents (%d failed to parse)", len(self._skills), len(self.failures))
        return self._skills

    def get(self, name: str) -> Optional[Skill]:
        """Get a document by name, or None."""
        return self._skills.get(name)

    def list(self) -> list[Skill]:
        """List all discovered documents, sorted by name."""
        return sorted(self._skills.values(), key=lambda s: s.name)

    def list_enabled(self) -> list[Skill]:
        """List only enabled documents."""
        return [s for s in self.list() if s.metadata.enabled]

    def list_by_kind(self, kind: str) -> list[Skill]:
        """List documents of one kind (``"skill"`` or ``"stack"``)."""
        return [s for s in self.list() if s.kind == kind]

    def register(self, skill: Skill) -> None:
        """Register a document manually."""
        self._skills[skill.name] = skill

    def unregister(self, name: str) -> bool:
        """Unregister a document.

        Returns:
            True if removed, False if not found
        """
        if name in self._skills:
            del self._skills[name]
            return True
        return False

    def search(self, query: str) -> list[Skill]:
        """Search documents by name, description, tags or trigger words."""
        query = query.lower()
        results = []

        for skill in self.list():
            haystacks = [skill.name, skill.description, *skill.metadata.tags, *skill.triggers]
            if any(query in h.lower() for h in haystacks):
                results.append(skill)

        return results

    def get_by_tag(self, tag: str) -> list[Skill]:
        """Get all documents with a specific tag."""
        return [skill for skill in self.list() if tag in skill.metadata.tags]

    def create(
        self,
        name: str,
        description: str,
        triggers: Optional[list[str]] = None,
        target_dir: Optional[Path] = None,
    ) -> Path:
        """Create a new skill from template.

        Args:
            name: Skill name (normalized to lowercase kebab-case)
            description: Brief skill description
            triggers: Trigger words to embed in the description
            target_dir: Directory to create in (default: library skills/)

        Returns:
            Path to the created SKILL.md file

        Raises:
            SkillbookError: If a skill with that name already exists there
        """
        target = target_dir or self.skills_dir

        name = name.strip().lower().replace(" ", "-").replace("_", "-")

        skill_dir = target / name
        skill_file = skill_dir / "SKILL.md"
        if skill_file.exists():
            raise SkillbookError(f"Skill already exists: {skill_file}", ErrorCategory.INVALID_INPUT)
        skill_dir.mkdir(parents=True, exist_ok=True)

        skill_file.write_text(create_skill_template(name, description, triggers), encoding="utf-8")

        skill = self._parser.parse_file(skill_file)
        self._skills[skill.name] = skill
        logger.info("Created skill %s at %s", skill.name, skill_file)

        return skill_file
