"""Render library documents as context for a coding agent."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from skillbook.skills.matcher import SkillMatch, SkillMatcher
from skillbook.skills.parser import STACK, Skill
from skillbook.skills.registry import SkillRegistry

INJECTION_HEADER = "# Active Skills"
POSITIONS = ("before", "after", "replace")


class SkillLoader:
    """Picks documents from a registry and turns them into prompt text."""

    def __init__(self, registry: SkillRegistry, matcher: Optional[SkillMatcher] = None):
        """
        Args:
            registry: Registry to read documents from
            matcher: Trigger-word matcher (default weights if omitted)
        """
        self.registry = registry
        self.matcher = matcher or SkillMatcher()

    def discover_all(self, project_dir: Optional[Path] = None) -> list[Skill]:
        """Rescan the registry and return the enabled documents."""
        self.registry.discover(project_dir)
        return self.registry.list_enabled()

    def load_skill(self, name: str) -> Optional[Skill]:
        return self.registry.get(name)

    def load_skills(self, names: list[str]) -> list[Skill]:
        """Documents for ``names``, skipping unknown and disabled ones."""
        found = (self.registry.get(name) for name in names)
        return [skill for skill in found if skill is not None and skill.metadata.enabled]

    def match(self, task: str, limit: Optional[int] = None) -> list[SkillMatch]:
        return self.matcher.match(task, self.registry.list(), limit=limit)

    def build_prompt_injection(
        self,
        skills: list[Skill],
        include_examples: bool = True,
        include_guidelines: bool = True,
        include_common_issues: bool = False,
    ) -> str:
        """Render documents under a single "Active Skills" heading.

        Returns an empty string for an empty list so callers can
        concatenate unconditionally.
        """
        if not skills:
            return ""

        sections = []
        if include_examples:
            sections.append(("Examples", "examples"))
        if include_guidelines:
            sections.append(("Guidelines", "guidelines"))
        if include_common_issues:
            sections.append(("Common Issues", "common_issues"))

        blocks = [INJECTION_HEADER]
        blocks.extend(self._render_document(skill, sections) for skill in skills)
        return "\n\n".join(blocks) + "\n"

    @staticmethod
    def _render_document(skill: Skill, sections: list[tuple[str, str]]) -> str:
        heading = f"## {skill.name} (stack)" if skill.kind == STACK else f"## {skill.name}"
        lines = [heading, "", skill.description, "", skill.instructions.strip()]
        for title, attr in sections:
            items = getattr(skill, attr)
            if items:
                lines += ["", f"### {title}"]
                lines += [f"- {item}" for item in items]
        return "\n".join(lines)

    def inject_into_prompt(
        self,
        base_prompt: str,
        skills: list[Skill],
        position: str = "after",
    ) -> str:
        """Combine a base prompt with rendered documents.

        Args:
            base_prompt: Prompt to extend
            skills: Documents to render
            position: "before", "after" or "replace"

        Raises:
            ValueError: On an unknown position
        """
        if position not in POSITIONS:
            raise ValueError(f"Invalid position: {position}")
        if not skills:
            return base_prompt

        rendered = self.build_prompt_injection(skills).rstrip("\n")
        if position == "replace":
            return rendered
        if position == "before":
            return f"{rendered}\n\n{base_prompt}"
        return f"{base_prompt}\n\n{rendered}"

    def context_for_task(self, task: str, limit: int = 1) -> str:
        """Match ``task`` and render the top ``limit`` documents ("" if none)."""
        return self.build_prompt_injection([m.skill for m in self.match(task, limit=limit)])
