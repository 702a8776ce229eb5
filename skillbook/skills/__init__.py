"""Skills system - Markdown skill and stack documents with trigger-word selection."""

from skillbook.skills.parser import SkillParser, Skill, SkillMetadata, extract_triggers
from skillbook.skills.registry import SkillRegistry
from skillbook.skills.matcher import SkillMatch, SkillMatcher
from skillbook.skills.loader import SkillLoader

__all__ = [
    "Skill",
    "SkillMetadata",
    "SkillParser",
    "SkillRegistry",
    "SkillMatch",
    "SkillMatcher",
    "SkillLoader",
    "extract_triggers",
]
