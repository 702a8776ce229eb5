"""Trigger-word matching from a free-text task to library documents.

Plain keyword scoring: trigger words count most, then name tokens, then a
capped number of description keywords. No ranking model beyond that.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from skillbook.core.config import MatcherConfig
from skillbook.skills.parser import Skill

STOPWORDS = frozenset({
    "about", "after", "also", "because", "before", "being", "between", "both",
    "could", "does", "doing", "each", "from", "have", "having", "into", "just",
    "like", "make", "more", "most", "much", "need", "only", "other", "over",
    "should", "some", "such", "than", "that", "their", "them", "then", "there",
    "these", "they", "this", "those", "through", "under", "until", "use", "used",
    "uses", "using", "very", "want", "what", "when", "where", "which", "while",
    "will", "with", "within", "without", "would", "your", "words", "trigger",
    "triggers", "keywords", "skill", "guide",
})

TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9.+#]*[a-z0-9+#]|[a-z0-9]")


@dataclass
class SkillMatch:
    """A scored match between a task and a document."""
    skill: Skill
    score: int
    matched_terms: list[str] = field(default_factory=list)


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens; keeps dotted names like ``next.js``."""
    return TOKEN_PATTERN.findall(text.lower())


def contains_term(text: str, term: str) -> bool:
    """True if ``term`` occurs in ``text`` on word boundaries (both lowercased)."""
    if not term:
        return False
    pattern = r"(?<![a-z0-9])" + re.escape(term) + r"(?![a-z0-9])"
    return re.search(pattern, text) is not None


def name_tokens(name: str) -> list[str]:
    return [t for t in re.split(r"[-_\s]+", name.lower()) if len(t) >= 3]


def description_keywords(description: str) -> list[str]:
    keywords = []
    for token in tokenize(description):
        if len(token) >= 4 and token not in STOPWORDS and token not in keywords:
            keywords.append(token)
    return keywords


class SkillMatcher:
    """Scores documents against task descriptions."""

    def __init__(self, config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()

    def score(self, task: str, skill: Skill) -> SkillMatch:
        """Score one document against a task description."""
        text = task.lower()
        cfg = self.config
        score = 0
        matched: list[str] = []

        for trigger in skill.triggers:
            if trigger not in matched and contains_term(text, trigger):
                score += cfg.trigger_weight
                matched.append(trigger)

        for token in name_tokens(skill.name):
            if token not in matched and contains_term(text, token):
                score += cfg.name_weight
                matched.append(token)

        hits = 0
        for keyword in description_keywords(skill.description):
            if hits >= cfg.max_description_hits:
                break
            if keyword not in matched and contains_term(text, keyword):
                score += cfg.description_weight
                matched.append(keyword)
                hits += 1

        return SkillMatch(skill=skill, score=score, matched_terms=matched)

    def match(self, task: str, skills: Iterable[Skill], limit: Optional[int] = None) -> list[SkillMatch]:
        """Rank enabled documents for a task.

        Args:
            task: Free-text task description
            skills: Candidate documents
            limit: Maximum number of matches (None = all)

        Returns:
            Matches with score > 0, best first, ties by name
        """
        if not task.strip():
            return []

        results = [
            m for m in (self.score(task, s) for s in skills if s.metadata.enabled)
            if m.score > 0
        ]
        results.sort(key=lambda m: (-m.score, m.skill.name))
        if limit is not None:
            results = results[:limit]
        return results

    def best_match(self, task: str, skills: Iterable[Skill]) -> Optional[SkillMatch]:
        """The single best document for a task, or None if nothing matches."""
        matches = self.match(task, skills, limit=1)
        return matches[0] if matches else None
