"""Core module - configuration, errors and logging."""

from skillbook.core.config import ConfigManager, SkillbookConfig, MatcherConfig, UpdateConfig
from skillbook.core.errors import (
    ErrorCategory,
    ClassifiedError,
    classify_error,
    SkillbookError,
    SkillParseError,
    SkillNotFoundError,
    ManifestError,
    ChangelogError,
    UpdateError,
)

__all__ = [
    "ConfigManager",
    "SkillbookConfig",
    "MatcherConfig",
    "UpdateConfig",
    "ErrorCategory",
    "ClassifiedError",
    "classify_error",
    "SkillbookError",
    "SkillParseError",
    "SkillNotFoundError",
    "ManifestError",
    "ChangelogError",
    "UpdateError",
]
