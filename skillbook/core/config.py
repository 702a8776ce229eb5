"""Configuration management for Skillbook."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"


def _default_config_dir() -> Path:
    """Get default configuration directory."""
    return Path.home() / ".skillbook"


def _default_library_dir() -> Path:
    """Get default library directory."""
    return Path.home() / ".skillbook" / "library"


def _default_user_skills_dir() -> Path:
    """Get default user overlay directory."""
    return Path.home() / ".skillbook" / "skills"


def _default_backups_dir() -> Path:
    """Get default backups directory."""
    return Path.home() / ".skillbook" / "backups"


def _default_logs_dir() -> Path:
    """Get default logs directory."""
    return Path.home() / ".skillbook" / "logs"


class UpdateConfig(BaseModel):
    """Where library updates are fetched from."""
    manifest_url: Optional[str] = Field(default=None, description="URL of the remote version.json")
    tarball_url: Optional[str] = Field(default=None, description="URL of the library tarball (.tar.gz)")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")


class MatcherConfig(BaseModel):
    """Trigger-word scoring weights."""
    trigger_weight: int = Field(default=3, ge=0)
    name_weight: int = Field(default=2, ge=0)
    description_weight: int = Field(default=1, ge=0)
    max_description_hits: int = Field(default=3, ge=0, description="Cap on description keyword hits per document")
    default_limit: int = Field(default=5, ge=1, description="Matches shown by default")


class SkillbookConfig(BaseModel):
    """Main Skillbook configuration."""
    library_dir: Path = Field(default_factory=_default_library_dir)
    user_skills_dir: Path = Field(default_factory=_default_user_skills_dir)
    backups_dir: Path = Field(default_factory=_default_backups_dir)
    logs_dir: Path = Field(default_factory=_default_logs_dir)
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING or ERROR")

    update: UpdateConfig = Field(default_factory=UpdateConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)

    # Not persisted; where this config was loaded from
    config_dir: Path = Field(default_factory=_default_config_dir, exclude=True)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> "SkillbookConfig":
        """
        Load configuration from ``config_dir/config.yaml``.

        Returns defaults if the file doesn't exist or can't be parsed.
        """
        config_dir = Path(config_dir) if config_dir else _default_config_dir()
        config_file = config_dir / CONFIG_FILENAME
        if not config_file.exists():
            return cls(config_dir=config_dir)

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("top-level YAML value must be a mapping")
            data.pop("config_dir", None)
            return cls(config_dir=config_dir, **data)
        except (yaml.YAMLError, ValidationError, ValueError) as e:
            logger.warning("Failed to load config from %s: %s", config_file, e)
            return cls(config_dir=config_dir)

    def save(self) -> None:
        """Write configuration to ``config_file`` (mode 0600)."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        os.chmod(self.config_file, 0o600)

    def ensure_directories(self) -> None:
        """Create the directories this configuration points at."""
        for path in (self.config_dir, self.library_dir, self.user_skills_dir, self.backups_dir, self.logs_dir):
            path.mkdir(parents=True, exist_ok=True)


class ConfigManager:
    """Dot-path access to a persisted SkillbookConfig."""

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Custom configuration directory. Defaults to ~/.skillbook
        """
        self.config_dir = Path(config_dir) if config_dir else _default_config_dir()
        self._config: Optional[SkillbookConfig] = None

    @property
    def config(self) -> SkillbookConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = SkillbookConfig.load(self.config_dir)
        return self._config

    def save(self) -> None:
        self.config.save()

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., "update.timeout")
            default: Default value if key not found

        Returns:
            Configuration value or default.
        """
        obj: Any = self.config
        for part in key.split("."):
            if isinstance(obj, BaseModel) and part in type(obj).model_fields:
                obj = getattr(obj, part)
            else:
                return default
        return obj

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value by dot-notation key.

        The value is validated against the field's type.

        Raises:
            KeyError: If the key does not name a configuration field
            ValueError: If the value fails validation
        """
        parts = key.split(".")
        obj: Any = self.config

        for part in parts[:-1]:
            if isinstance(obj, BaseModel) and part in type(obj).model_fields:
                obj = getattr(obj, part)
            else:
                raise KeyError(f"Configuration key not found: {key}")

        final_key = parts[-1]
        if not isinstance(obj, BaseModel) or final_key not in type(obj).model_fields:
            raise KeyError(f"Configuration key not found: {key}")

        data = obj.model_dump()
        data[final_key] = value
        try:
            validated = type(obj).model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid value for {key}: {e}") from e
        setattr(obj, final_key, getattr(validated, final_key))

    def reset(self) -> SkillbookConfig:
        """Reset configuration to defaults."""
        self._config = SkillbookConfig(config_dir=self.config_dir)
        return self._config
