"""version.json manifest for a skill library."""

from __future__ import annotations

import json
import re
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from skillbook.core.errors import ManifestError

MANIFEST_FILENAME = "version.json"

SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

ISO_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class VersionManifest(BaseModel):
    """The four fields of version.json."""
    version: str
    release_date: str = Field(alias="releaseDate")
    repository: str
    changelog_url: str = Field(alias="changelogUrl")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not SEMVER_PATTERN.match(value):
            raise ValueError(f"not a semantic version: {value!r}")
        return value

    @field_validator("release_date")
    @classmethod
    def _check_release_date(cls, value: str) -> str:
        message = f"not an ISO date (YYYY-MM-DD): {value!r}"
        if not ISO_DATE_PATTERN.fullmatch(value):
            raise ValueError(message)
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValueError(message) from None
        return value

    @field_validator("repository")
    @classmethod
    def _check_repository(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("changelog_url")
    @classmethod
    def _check_changelog_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"not an http(s) URL: {value!r}")
        return value

    @property
    def released(self) -> date:
        return date.fromisoformat(self.release_date)

    def same_version(self, other: "VersionManifest | str") -> bool:
        """Plain string equality on the version field."""
        other_version = other if isinstance(other, str) else other.version
        return self.version.strip() == other_version.strip()

    def bump(self, part: str = "patch", today: Optional[date] = None) -> "VersionManifest":
        """Return a copy with the version bumped and releaseDate set to today.

        Pre-release and build suffixes are dropped.
        """
        major, minor, patch = (int(n) for n in SEMVER_PATTERN.match(self.version).groups())
        if part == "major":
            major, minor, patch = major + 1, 0, 0
        elif part == "minor":
            minor, patch = minor + 1, 0
        elif part == "patch":
            patch += 1
        else:
            raise ValueError(f"Invalid version part: {part}")
        return self.model_copy(update={
            "version": f"{major}.{minor}.{patch}",
            "release_date": (today or date.today()).isoformat(),
        })

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2) + "\n"


def parse_manifest(text: str) -> VersionManifest:
    """Parse version.json content.

    Raises:
        ManifestError: On invalid JSON or invalid/missing fields
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"version.json is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError("version.json must contain a JSON object")
    try:
        return VersionManifest.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ManifestError(f"version.json is invalid: {problems}") from e


def load_manifest(library_dir: Path) -> VersionManifest:
    """Load ``<library_dir>/version.json``.

    Raises:
        FileNotFoundError: If the manifest does not exist
        ManifestError: If it is malformed
    """
    path = Path(library_dir) / MANIFEST_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    return parse_manifest(path.read_text(encoding="utf-8"))


def save_manifest(library_dir: Path, manifest: VersionManifest) -> Path:
    """Write the manifest as 2-space indented JSON."""
    path = Path(library_dir) / MANIFEST_FILENAME
    path.write_text(manifest.to_json(), encoding="utf-8")
    return path
