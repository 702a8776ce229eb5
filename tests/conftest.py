"""Shared test fixtures and pytest configuration."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from skillbook.core.logging import reset_logger


RAILWAY_SKILL = '''---
name: railway
description: Deploy services and databases on Railway. Trigger words: railway, deploy, 502, nixpacks.
tags:
  - hosting
---

# Railway

Deploy with `railway up`.

## Examples

- Deploy a Node service
- Attach a Postgres plugin

## Common Issues

- 502 Bad Gateway: the app is not listening on $PORT
'''

EXPO_SKILL = '''---
name: expo
description: Build React Native apps with Expo and EAS. Triggers on: expo, eas build, or react native.
---

# Expo

Use `npx create-expo-app`.

## Guidelines

- Prefer EAS Build for store binaries
'''

ZEFIX_SKILL = '''---
name: zefix-api
description: Query the Swiss company register REST API. Keywords: zefix, uid, handelsregister.
enabled: false
---

Call the search endpoint with basic auth.
'''

ELECTRIC_STACK = '''# Electric SQL

Sync Postgres data into local apps with shapes and offsets.

## Setup

Run the sync service next to Postgres.
'''

SAMPLE_CHANGELOG = '''# Changelog

Session log. Newest first.

## 2026-03-02 - Expo refresh

### Summary

Updated the Expo skill for SDK 52.

### Completed

- Rewrote EAS section
- Added push notification notes

### Key Decisions

- Keep bare workflow out of scope

### Files Changed

- skills/expo/SKILL.md

## 2026-02-10 - Initial import

### Summary

Imported the first skills.

### Completed

- Railway skill
'''

SAMPLE_MANIFEST = {
    "version": "1.2.0",
    "releaseDate": "2026-03-02",
    "repository": "example/skills",
    "changelogUrl": "https://example.com/skills/CHANGELOG.md",
}


@pytest.fixture(autouse=True)
def _isolated_logger():
    """Give every test a fresh skillbook logger."""
    reset_logger()
    yield
    reset_logger()


@pytest.fixture
def tmp_config_dir(tmp_path: Path) -> Path:
    """Provide a temporary config directory."""
    config_dir = tmp_path / ".skillbook"
    config_dir.mkdir()
    return config_dir


def _write_skill(root: Path, dirname: str, content: str) -> Path:
    """Write ``root/skills/<dirname>/SKILL.md``."""
    skill_dir = root / "skills" / dirname
    skill_dir.mkdir(parents=True, exist_ok=True)
    path = skill_dir / "SKILL.md"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def sample_manifest() -> dict:
    """version.json content of the sample library."""
    return dict(SAMPLE_MANIFEST)


@pytest.fixture
def write_skill():
    """Helper for writing ``<root>/skills/<dirname>/SKILL.md``."""
    return _write_skill


@pytest.fixture
def sample_library(tmp_path: Path) -> Path:
    """A small but complete library directory."""
    library = tmp_path / "library"
    _write_skill(library, "railway", RAILWAY_SKILL)
    _write_skill(library, "expo", EXPO_SKILL)
    _write_skill(library, "zefix-api", ZEFIX_SKILL)
    stacks = library / "stacks"
    stacks.mkdir()
    (stacks / "electric-sql.md").write_text(ELECTRIC_STACK, encoding="utf-8")
    (library / "CHANGELOG.md").write_text(SAMPLE_CHANGELOG, encoding="utf-8")
    (library / "version.json").write_text(json.dumps(SAMPLE_MANIFEST, indent=2) + "\n", encoding="utf-8")
    return library
