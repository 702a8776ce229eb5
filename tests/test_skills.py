"""Tests for the skills system (document parsing, registry, loading).

Tests cover:
- Frontmatter parsing and required fields
- Trigger-word extraction from description prose
- Stack documents with and without frontmatter
- Registry discovery, overlays and search
- Loader prompt injection
"""

from __future__ import annotations

from pathlib import Path

import pytest

from skillbook.core.errors import SkillbookError, SkillParseError
from skillbook.skills.loader import SkillLoader
from skillbook.skills.parser import (
    STACK,
    Skill,
    SkillMetadata,
    SkillParser,
    create_skill_template,
    document_name,
    extract_triggers,
)
from skillbook.skills.registry import SkillRegistry


# =============================================================================
# Parser Tests
# =============================================================================


class TestSkillMetadata:
    """Tests for SkillMetadata dataclass."""

    def test_default_values(self):
        meta = SkillMetadata(name="test", description="A test skill")
        assert meta.version == "1.0.0"
        assert meta.author is None
        assert meta.tags == []
        assert meta.triggers == []
        assert meta.enabled is True


class TestSkill:
    """Tests for Skill dataclass."""

    def test_properties(self):
        meta = SkillMetadata(name="railway", description="Deploy", triggers=["railway"])
        skill = Skill(metadata=meta, instructions="Run it.")
        assert skill.name == "railway"
        assert skill.description == "Deploy"
        assert skill.triggers == ["railway"]

    def test_to_prompt(self):
        meta = SkillMetadata(name="expo", description="Build apps with Expo")
        skill = Skill(metadata=meta, instructions="1. Create the app")

        prompt = skill.to_prompt()
        assert "## Skill: expo" in prompt
        assert "Build apps with Expo" in prompt
        assert "1. Create the app" in prompt

    def test_stack_prompt_label(self):
        meta = SkillMetadata(name="electric-sql", description="Sync engine")
        skill = Skill(metadata=meta, instructions="Body", kind=STACK)
        assert skill.to_prompt().startswith("## Stack: electric-sql")


class TestExtractTriggers:
    """Trigger words embedded in description prose."""

    def test_trigger_words_marker(self):
        desc = "Deploy to Railway. Trigger words: railway, deploy, 502."
        assert extract_triggers(desc) == ["railway", "deploy", "502"]

    def test_triggers_on_with_trailing_or(self):
        desc = "Expo apps. Triggers on: expo, EAS build, or react native."
        assert extract_triggers(desc) == ["expo", "eas build", "react native"]

    def test_conjunction_without_comma(self):
        desc = "Trigger words: railway, deploy or 502."
        assert extract_triggers(desc) == ["railway", "deploy", "502"]
        assert extract_triggers("Keywords: zefix and uid") == ["zefix", "uid"]

    def test_keywords_marker(self):
        assert extract_triggers("Keywords: zefix, uid") == ["zefix", "uid"]

    def test_stops_at_sentence_end(self):
        desc = "Trigger words: tanstack, start. Use it for SSR routing."
        assert extract_triggers(desc) == ["tanstack", "start"]

    def test_keeps_dotted_names(self):
        assert extract_triggers("Triggers: next.js, node.js") == ["next.js", "node.js"]

    def test_deduplicates(self):
        assert extract_triggers("Triggers: expo, Expo, expo") == ["expo"]

    def test_no_marker(self):
        assert extract_triggers("Deploy services on Railway.") == []

    def test_hyphenated_word_is_not_a_marker(self):
        assert extract_triggers("Simple keyword-matching lookup.") == []


class TestSkillParser:
    """Tests for SkillParser."""

    @pytest.fixture
    def parser(self):
        return SkillParser()

    @pytest.fixture
    def valid_skill_content(self):
        return '''---
name: test-skill
description: A test skill for unit testing. Trigger words: testing, pytest.
version: 2.0.0
author: Test Author
tags:
  - testing
triggers:
  - unit test
---

# Test Skill

This is the main instruction body.

## Examples

- Example 1: Do this thing
- Example 2: Do that thing

## Guidelines

1. Be thorough
2. Be concise

## Common Issues

- Import errors: install the package
'''

    def test_parse_valid_skill(self, parser, valid_skill_content):
        skill = parser.parse_string(valid_skill_content)

        assert skill.name == "test-skill"
        assert skill.metadata.version == "2.0.0"
        assert skill.metadata.author == "Test Author"
        assert skill.metadata.tags == ["testing"]
        assert "main instruction body" in skill.instructions
        assert skill.kind == "skill"

    def test_triggers_merge_description_and_frontmatter(self, parser, valid_skill_content):
        skill = parser.parse_string(valid_skill_content)
        assert skill.triggers == ["testing", "pytest", "unit test"]

    def test_parse_sections(self, parser, valid_skill_content):
        skill = parser.parse_string(valid_skill_content)
        assert skill.examples == ["Example 1: Do this thing", "Example 2: Do that thing"]
        assert skill.guidelines == ["Be thorough", "Be concise"]
        assert skill.common_issues == ["Import errors: install the package"]

    def test_parse_missing_frontmatter(self, parser):
        with pytest.raises(SkillParseError, match="missing YAML frontmatter"):
            parser.parse_string("# Just Markdown\n\nNo frontmatter here.")

    def test_parse_missing_name(self, parser):
        content = "---\ndescription: Has description but no name\n---\n\nContent.\n"
        with pytest.raises(ValueError, match="missing required 'name' field"):
            parser.parse_string(content)

    def test_parse_missing_description(self, parser):
        content = "---\nname: no-description\n---\n\nContent.\n"
        with pytest.raises(ValueError, match="missing required 'description' field"):
            parser.parse_string(content)

    def test_parse_invalid_yaml(self, parser):
        content = "---\nname: test\ndescription: [unclosed bracket\n---\n\nContent.\n"
        with pytest.raises(SkillParseError, match="Invalid YAML"):
            parser.parse_string(content)

    def test_parse_non_mapping_frontmatter(self, parser):
        with pytest.raises(SkillParseError, match="expected a mapping"):
            parser.parse_string("---\n- just\n- a list\n---\n\nBody\n")

    def test_parse_disabled_skill(self, parser):
        content = "---\nname: paused\ndescription: Disabled\nenabled: false\n---\n\nBody.\n"
        assert parser.parse_string(content).metadata.enabled is False

    @pytest.mark.parametrize("value", ['"false"', "'no'", '"off"', '"0"'])
    def test_parse_disabled_quoted_string(self, parser, value):
        content = f"---\nname: paused\ndescription: Disabled\nenabled: {value}\n---\n\nBody.\n"
        assert parser.parse_string(content).metadata.enabled is False

    def test_parse_enabled_quoted_string(self, parser):
        content = '---\nname: active\ndescription: Enabled\nenabled: "true"\n---\n\nBody.\n'
        assert parser.parse_string(content).metadata.enabled is True

    def test_parse_unquoted_trigger_description(self, parser):
        content = (
            "---\n"
            "name: railway\n"
            "description: Deploy services on Railway. Trigger words: railway, deploy, 502.\n"
            "---\n\nBody\n"
        )
        skill = parser.parse_string(content)
        assert skill.name == "railway"
        assert skill.description == "Deploy services on Railway. Trigger words: railway, deploy, 502."
        assert skill.triggers == ["railway", "deploy", "502"]

    def test_unquoted_description_keeps_other_fields(self, parser):
        content = (
            "---\n"
            "name: zefix-api\n"
            "description: Swiss register API. Keywords: zefix, uid.\n"
            "version: 1.4.0\n"
            "enabled: false\n"
            "# owner of the skill\n"
            "tags:\n"
            "  - registry\n"
            "  - 'swiss'\n"
            "triggers: [handelsregister]\n"
            "---\n\nBody\n"
        )
        meta = parser.parse_string(content).metadata
        assert meta.version == "1.4.0"
        assert meta.enabled is False
        assert meta.tags == ["registry", "swiss"]
        assert meta.triggers == ["zefix", "uid", "handelsregister"]

    def test_unquoted_description_continues_on_indented_lines(self, parser):
        content = (
            "---\n"
            "name: expo\n"
            "description: Build apps with Expo.\n"
            "  Triggers on: expo, eas build.\n"
            "---\n\nBody\n"
        )
        skill = parser.parse_string(content)
        assert skill.description == "Build apps with Expo. Triggers on: expo, eas build."
        assert skill.triggers == ["expo", "eas build"]

    def test_unquoted_description_with_broken_list_fails(self, parser):
        content = "---\nname: x\ndescription: A. Keywords: a.\ntags: [unclosed\n---\n\nBody\n"
        with pytest.raises(SkillParseError, match="Invalid YAML"):
            parser.parse_string(content)

    def test_stack_without_frontmatter(self, parser):
        content = "# Durable Streams\n\nResumable HTTP streams with offsets.\n\n## Usage\n\nText.\n"
        skill = parser.parse_string(content, kind=STACK, fallback_name="durable-streams")
        assert skill.name == "durable-streams"
        assert skill.description == "Resumable HTTP streams with offsets."
        assert skill.kind == STACK

    def test_stack_without_any_text_fails(self, parser):
        with pytest.raises(SkillParseError, match="description"):
            parser.parse_string("# Only a heading\n", kind=STACK, fallback_name="empty")

    def test_parse_file_sets_source_path(self, parser, valid_skill_content, tmp_path):
        skill_file = tmp_path / "SKILL.md"
        skill_file.write_text(valid_skill_content, encoding="utf-8")

        skill = parser.parse_file(skill_file)
        assert skill.source_path == skill_file

    def test_parse_file_error_includes_path(self, parser, tmp_path):
        bad = tmp_path / "bad.skill.md"
        bad.write_text("no frontmatter", encoding="utf-8")
        with pytest.raises(SkillParseError) as exc_info:
            parser.parse_file(bad)
        assert exc_info.value.path == bad
        assert str(bad) in str(exc_info.value)

    def test_parse_file_not_found(self, parser):
        with pytest.raises(FileNotFoundError):
            parser.parse_file(Path("/nonexistent/SKILL.md"))

    def test_parse_directory(self, parser, sample_library):
        skills, failures = parser.parse_directory(sample_library / "skills")
        assert sorted(s.name for s in skills) == ["expo", "railway", "zefix-api"]
        assert failures == []

    def test_parse_directory_collects_failures(self, parser, tmp_path, write_skill):
        write_skill(tmp_path, "broken", "no frontmatter at all\n")
        (tmp_path / "skills" / "solo.skill.md").write_text(
            "---\nname: solo\ndescription: Standalone\n---\n\nBody\n", encoding="utf-8"
        )
        skills, failures = parser.parse_directory(tmp_path / "skills")
        assert [s.name for s in skills] == ["solo"]
        assert len(failures) == 1
        assert failures[0][0].parent.name == "broken"

    def test_parse_directory_nonexistent(self, parser):
        assert parser.parse_directory(Path("/nonexistent/dir")) == ([], [])


class TestDocumentName:
    def test_index_files_use_directory(self):
        assert document_name(Path("skills/railway/SKILL.md")) == "railway"
        assert document_name(Path("stacks/electric/README.md")) == "electric"

    def test_suffixes_stripped(self):
        assert document_name(Path("skills/solo.skill.md")) == "solo"
        assert document_name(Path("stacks/electric-sql.md")) == "electric-sql"


class TestCreateSkillTemplate:
    def test_basic_template(self, tmp_path):
        template = create_skill_template("my-skill", "My skill description", ["alpha", "beta"])
        assert "name: my-skill" in template
        assert "# My Skill" in template
        assert "## Common Issues" in template

        parsed = SkillParser().parse_string(template)
        assert parsed.name == "my-skill"
        assert parsed.triggers == ["alpha", "beta"]

    def test_template_without_triggers(self):
        parsed = SkillParser().parse_string(create_skill_template("plain", "Plain skill"))
        assert parsed.description == "Plain skill"
        assert parsed.triggers == []


# =============================================================================
# Registry Tests
# =============================================================================


class TestSkillRegistry:
    def test_discover_skills_and_stacks(self, sample_library):
        registry = SkillRegistry(sample_library)
        skills = registry.discover()
        assert set(skills) == {"railway", "expo", "zefix-api", "electric-sql"}
        assert skills["electric-sql"].kind == STACK

    def test_list_sorted_and_enabled(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.discover()
        assert [s.name for s in registry.list()] == ["electric-sql", "expo", "railway", "zefix-api"]
        assert "zefix-api" not in [s.name for s in registry.list_enabled()]

    def test_list_by_kind(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.discover()
        assert [s.name for s in registry.list_by_kind(STACK)] == ["electric-sql"]

    def test_user_overlay_overrides_library(self, sample_library, tmp_path):
        user = tmp_path / "user"
        (user / "railway").mkdir(parents=True)
        (user / "railway" / "SKILL.md").write_text(
            "---\nname: railway\ndescription: My own Railway notes\n---\n\nMine.\n", encoding="utf-8"
        )
        registry = SkillRegistry(sample_library, user_skills_dir=user)
        skills = registry.discover()
        assert skills["railway"].description == "My own Railway notes"

    def test_project_overlay_wins(self, sample_library, tmp_path):
        project = tmp_path / "project"
        overlay = project / ".skillbook" / "skills" / "expo"
        overlay.mkdir(parents=True)
        (overlay / "SKILL.md").write_text(
            "---\nname: expo\ndescription: Project Expo rules\n---\n\nBody\n", encoding="utf-8"
        )
        registry = SkillRegistry(sample_library)
        assert registry.discover(project)["expo"].description == "Project Expo rules"

    def test_failures_recorded(self, sample_library, write_skill):
        write_skill(sample_library, "broken", "---\nname: broken\n---\n\nNo description\n")
        registry = SkillRegistry(sample_library)
        skills = registry.discover()
        assert "broken" not in skills
        assert len(registry.failures) == 1

    def test_get_missing(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.discover()
        assert registry.get("nonexistent") is None

    def test_register_and_unregister(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.register(Skill(metadata=SkillMetadata(name="manual", description="Manual"), instructions=""))
        assert registry.get("manual") is not None
        assert registry.unregister("manual") is True
        assert registry.unregister("manual") is False

    def test_search(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.discover()
        assert [s.name for s in registry.search("nixpacks")] == ["railway"]
        assert [s.name for s in registry.search("REACT NATIVE")] == ["expo"]
        assert [s.name for s in registry.search("hosting")] == ["railway"]

    def test_get_by_tag(self, sample_library):
        registry = SkillRegistry(sample_library)
        registry.discover()
        assert [s.name for s in registry.get_by_tag("hosting")] == ["railway"]

    def test_create_skill(self, tmp_path):
        registry = SkillRegistry(tmp_path / "library")
        path = registry.create("My Cool Skill", "Does things", triggers=["cool"])
        assert path == tmp_path / "library" / "skills" / "my-cool-skill" / "SKILL.md"
        assert registry.get("my-cool-skill").triggers == ["cool"]

    def test_create_refuses_existing(self, sample_library):
        registry = SkillRegistry(sample_library)
        with pytest.raises(SkillbookError, match="already exists"):
            registry.create("railway", "Again")


# =============================================================================
# Loader Tests
# =============================================================================


class TestSkillLoader:
    @pytest.fixture
    def loader(self, sample_library):
        loader = SkillLoader(SkillRegistry(sample_library))
        loader.discover_all()
        return loader

    def test_discover_all_returns_enabled(self, loader):
        names = [s.name for s in loader.discover_all()]
        assert "railway" in names
        assert "zefix-api" not in names

    def test_load_skills_skips_missing_and_disabled(self, loader):
        skills = loader.load_skills(["railway", "nonexistent", "zefix-api"])
        assert [s.name for s in skills] == ["railway"]

    def test_build_prompt_injection(self, loader):
        text = loader.build_prompt_injection(loader.load_skills(["railway", "expo"]))
        assert text.startswith("# Active Skills")
        assert "## railway" in text
        assert "### Examples" in text
        assert "- Deploy a Node service" in text
        assert "### Guidelines" in text

    def test_build_prompt_injection_marks_stacks(self, loader):
        text = loader.build_prompt_injection([loader.load_skill("electric-sql")])
        assert "## electric-sql (stack)" in text

    def test_build_prompt_injection_common_issues(self, loader):
        skills = loader.load_skills(["railway"])
        assert "### Common Issues" not in loader.build_prompt_injection(skills)
        text = loader.build_prompt_injection(skills, include_examples=False, include_common_issues=True)
        assert "### Examples" not in text
        assert "- 502 Bad Gateway: the app is not listening on $PORT" in text

    def test_build_prompt_injection_empty(self, loader):
        assert loader.build_prompt_injection([]) == ""

    def test_inject_positions(self, loader):
        skills = loader.load_skills(["expo"])
        assert loader.inject_into_prompt("BASE", skills, "before").endswith("BASE")
        assert loader.inject_into_prompt("BASE", skills, "after").startswith("BASE")
        assert "BASE" not in loader.inject_into_prompt("BASE", skills, "replace")
        assert loader.inject_into_prompt("BASE", [], "after") == "BASE"

    def test_inject_invalid_position(self, loader):
        with pytest.raises(ValueError, match="Invalid position"):
            loader.inject_into_prompt("BASE", [], "middle")

    def test_context_for_task(self, loader):
        text = loader.context_for_task("getting a 502 after railway deploy")
        assert "## railway" in text
        assert "## expo" not in text

    def test_context_for_unmatched_task(self, loader):
        assert loader.context_for_task("knit a sweater") == ""
