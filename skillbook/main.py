"""Skillbook CLI entry point using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.markdown import Markdown
from rich.markup import escape
from rich.table import Table

from skillbook import __version__
from skillbook.core.config import ConfigManager, SkillbookConfig
from skillbook.core.errors import SkillbookError, SkillNotFoundError, classify_error
from skillbook.core.logging import log_error, setup_logging
from skillbook.library.changelog import load_changelog
from skillbook.library.lint import lint_library
from skillbook.library.manifest import load_manifest
from skillbook.library.update import LibraryUpdater
from skillbook.library.wrapup import record_session
from skillbook.skills.loader import SkillLoader
from skillbook.skills.matcher import SkillMatcher
from skillbook.skills.parser import SKILL, STACK
from skillbook.skills.registry import SkillRegistry
from skillbook.ui import console, error, flatten, info, key_value_table, success, warn


def _startup_callback(
    ctx: typer.Context,
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", envvar="SKILLBOOK_CONFIG_DIR", help="Configuration directory (default ~/.skillbook)"
    ),
    library: Optional[Path] = typer.Option(
        None, "--library", "-L", envvar="SKILLBOOK_LIBRARY", help="Library directory (overrides config)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Echo info-level log messages to the console"),
) -> None:
    """Load configuration and logging before any command runs."""
    cfg = SkillbookConfig.load(config_dir)
    if library is not None:
        cfg.library_dir = library
    setup_logging(
        cfg.log_level,
        cfg.logs_dir if cfg.logs_dir.exists() else None,
        console_level=logging.INFO if verbose else logging.WARNING,
    )
    ctx.obj = cfg


app = typer.Typer(
    name="skillbook",
    help="Load, match, lint and update Markdown skill libraries.",
    no_args_is_help=True,
    callback=_startup_callback,
)


def _fail(exc: Exception) -> None:
    """Report an error and exit with status 1."""
    classified = classify_error(exc)
    log_error(classified.category.value, classified.message)
    error(classified.message)
    raise typer.Exit(1)


def _loader(cfg: SkillbookConfig, project_dir: Optional[Path] = None) -> SkillLoader:
    registry = SkillRegistry(cfg.library_dir, cfg.user_skills_dir)
    loader = SkillLoader(registry, SkillMatcher(cfg.matcher))
    registry.discover(project_dir)
    for path, message in registry.failures:
        warn(f"Skipped {path}: {message}")
    return loader


def _updater(cfg: SkillbookConfig) -> LibraryUpdater:
    return LibraryUpdater(
        library_dir=cfg.library_dir,
        backups_dir=cfg.backups_dir,
        manifest_url=cfg.update.manifest_url,
        tarball_url=cfg.update.tarball_url,
        timeout=cfg.update.timeout,
    )


@app.command()
def init(ctx: typer.Context) -> None:
    """Initialize the Skillbook configuration and directories."""
    cfg: SkillbookConfig = ctx.obj
    cfg.ensure_directories()
    cfg.save()
    success(f"Configuration initialized at {cfg.config_dir}")


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", "-s", help="Show current configuration"),
    path: bool = typer.Option(False, "--path", "-p", help="Show config file path"),
    set_value: Optional[str] = typer.Option(None, "--set", help="Set a value, e.g. update.timeout=10"),
) -> None:
    """View or manage configuration."""
    cfg: SkillbookConfig = ctx.obj
    if path:
        info(str(cfg.config_file))
        return
    if set_value:
        key, sep, value = set_value.partition("=")
        if not sep:
            error("Expected KEY=VALUE")
            raise typer.Exit(1)
        manager = ConfigManager(cfg.config_dir)
        try:
            manager.set(key.strip(), value.strip())
        except (KeyError, ValueError) as e:
            error(str(e).strip("'\""))
            raise typer.Exit(1)
        manager.save()
        success(f"{key.strip()} = {manager.get(key.strip())}")
        return
    if show:
        console.print(key_value_table("Configuration", flatten(cfg.model_dump(mode="json"))))
        return
    info(f"Config dir: {cfg.config_dir}")
    info(f"Config file exists: {cfg.config_file.exists()}")
    info(f"Library: {cfg.library_dir}")


# --- Document commands ---


@app.command("list")
def list_documents(
    ctx: typer.Context,
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="skill or stack"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include disabled documents"),
    project: Optional[Path] = typer.Option(None, "--project", help="Project directory with a .skillbook/skills overlay"),
) -> None:
    """List skills and stacks in the library."""
    if kind not in (None, SKILL, STACK):
        error(f"Unknown kind: {kind} (expected '{SKILL}' or '{STACK}')")
        raise typer.Exit(1)

    loader = _loader(ctx.obj, project)
    docs = loader.registry.list() if show_all else loader.registry.list_enabled()
    if kind:
        docs = [d for d in docs if d.kind == kind]

    if not docs:
        warn(f"No documents found in {ctx.obj.library_dir}")
        return

    table = Table(title="Library")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Triggers", style="green")
    table.add_column("Description", style="dim")
    for doc in docs:
        name = escape(doc.name) if doc.metadata.enabled else f"{escape(doc.name)} [red](disabled)[/]"
        table.add_row(name, doc.kind, escape(", ".join(doc.triggers)), escape(doc.description))
    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Skill or stack name"),
    raw: bool = typer.Option(False, "--raw", help="Print the prompt text instead of rendered Markdown"),
) -> None:
    """Show a single document."""
    loader = _loader(ctx.obj)
    skill = loader.load_skill(name)
    if skill is None:
        _fail(SkillNotFoundError(name))
    if raw:
        console.print(skill.to_prompt(), markup=False, highlight=False)
        return
    info(f"{skill.kind}: {skill.name} ({skill.source_path})")
    if skill.triggers:
        info(f"Triggers: {', '.join(skill.triggers)}")
    console.print(Markdown(skill.instructions))


@app.command()
def match(
    ctx: typer.Context,
    task: str = typer.Argument(..., help="Free-text task description"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum matches"),
    context: bool = typer.Option(False, "--context", "-c", help="Print the best match as prompt context"),
) -> None:
    """Find the documents whose trigger words best fit a task."""
    cfg: SkillbookConfig = ctx.obj
    loader = _loader(cfg)

    if context:
        text = loader.context_for_task(task, limit=limit or 1)
        if not text:
            warn("No matching skill")
            raise typer.Exit(1)
        console.print(text, markup=False, highlight=False)
        return

    matches = loader.match(task, limit=limit or cfg.matcher.default_limit)
    if not matches:
        warn("No matching skill")
        raise typer.Exit(1)

    table = Table(title=f"Matches for: {escape(task)}")
    table.add_column("Score", style="green", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Matched", style="dim")
    for m in matches:
        table.add_row(str(m.score), escape(m.skill.name), escape(", ".join(m.matched_terms)))
    console.print(table)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Substring to look for"),
) -> None:
    """Search names, descriptions, tags and trigger words."""
    loader = _loader(ctx.obj)
    results = loader.registry.search(query)
    if not results:
        warn(f"Nothing matches '{query}'")
        return
    for skill in results:
        console.print(f"[cyan]{escape(skill.name)}[/] [dim]({skill.kind})[/] {escape(skill.description)}")


@app.command()
def new(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Skill name (normalized to kebab-case)"),
    description: str = typer.Argument(..., help="One-line description"),
    trigger: Optional[list[str]] = typer.Option(None, "--trigger", "-t", help="Trigger word (repeatable)"),
) -> None:
    """Create a new skill from the template."""
    cfg: SkillbookConfig = ctx.obj
    registry = SkillRegistry(cfg.library_dir, cfg.user_skills_dir)
    try:
        path = registry.create(name, description, triggers=trigger or None)
    except SkillbookError as e:
        _fail(e)
    success(f"Created {path}")


# --- Maintenance commands ---


@app.command()
def lint(
    ctx: typer.Context,
    strict: bool = typer.Option(False, "--strict", help="Treat warnings as errors"),
) -> None:
    """Check library documentation hygiene."""
    cfg: SkillbookConfig = ctx.obj
    if not cfg.library_dir.exists():
        error(f"Library not found: {cfg.library_dir}")
        raise typer.Exit(1)

    report = lint_library(cfg.library_dir)
    for issue in report.issues:
        if issue.severity == "error":
            error(str(issue))
        else:
            warn(str(issue))

    summary = f"{report.documents_checked} documents, {len(report.errors)} errors, {len(report.warnings)} warnings"
    if not report.ok or (strict and report.warnings):
        error(summary)
        raise typer.Exit(1)
    success(summary)


@app.command()
def changelog(
    ctx: typer.Context,
    limit: int = typer.Option(5, "--limit", "-n", help="Entries to show"),
) -> None:
    """Show recent changelog entries."""
    try:
        log = load_changelog(ctx.obj.library_dir)
    except FileNotFoundError as e:
        _fail(e)
    entries = sorted(log.entries, key=lambda e: e.date, reverse=True)[:limit]
    if not entries:
        warn("Changelog has no entries")
        return
    for entry in entries:
        title = f" - {entry.title}" if entry.title else ""
        console.print(f"[bold cyan]{entry.date}{escape(title)}[/]")
        if entry.summary:
            console.print(f"  {escape(entry.summary)}", highlight=False)
        for item in entry.completed:
            console.print(f"  [green]+[/] {escape(item)}", highlight=False)


@app.command()
def wrapup(
    ctx: typer.Context,
    summary: str = typer.Argument(..., help="What this session did"),
    title: Optional[str] = typer.Option(None, "--title", help="Entry title"),
    done: Optional[list[str]] = typer.Option(None, "--done", help="Completed item (repeatable)"),
    decision: Optional[list[str]] = typer.Option(None, "--decision", help="Key decision (repeatable)"),
    changed: Optional[list[str]] = typer.Option(None, "--file", help="Changed file (repeatable)"),
    bump: Optional[str] = typer.Option(None, "--bump", help="Bump version: major, minor or patch"),
) -> None:
    """Record a session in the changelog."""
    if bump not in (None, "major", "minor", "patch"):
        error(f"Invalid version part: {bump}")
        raise typer.Exit(1)
    try:
        result = record_session(
            ctx.obj.library_dir,
            summary,
            title=title,
            completed=done,
            key_decisions=decision,
            files_changed=changed,
            bump=bump,
        )
    except (SkillbookError, FileNotFoundError) as e:
        _fail(e)
    success(f"Recorded {result.entry.date} in {result.changelog_path}")
    if result.manifest is not None:
        success(f"Version bumped to {result.manifest.version}")


@app.command()
def version(ctx: typer.Context) -> None:
    """Show tool and library versions."""
    info(f"skillbook {__version__}")
    try:
        manifest = load_manifest(ctx.obj.library_dir)
    except FileNotFoundError:
        warn(f"No version.json in {ctx.obj.library_dir}")
        return
    except SkillbookError as e:
        _fail(e)
    console.print(key_value_table("Library Version", manifest.model_dump(by_alias=True).items(), key_header="Field"))


@app.command()
def update(
    ctx: typer.Context,
    check: bool = typer.Option(False, "--check", help="Only check for a newer version"),
    force: bool = typer.Option(False, "--force", help="Reinstall even if versions match"),
) -> None:
    """Update the library from the configured tarball."""
    updater = _updater(ctx.obj)
    try:
        if check:
            status = updater.check()
            if status.update_available:
                info(f"Update available: {status.current or 'none'} -> {status.latest}")
            else:
                success(f"Library is up to date ({status.current})")
            return
        result = updater.apply(force=force)
    except SkillbookError as e:
        _fail(e)

    if not result.changed:
        success(f"Library is up to date ({result.installed})")
        return
    if result.backup_path:
        info(f"Backup: {result.backup_path}")
    success(f"Updated {result.previous or 'none'} -> {result.installed} ({len(result.replaced)} entries replaced)")


@app.command()
def backups(ctx: typer.Context) -> None:
    """List library backups, newest first."""
    found = _updater(ctx.obj).list_backups()
    if not found:
        info("No backups")
        return
    for path in found:
        console.print(path.name, markup=False)


@app.command()
def restore(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Backup name (see 'skillbook backups')"),
) -> None:
    """Restore the library from a backup."""
    try:
        path = _updater(ctx.obj).restore(name)
    except SkillbookError as e:
        _fail(e)
    success(f"Restored {path} from {name}")


if __name__ == "__main__":
    app()
