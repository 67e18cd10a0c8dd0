"""healwright CLI: inspect suggestions, write reports, apply healed locators.

Exit codes:
    0: Success
    1: Operation failed
    2: Configuration error
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click

from healwright.codemod.modifier import CodeModifier
from healwright.config.logging import setup_logging
from healwright.config.schema import HealingConfig
from healwright.config.settings import get_settings, load_healing_config
from healwright.exceptions import ConfigError, StorageError
from healwright.models.domain import CodeModificationRequest
from healwright.reporter.report import HealingReporter
from healwright.storage.suggestion_store import SuggestionStore

EXIT_SUCCESS = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _store(ctx: click.Context) -> SuggestionStore:
    config: HealingConfig = ctx.obj["config"]
    return SuggestionStore(config.storage_file, max_entries=config.max_suggestions)


@click.group()
@click.version_option(prog_name="healwright")
@click.option(
    "--config", "config_path", type=click.Path(dir_okay=False), help="Healing config YAML"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Self-healing locators for Playwright test suites."""
    settings = get_settings()
    setup_logging("DEBUG" if verbose else settings.log_level, json_output=settings.json_logs)
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_healing_config(config_path)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)


@main.command()
@click.option("--limit", "-n", default=10, show_default=True, help="Number of entries")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON records")
@click.pass_context
def suggestions(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show the most recent healing attempts, newest first."""
    records = asyncio.run(_store(ctx).get_recent(limit))
    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json", by_alias=True) for r in records], indent=2))
        return
    if not records:
        click.echo("No healing suggestions recorded.")
        return
    for r in records:
        status = "healed" if r.result.success else "failed"
        score = f"{r.result.score:.1f}" if r.result.score is not None else "-"
        target = r.result.applied_locator or (r.result.reason or "")
        click.echo(f"[{status}] {r.original_locator or '?'} -> {target} (score {score})")
        if r.test_name:
            click.echo(f"         test: {r.test_name}")


@main.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show aggregate healing statistics."""
    statistics = asyncio.run(_store(ctx).get_statistics())
    click.echo(f"Total attempts: {statistics.total}")
    click.echo(f"Successful: {statistics.successful}")
    click.echo(f"Applied: {statistics.applied}")
    click.echo(f"Average score: {statistics.average_score:.2f}")


@main.command()
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), help="Report directory")
@click.pass_context
def report(ctx: click.Context, output_dir: str | None) -> None:
    """Write healing-report.json and healing-summary.txt."""
    records = asyncio.run(_store(ctx).load_suggestions())
    reporter = HealingReporter(Path(output_dir or get_settings().report_dir))
    try:
        json_path, summary_path = reporter.write(reporter.build(records))
    except OSError as e:
        click.echo(f"Error writing report: {e}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(f"Report written: {json_path}")
    click.echo(f"Summary written: {summary_path}")


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("line_number", type=click.IntRange(min=1))
@click.argument("original")
@click.argument("healed")
@click.option("--no-backup", is_flag=True, help="Do not write a backup first")
@click.pass_context
def apply(
    ctx: click.Context,
    file_path: str,
    line_number: int,
    original: str,
    healed: str,
    no_backup: bool,
) -> None:
    """Replace ORIGINAL with HEALED near LINE_NUMBER of FILE_PATH."""
    config: HealingConfig = ctx.obj["config"]
    modifier = CodeModifier()
    result = modifier.apply(
        CodeModificationRequest(
            file_path=file_path,
            line_number=line_number,
            original_locator=original,
            healed_locator=healed,
            create_backup=config.create_backups and not no_backup,
        )
    )
    if not result.success:
        click.echo(f"Error: {result.error}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(f"Updated {result.modified_file_path}:{result.modified_line}")
    if result.backup_file_path:
        click.echo(f"Backup: {result.backup_file_path}")
        modifier.cleanup_backups(file_path, keep=config.backup_retention)


@main.command()
@click.argument("file_path", type=click.Path(dir_okay=False))
def backups(file_path: str) -> None:
    """List backups of FILE_PATH, newest first."""
    found = CodeModifier().list_backups(file_path)
    if not found:
        click.echo("No backups found.")
        return
    for path in found:
        click.echo(str(path))


@main.command()
@click.argument("backup_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("target_path", type=click.Path(dir_okay=False))
def restore(backup_path: str, target_path: str) -> None:
    """Copy BACKUP_PATH over TARGET_PATH."""
    if not CodeModifier().restore_from_backup(backup_path, target_path):
        click.echo(f"Error: could not restore {backup_path}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo(f"Restored {target_path} from {backup_path}")


@main.command()
@click.argument("file_path", type=click.Path(dir_okay=False))
@click.option("--keep", default=None, type=click.IntRange(min=0), help="Backups to keep")
@click.pass_context
def cleanup(ctx: click.Context, file_path: str, keep: int | None) -> None:
    """Delete all but the newest backups of FILE_PATH."""
    config: HealingConfig = ctx.obj["config"]
    removed = CodeModifier().cleanup_backups(
        file_path, keep=config.backup_retention if keep is None else keep
    )
    click.echo(f"Removed {len(removed)} backup(s).")


@main.command()
@click.pass_context
def clear(ctx: click.Context) -> None:
    """Delete all recorded suggestions."""
    try:
        asyncio.run(_store(ctx).clear())
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_FAILED)
    click.echo("Suggestions cleared.")
