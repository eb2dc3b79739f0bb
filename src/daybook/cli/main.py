"""Main CLI module for daybook."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import click

from ..core.models import ArchiveView, BucketView
from .cli_common import CLIContext, parse_pairs, run_command

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  daybook add user-1 apple --metric calories=95      # Add an entry for today
  daybook today user-1                               # Today's entries and totals
  daybook remove user-1 <entry-id>                   # Remove an entry
  daybook archive list                               # Archived dates
  daybook archive show 2024-01-01 --owner user-1     # One day's archive
  daybook reset 2024-01-02                           # Force a rollover
  daybook prune --max-age-days 30                    # Delete old archives
  daybook run                                        # Run the maintenance scheduler
""".strip()


def _summarize(view: BucketView | ArchiveView, json_output: bool) -> dict[str, Any]:
    data = view.to_dict()
    if json_output:
        return data

    data["entries"] = [
        f"{entry.id} {entry.name} {entry.metrics}" if entry.metrics else f"{entry.id} {entry.name}"
        for entry in view.entries
    ]
    data["count"] = len(view.entries)
    return data


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Daybook - day-bucketed entries with nightly rollover into an archive",
    epilog=EPILOG,
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: daybook.yaml or $DAYBOOK_CONFIG)",
)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON (machine-readable)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, json_output: bool, verbose: bool) -> None:
    """Root CLI command."""
    ctx.obj = CLIContext(config_path=config_path, json_output=json_output, verbose=verbose)


@cli.command("add")
@click.argument("owner_id")
@click.argument("name")
@click.option("--metric", "metrics", multiple=True, help="Numeric metric as key=value (repeatable)")
@click.option("--media-ref", type=str, help="Reference to attached media")
@click.option("--attr", "attrs", multiple=True, help="Descriptive attribute as key=value (repeatable)")
@click.pass_obj
def add_cmd(
    ctx: CLIContext,
    owner_id: str,
    name: str,
    metrics: tuple[str, ...],
    media_ref: str | None,
    attrs: tuple[str, ...],
) -> None:
    """Add an entry to today's bucket."""
    payload: dict[str, Any] = {
        **parse_pairs(attrs, numeric=False),
        "name": name,
        "metrics": parse_pairs(metrics, numeric=True),
    }
    if media_ref:
        payload["media_ref"] = media_ref

    run_command(ctx, lambda: ctx.service.add_entry(owner_id, payload), lambda entry: entry.to_dict())


@cli.command("remove")
@click.argument("owner_id")
@click.argument("entry_id")
@click.pass_obj
def remove_cmd(ctx: CLIContext, owner_id: str, entry_id: str) -> None:
    """Remove an entry from today's bucket."""
    run_command(
        ctx,
        lambda: ctx.service.remove_entry(owner_id, entry_id),
        lambda _: {"removed": entry_id, "owner_id": owner_id},
    )


@cli.command("today")
@click.argument("owner_id")
@click.pass_obj
def today_cmd(ctx: CLIContext, owner_id: str) -> None:
    """Show today's entries and totals for an owner."""
    run_command(ctx, lambda: ctx.service.get_today(owner_id), lambda view: _summarize(view, ctx.json_output))


@cli.group("archive")
def archive_group() -> None:
    """Browse archived days."""


@archive_group.command("show")
@click.argument("day")
@click.option("--owner", "owner_id", type=str, help="Only show this owner's entries")
@click.pass_obj
def archive_show_cmd(ctx: CLIContext, day: str, owner_id: str | None) -> None:
    """Show the archive for DAY (YYYY-MM-DD)."""
    run_command(
        ctx,
        lambda: ctx.service.get_archive(day, owner_id=owner_id),
        lambda view: _summarize(view, ctx.json_output),
    )


@archive_group.command("list")
@click.pass_obj
def archive_list_cmd(ctx: CLIContext) -> None:
    """List archived dates, most recent first."""
    run_command(ctx, lambda: ctx.service.list_archive_dates())


@cli.command("reset")
@click.argument("day")
@click.pass_obj
def reset_cmd(ctx: CLIContext, day: str) -> None:
    """Force a rollover so that DAY becomes the current day."""

    def render(result: Any) -> dict[str, Any]:
        if result is None:
            return {"reset": False, "date": day}
        return {
            "reset": True,
            "from_date": result.from_date.isoformat(),
            "to_date": result.to_date.isoformat(),
            "archived": result.archived,
            "entry_count": result.entry_count,
        }

    run_command(ctx, lambda: ctx.service.force_reset(day), render)


@cli.command("prune")
@click.option("--max-age-days", type=click.IntRange(min=0), help="Override the configured retention window")
@click.pass_obj
def prune_cmd(ctx: CLIContext, max_age_days: int | None) -> None:
    """Delete archives older than the retention window."""
    run_command(ctx, lambda: ctx.service.prune_archives(max_age_days), lambda stats: stats.to_dict())


@cli.command("run")
@click.pass_obj
def run_cmd(ctx: CLIContext) -> None:
    """Run the rollover and retention scheduler until interrupted."""

    def serve() -> dict[str, Any]:
        service = ctx.service
        service.start_scheduler()
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            click.echo("Stopping scheduler", err=True)
        finally:
            service.stop_scheduler()
        return service.scheduler_status()

    run_command(ctx, serve)


def main(args: list[str] | None = None) -> int:
    """Main CLI entry point."""
    try:
        normalized_args = list(args) if args is not None else None
        return cli.main(args=normalized_args, prog_name="daybook", standalone_mode=False) or 0
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        return 1

