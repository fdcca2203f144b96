"""CLI entry point for asanawarrior."""

from __future__ import annotations

import json
import os
import sys

import click
import structlog

from asanawarrior.asana_reader import fetch_asana_tasks
from asanawarrior.config import (
    CONFIG_PATH,
    TOKEN_ENV,
    config_exists,
    create_default_config,
    load_config,
)
from asanawarrior.log import configure_logging

log = structlog.get_logger("asanawarrior.cli")


@click.group()
@click.option("-v", "--verbose", count=True, help="-v or -vv for more logs.")
def main(verbose):
    """One-way sync from Asana into Taskwarrior."""
    configure_logging(verbose)


@main.command()
@click.option("--skip-udas", is_flag=True, help="Leave the Taskwarrior config untouched.")
def setup(skip_udas):
    """Write a starter config and declare the Asana UDAs in Taskwarrior."""
    from asanawarrior import taskwarrior

    if config_exists():
        click.echo(f"Config: {CONFIG_PATH} (already present)")
    else:
        if os.environ.get(TOKEN_ENV):
            click.echo(f"Using ${TOKEN_ENV}; the token is not written to disk.")
            token = ""
        else:
            click.echo("Create a token at https://app.asana.com/0/my-apps")
            token = click.prompt(
                "Asana personal access token (Enter to skip)",
                default="",
                show_default=False,
            )
        click.echo(f"Config: {create_default_config(asana_token=token)} (created)")

    if not skip_udas:
        added = taskwarrior.ensure_udas(taskwarrior.get_tw())
        click.echo(f"UDAs added: {', '.join(added)}" if added else "UDAs: already declared")

    click.echo("Next: 'asanawarrior fetch --max 10' to preview, 'asanawarrior sync' to import.")


def _read_tasks(token, max_tasks):
    """Fetch tasks, turning any failure into a CLI error exit."""
    config = load_config()
    try:
        return config, fetch_asana_tasks(config, token=token, max_tasks=max_tasks)
    except (RuntimeError, ValueError) as e:
        log.error("fetch_failed", error=str(e))
        click.echo(f"Error reading Asana: {e}", err=True)
        sys.exit(1)


token_option = click.option(
    "--token", default=None, help="Asana personal access token (overrides config and $ASANA_TOKEN)."
)
max_option = click.option(
    "--max", "max_tasks", type=click.IntRange(min=1), default=None,
    help="Maximum number of tasks to fetch (default: sync.max_tasks).",
)


@main.command()
@token_option
@max_option
@click.option("--json", "as_json", is_flag=True, help="Print one JSON object per task.")
def fetch(token, max_tasks, as_json):
    """Print tasks from Asana without touching Taskwarrior."""
    _, tasks = _read_tasks(token, max_tasks)

    for t in tasks:
        if as_json:
            click.echo(json.dumps(t.to_dict()))
            continue
        done = "x" if t.completed else " "
        section = f" [{t.section}]" if t.section else ""
        assignee = f" @{t.assignee}" if t.assignee else ""
        tags = f" +{' +'.join(x for x in t.tags if x)}" if any(t.tags) else ""
        click.echo(f"[{done}] {t.project}{section}: {t.name}{assignee}{tags}")

    if not as_json:
        click.echo(f"Fetched {len(tasks)} tasks from Asana")


@main.command()
@token_option
@max_option
def sync(token, max_tasks):
    """Import tasks from Asana into Taskwarrior."""
    from asanawarrior.taskwarrior import get_tw, upsert_task

    click.echo("Syncing from Asana...")
    config, tasks = _read_tasks(token, max_tasks)
    click.echo(f"  Fetched {len(tasks)} tasks from Asana")

    source_tag = config.get("sync", {}).get("asana_tag", "asana")
    tw = get_tw()
    counts = {"created": 0, "updated": 0, "completed": 0, "skipped": 0}

    for task in tasks:
        action, _ = upsert_task(tw, task, source_tag=source_tag)
        counts[action] += 1

    click.echo(
        f"  Asana: {counts['created']} new, "
        f"{counts['updated']} updated, "
        f"{counts['completed']} completed, "
        f"{counts['skipped']} unchanged"
    )
