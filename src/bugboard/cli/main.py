"""
bugboard CLI entry point.

Commands:
  bugboard init                      — write a config file
  bugboard board                     — show the board, one column per status
  bugboard move <id> <column>        — move an item (optimistic + reconciled)
  bugboard list                      — search / filter / recent items
  bugboard stats                     — admin statistics
  bugboard create                    — create an item (optionally AI pre-filled)
  bugboard edit <id>                 — update fields of an item
  bugboard delete <id>               — delete an item
  bugboard analyze <description>     — run the AI analysis only
"""

from __future__ import annotations

import click
from rich.console import Console

from bugboard import __version__

console = Console()


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", "-V", message="bugboard %(version)s")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    envvar="BUGBOARD_CONFIG",
    help="Path to config.toml.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    hidden=True,
    help="Log level (overrides [logging] level).",
)
@click.option(
    "--log-json", is_flag=True, default=False, hidden=True, help="Emit JSON log lines."
)
@click.pass_context
def cli(
    ctx: click.Context, config_path: str | None, log_level: str | None, log_json: bool
) -> None:
    """bugboard — kanban client for a remote bug tracker."""
    from bugboard.core.config import LoggingConfig, load_config_or_default
    from bugboard.core.exceptions import ConfigError
    from bugboard.core.logging import configure_logging

    # A broken config is reported by the command itself; log with defaults meanwhile
    try:
        settings = load_config_or_default(config_path).logging
    except ConfigError:
        settings = LoggingConfig()

    configure_logging(settings, level=log_level, json_output=True if log_json else None)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--api-url", default="", help="Bug store base URL.")
@click.option("--ai-url", default="", help="AI analysis service base URL.")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing config.")
@click.pass_context
def init(ctx: click.Context, api_url: str, ai_url: str, force: bool) -> None:
    """Write a config file with the given endpoints."""
    from bugboard.cli._init import cmd_init

    cmd_init(
        api_url=api_url,
        ai_url=ai_url,
        force=force,
        config_path=ctx.obj["config_path"],
        console=console,
    )


# ---------------------------------------------------------------------------
# board / move
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def board(ctx: click.Context, as_json: bool) -> None:
    """Show the board."""
    from bugboard.cli._board import cmd_board

    cmd_board(config_path=ctx.obj["config_path"], as_json=as_json, console=console)


@cli.command()
@click.argument("item_id")
@click.argument("column")
@click.option(
    "--index", type=int, default=None, help="Position in the target column (default: end)"
)
@click.pass_context
def move(ctx: click.Context, item_id: str, column: str, index: int | None) -> None:
    """Move ITEM_ID to COLUMN."""
    from bugboard.cli._board import cmd_move

    cmd_move(
        item_id=item_id,
        column=column,
        index=index,
        config_path=ctx.obj["config_path"],
        console=console,
    )


# ---------------------------------------------------------------------------
# list / stats
# ---------------------------------------------------------------------------


@cli.command("list")
@click.option("--search", default="", help="Match title, description or assignee")
@click.option("--status", default="all", help="Only items with this status")
@click.option("--recent", type=int, default=0, help="Only the N most recently created")
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def list_cmd(ctx: click.Context, search: str, status: str, recent: int, as_json: bool) -> None:
    """List items."""
    from bugboard.cli._items import cmd_list

    cmd_list(
        search=search,
        status=status,
        recent=recent,
        as_json=as_json,
        config_path=ctx.obj["config_path"],
        console=console,
    )


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show admin statistics."""
    from bugboard.cli._items import cmd_stats

    cmd_stats(as_json=as_json, config_path=ctx.obj["config_path"], console=console)


# ---------------------------------------------------------------------------
# create / edit / delete / analyze
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--title", required=True)
@click.option("--description", required=True)
@click.option("--status", default="open", show_default=True)
@click.option("--priority", default="")
@click.option("--severity", default="")
@click.option("--assignee", default="")
@click.option("--due-date", default="", help="ISO date, e.g. 2025-06-20")
@click.option("--analyze/--no-analyze", default=False, help="Pre-fill priority/severity via AI")
@click.pass_context
def create(
    ctx: click.Context,
    title: str,
    description: str,
    status: str,
    priority: str,
    severity: str,
    assignee: str,
    due_date: str,
    analyze: bool,
) -> None:
    """Create an item."""
    from bugboard.cli._items import cmd_create

    cmd_create(
        fields={
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "severity": severity,
            "assignee": assignee,
            "dueDate": due_date,
        },
        analyze=analyze,
        config_path=ctx.obj["config_path"],
        console=console,
    )


@cli.command()
@click.argument("item_id")
@click.option("--title", default=None)
@click.option("--description", default=None)
@click.option("--status", default=None)
@click.option("--priority", default=None)
@click.option("--severity", default=None)
@click.option("--assignee", default=None)
@click.option("--due-date", default=None)
@click.pass_context
def edit(
    ctx: click.Context,
    item_id: str,
    title: str | None,
    description: str | None,
    status: str | None,
    priority: str | None,
    severity: str | None,
    assignee: str | None,
    due_date: str | None,
) -> None:
    """Update fields of ITEM_ID."""
    from bugboard.cli._items import cmd_edit

    changes = {
        "title": title,
        "description": description,
        "status": status,
        "priority": priority,
        "severity": severity,
        "assignee": assignee,
        "dueDate": due_date,
    }
    cmd_edit(
        item_id=item_id,
        changes={k: v for k, v in changes.items() if v is not None},
        config_path=ctx.obj["config_path"],
        console=console,
    )


@cli.command()
@click.argument("item_id")
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, item_id: str, yes: bool) -> None:
    """Delete ITEM_ID."""
    from bugboard.cli._items import cmd_delete

    if not yes and not click.confirm(f"Delete item {item_id}?", default=False):
        console.print("[dim]Aborted.[/dim]")
        return
    cmd_delete(item_id=item_id, config_path=ctx.obj["config_path"], console=console)


@cli.command()
@click.argument("description")
@click.option("--title", default=None)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output as JSON")
@click.pass_context
def analyze(ctx: click.Context, description: str, title: str | None, as_json: bool) -> None:
    """Run the AI analysis for DESCRIPTION."""
    from bugboard.cli._items import cmd_analyze

    cmd_analyze(
        description=description,
        title=title,
        as_json=as_json,
        config_path=ctx.obj["config_path"],
        console=console,
    )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
