"""bugboard list / stats / create / edit / delete / analyze."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from rich.console import Console
from rich.table import Table

from bugboard.api.analysis import AnalysisClient, AnalysisResult
from bugboard.api.client import BugApiClient
from bugboard.cli._common import exit_network_error, load_cli_config
from bugboard.core.config import BugBoardConfig
from bugboard.core.constants import ExitCode
from bugboard.core.debounce import AnalysisTrigger
from bugboard.core.exceptions import ApiError
from bugboard.core.models import Item
from bugboard.core.stats import compute_stats, filter_items, recent_items


def _fetch_items(config: BugBoardConfig) -> list[Item]:
    async def _run() -> list[Item]:
        async with BugApiClient.from_config(config) as client:
            return await client.fetch_all_items()

    return asyncio.run(_run())


def _analysis_client(config: BugBoardConfig) -> AnalysisClient:
    return AnalysisClient(
        config.analysis.base_url,
        timeout=config.api.timeout_seconds,
        similar_limit=config.analysis.similar_limit,
    )


# ---------------------------------------------------------------------------
# list / stats
# ---------------------------------------------------------------------------


def cmd_list(
    *,
    search: str,
    status: str,
    recent: int,
    as_json: bool,
    config_path: str | None,
    console: Console,
) -> None:
    config = load_cli_config(config_path, console)
    try:
        items = _fetch_items(config)
    except ApiError as exc:
        exit_network_error(console, str(exc))
        return

    items = filter_items(items, search=search, status=status)
    if recent > 0:
        items = recent_items(items, limit=recent)

    if as_json:
        print(json.dumps([i.to_api() for i in items], indent=2, default=str))
        return

    if not items:
        console.print("[dim]No matching items.[/dim]")
        return

    table = Table(title=f"Items ({len(items)})")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Severity")
    table.add_column("Assignee", style="dim")
    table.add_column("Created", style="dim")
    for item in items:
        table.add_row(
            item.id,
            item.title,
            item.status,
            item.priority,
            item.severity,
            item.assignee.name,
            item.created_at[:10],
        )
    console.print(table)


def cmd_stats(*, as_json: bool, config_path: str | None, console: Console) -> None:
    config = load_cli_config(config_path, console)
    try:
        items = _fetch_items(config)
    except ApiError as exc:
        exit_network_error(console, str(exc))
        return

    stats = compute_stats(items)
    if as_json:
        print(json.dumps(stats.to_dict(), indent=2))
        return

    summary = Table(title="Overview", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Total", str(stats.total))
    summary.add_row("Open", str(stats.open))
    summary.add_row("In progress", str(stats.in_progress))
    summary.add_row("Resolved", str(stats.resolved))
    summary.add_row("Critical", f"[red]{stats.critical}[/red]")
    summary.add_row("High priority", str(stats.high_priority))
    console.print(summary)

    breakdown = Table(title="Breakdown")
    breakdown.add_column("Status", style="cyan")
    breakdown.add_column("Count", justify="right")
    for key, count in stats.by_status.items():
        breakdown.add_row(key, str(count))
    console.print(breakdown)


# ---------------------------------------------------------------------------
# analyze / create
# ---------------------------------------------------------------------------


async def _analyze(config: BugBoardConfig, description: str, title: str | None) -> AnalysisResult:
    """Analyse through the debounced trigger so min_chars applies as in the form."""
    client = _analysis_client(config)
    results: list[AnalysisResult] = []
    trigger = AnalysisTrigger(
        client.analyze,
        results.append,
        delay=config.analysis.debounce_seconds,
        min_chars=config.analysis.min_chars,
    )
    try:
        trigger.feed(description, title)
        await trigger.flush()
    finally:
        await trigger.aclose()
        await client.close()
    return results[-1] if results else AnalysisResult()


def _print_analysis(result: AnalysisResult, console: Console) -> None:
    console.print(
        f"Priority [bold]{result.priority}[/bold] · Severity [bold]{result.severity}[/bold] "
        f"[dim](confidence {result.confidence:.0%})[/dim]"
    )
    if result.tags:
        console.print(f"Tags: {', '.join(result.tags)}")
    for bug in result.similar_bugs:
        console.print(f"  [dim]similar:[/dim] #{bug.get('id', '?')} {bug.get('title', '')}")
    for solution in result.solutions:
        console.print(f"  [dim]suggestion:[/dim] {solution}")


def cmd_analyze(
    *,
    description: str,
    title: str | None,
    as_json: bool,
    config_path: str | None,
    console: Console,
) -> None:
    config = load_cli_config(config_path, console)
    result = asyncio.run(_analyze(config, description, title))
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return
    _print_analysis(result, console)


def cmd_create(
    *,
    fields: dict[str, Any],
    analyze: bool,
    config_path: str | None,
    console: Console,
) -> None:
    config = load_cli_config(config_path, console)
    payload = {k: v for k, v in fields.items() if v not in ("", None)}

    if analyze and config.analysis.enabled:
        result = asyncio.run(_analyze(config, payload.get("description", ""), payload.get("title")))
        payload.setdefault("priority", result.priority)
        payload.setdefault("severity", result.severity)
        if result.tags:
            payload.setdefault("tags", ",".join(result.tags))
        _print_analysis(result, console)

    async def _create() -> Item:
        async with BugApiClient.from_config(config) as client:
            return await client.create_item(payload)

    try:
        item = asyncio.run(_create())
    except ApiError as exc:
        exit_network_error(console, str(exc))
        return
    console.print(f"[green]Created #{item.id}:[/green] {item.title}")


# ---------------------------------------------------------------------------
# edit / delete
# ---------------------------------------------------------------------------


def cmd_edit(
    *,
    item_id: str,
    changes: dict[str, Any],
    config_path: str | None,
    console: Console,
) -> None:
    config = load_cli_config(config_path, console)
    if not changes:
        console.print("[dim]Nothing to change.[/dim]")
        return

    async def _edit() -> Item | None:
        async with BugApiClient.from_config(config) as client:
            current = next((i for i in await client.fetch_all_items() if i.id == item_id), None)
            if current is None:
                return None
            return await client.update_item(item_id, {**current.to_api(), **changes})

    try:
        item = asyncio.run(_edit())
    except ApiError as exc:
        exit_network_error(console, str(exc))
        return
    if item is None:
        console.print(f"[red]Error:[/red] item {item_id!r} not found")
        raise SystemExit(ExitCode.ERROR)
    console.print(f"[green]Updated #{item.id}:[/green] {', '.join(sorted(changes))}")


def cmd_delete(*, item_id: str, config_path: str | None, console: Console) -> None:
    config = load_cli_config(config_path, console)

    async def _delete() -> None:
        async with BugApiClient.from_config(config) as client:
            await client.delete_item(item_id)

    try:
        asyncio.run(_delete())
    except ApiError as exc:
        exit_network_error(console, str(exc))
        return
    console.print(f"[green]Deleted #{item_id}.[/green]")
