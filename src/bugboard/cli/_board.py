"""bugboard board / move — show the board and move items between columns."""

from __future__ import annotations

import asyncio
import json

from rich.console import Console
from rich.table import Table

from bugboard.api.client import BugApiClient
from bugboard.cli._common import exit_network_error, load_cli_config
from bugboard.core.board import Board, column_title, normalize_column
from bugboard.core.config import BugBoardConfig
from bugboard.core.constants import ExitCode
from bugboard.core.exceptions import FetchError, InvalidMoveError
from bugboard.core.sync import BoardSyncController, Settled

_PRIORITY_STYLE = {
    "critical": "bold red",
    "highest": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


def _controller(config: BugBoardConfig, client: BugApiClient) -> BoardSyncController:
    return BoardSyncController(
        client,
        config.board.columns,
        unmapped=config.board.unmapped_status,
        reconcile_timeout=config.board.reconcile_timeout_seconds,
    )


def render_board(board: Board) -> Table:
    table = Table(title="Board", show_lines=False, expand=True)
    for key in board.keys():
        table.add_column(f"{column_title(key)} ({len(board.column(key))})", overflow="fold")

    depth = max((len(board.column(k)) for k in board.keys()), default=0)
    for row in range(depth):
        cells: list[str] = []
        for key in board.keys():
            items = board.column(key)
            if row >= len(items):
                cells.append("")
                continue
            item = items[row]
            style = _PRIORITY_STYLE.get(item.priority.lower(), "")
            priority = f"[{style}]{item.priority}[/{style}]" if style else item.priority
            cells.append(
                f"[cyan]#{item.id}[/cyan] {item.title}\n"
                f"[dim]{item.assignee.avatar} {item.assignee.name}[/dim] · {priority}"
            )
        table.add_row(*cells)
    return table


# ---------------------------------------------------------------------------
# board
# ---------------------------------------------------------------------------


def cmd_board(*, config_path: str | None, as_json: bool, console: Console) -> None:
    config = load_cli_config(config_path, console)

    async def _load() -> tuple[Board, list[str]]:
        client = BugApiClient.from_config(config)
        controller = _controller(config, client)
        try:
            board = await controller.load_board()
        finally:
            await client.close()
        return board, controller.dropped_ids

    try:
        board, dropped = asyncio.run(_load())
    except FetchError as exc:
        exit_network_error(console, str(exc))
        return

    if as_json:
        print(json.dumps(board.to_dict(), indent=2, default=str))
        return

    console.print(render_board(board))
    if dropped:
        console.print(
            f"[yellow]{len(dropped)} item(s) with an unrecognized status are hidden.[/yellow]"
        )


# ---------------------------------------------------------------------------
# move
# ---------------------------------------------------------------------------


def cmd_move(
    *,
    item_id: str,
    column: str,
    index: int | None,
    config_path: str | None,
    console: Console,
) -> None:
    config = load_cli_config(config_path, console)
    target = normalize_column(column)

    async def _move() -> tuple[str, str]:
        client = BugApiClient.from_config(config)
        controller = _controller(config, client)
        try:
            board = await controller.load_board()
            located = board.find(item_id)
            if located is None:
                raise InvalidMoveError(f"Item {item_id!r} is not on the board")
            source_column, source_index = located
            dest_index = index
            if dest_index is None:
                dest_index = len(board.column(target)) if board.has_column(target) else 0

            task = controller.move_item(item_id, source_column, source_index, target, dest_index)
            if task is not None:
                console.print(
                    f"[dim]#{item_id}: {column_title(source_column)} → "
                    f"{column_title(target)} (syncing…)[/dim]"
                )
                await task

            state = controller.item_state(item_id)
            settled = state.column if isinstance(state, Settled) else ""
            return settled, controller.last_error
        finally:
            await client.close()

    try:
        settled, error = asyncio.run(_move())
    except InvalidMoveError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(ExitCode.ERROR) from exc
    except FetchError as exc:
        exit_network_error(console, str(exc))
        return

    if settled == target:
        console.print(f"[green]#{item_id} is now in {column_title(target)}.[/green]")
        return

    where = column_title(settled) if settled else "an unknown column"
    console.print(f"[red]Move not applied;[/red] #{item_id} is in {where}.")
    if error:
        console.print(f"[dim]{error}[/dim]")
    raise SystemExit(ExitCode.ERROR)
