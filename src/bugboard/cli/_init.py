"""bugboard init — write a config file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from rich.console import Console

from bugboard.core.constants import DEFAULT_AI_URL, DEFAULT_API_URL, DEFAULT_COLUMNS, ExitCode


def cmd_init(
    *,
    api_url: str,
    ai_url: str,
    force: bool,
    config_path: str | None,
    console: Console,
) -> None:
    from bugboard.core.config import BugBoardConfig, _config_file_path, save_config
    from bugboard.core.exceptions import ConfigError

    path = Path(config_path) if config_path else _config_file_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {path}")
        console.print("Use [cyan]--force[/cyan] to overwrite.")
        raise SystemExit(ExitCode.ERROR)

    data: dict[str, Any] = {
        "api": {"base_url": api_url or DEFAULT_API_URL},
        "analysis": {"base_url": ai_url or DEFAULT_AI_URL},
        "board": {"columns": list(DEFAULT_COLUMNS)},
    }

    # Validate before writing so a bad URL never reaches disk
    try:
        BugBoardConfig.model_validate(data)
    except ValueError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise SystemExit(ExitCode.CONFIG_ERROR) from exc

    try:
        written = save_config(data, path)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise SystemExit(ExitCode.CONFIG_ERROR) from exc

    console.print(f"[green]Config written:[/green] {written}")
