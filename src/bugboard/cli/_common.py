"""Shared CLI helpers: config loading, client construction, error exits."""

from __future__ import annotations

from rich.console import Console

from bugboard.core.config import BugBoardConfig
from bugboard.core.constants import ExitCode


def load_cli_config(config_path: str | None, console: Console) -> BugBoardConfig:
    """Load config (defaults when no file exists); exit with CONFIG_ERROR on a bad file."""
    from bugboard.core.config import load_config_or_default
    from bugboard.core.exceptions import ConfigError

    try:
        return load_config_or_default(config_path)
    except ConfigError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        raise SystemExit(ExitCode.CONFIG_ERROR) from exc


def exit_network_error(console: Console, message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    raise SystemExit(ExitCode.NETWORK_ERROR)
