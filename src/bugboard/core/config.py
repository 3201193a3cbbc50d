"""bugboard configuration: Pydantic model, load, save, and environment overlays."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from bugboard.core.constants import (
    CONFIG_FILENAME,
    DEFAULT_AI_URL,
    DEFAULT_ANALYSIS_MIN_CHARS,
    DEFAULT_API_URL,
    DEFAULT_COLUMNS,
    DEFAULT_DEBOUNCE_SECONDS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_RECONCILE_TIMEOUT_SECONDS,
    DEFAULT_SIMILAR_LIMIT,
    _default_data_dir,
)
from bugboard.core.exceptions import ConfigError, ConfigNotFoundError


def bugboard_dir() -> Path:
    """
    Return the bugboard data directory, creating it if needed.

    macOS : ~/Library/Application Support/bugboard
    Linux : ~/.config/bugboard  (or $XDG_CONFIG_HOME/bugboard)
    Other : ~/.bugboard
    """
    d = _default_data_dir()
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


def _validate_url(v: str) -> str:
    v = v.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"URL must start with http:// or https:// (got {v!r})")
    return v.rstrip("/")


# ---------------------------------------------------------------------------
# Sub-models
# ---------------------------------------------------------------------------


class ApiConfig(BaseModel):
    """Remote bug store."""

    base_url: str = DEFAULT_API_URL
    timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    token: SecretStr | None = None  # sent as a bearer token when set

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        return _validate_url(v)

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if not (0 < v <= 300):
            raise ValueError("timeout_seconds must be between 0 and 300")
        return v


class AnalysisConfig(BaseModel):
    """Remote AI analysis service used to pre-fill new issues."""

    base_url: str = DEFAULT_AI_URL
    enabled: bool = True
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    min_chars: int = DEFAULT_ANALYSIS_MIN_CHARS
    similar_limit: int = DEFAULT_SIMILAR_LIMIT

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        return _validate_url(v)

    @field_validator("debounce_seconds")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if not (0.0 <= v <= 10.0):
            raise ValueError("debounce_seconds must be between 0.0 and 10.0")
        return v

    @field_validator("similar_limit")
    @classmethod
    def validate_similar_limit(cls, v: int) -> int:
        if not (1 <= v <= 50):
            raise ValueError("similar_limit must be between 1 and 50")
        return v


_VALID_UNMAPPED_POLICIES = frozenset({"drop", "bucket", "error"})


class BoardConfig(BaseModel):
    """Board columns and sync behaviour."""

    model_config = {"extra": "forbid"}

    columns: list[str] = Field(default_factory=lambda: list(DEFAULT_COLUMNS))
    unmapped_status: str = "drop"
    reconcile_timeout_seconds: float = DEFAULT_RECONCILE_TIMEOUT_SECONDS

    @field_validator("columns")
    @classmethod
    def normalize_columns(cls, v: list[str]) -> list[str]:
        from bugboard.core.board import normalize_column

        keys = [normalize_column(c) for c in v]
        if not keys or not all(keys):
            raise ValueError("columns must be a non-empty list of non-empty names")
        if len(set(keys)) != len(keys):
            raise ValueError(f"columns must be unique after normalization: {keys}")
        return keys

    @field_validator("unmapped_status")
    @classmethod
    def validate_unmapped_status(cls, v: str) -> str:
        if v not in _VALID_UNMAPPED_POLICIES:
            raise ValueError(
                f"Invalid unmapped_status {v!r}. Must be one of: "
                f"{sorted(_VALID_UNMAPPED_POLICIES)}"
            )
        return v

    @field_validator("reconcile_timeout_seconds")
    @classmethod
    def validate_reconcile_timeout(cls, v: float) -> float:
        if not (0 < v <= 120):
            raise ValueError("reconcile_timeout_seconds must be between 0 and 120")
        return v


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    format: str = "text"  # "text" | "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("text", "json"):
            raise ValueError("Log format must be 'text' or 'json'")
        return v


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


class BugBoardConfig(BaseModel):
    """Root bugboard configuration model."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    board: BoardConfig = Field(default_factory=BoardConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Computed path (not stored in config file)
    _config_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        return self._config_path


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------


def _config_file_path() -> Path:
    if env_path := os.environ.get("BUGBOARD_CONFIG"):
        return Path(env_path)
    return bugboard_dir() / CONFIG_FILENAME


def load_config(path: Path | str | None = None) -> BugBoardConfig:
    """
    Load BugBoardConfig from TOML file, overlaid with environment variables.

    Priority (highest to lowest):
      1. Environment variables (BUGBOARD_*)
      2. Config file (platform data dir / config.toml)
    """
    import tomllib

    cfg_path = Path(path) if path is not None else _config_file_path()

    if not cfg_path.exists():
        raise ConfigNotFoundError(
            f"bugboard is not configured. Run 'bugboard init' first.\n"
            f"(Config file not found: {cfg_path})"
        )

    try:
        with open(cfg_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as exc:
        raise ConfigError(f"Cannot read config file {cfg_path}: {exc}") from exc

    _apply_env_overrides(data)

    try:
        config = BugBoardConfig.model_validate(data)
    except Exception as exc:
        raise ConfigError(f"Invalid config at {cfg_path}: {exc}") from exc

    config._config_path = cfg_path
    return config


def load_config_or_default(path: Path | str | None = None) -> BugBoardConfig:
    """Like :func:`load_config`, but a missing file yields defaults plus env overrides."""
    try:
        return load_config(path)
    except ConfigNotFoundError:
        data: dict[str, Any] = {}
        _apply_env_overrides(data)
        try:
            return BugBoardConfig.model_validate(data)
        except Exception as exc:
            raise ConfigError(f"Invalid environment configuration: {exc}") from exc


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Overlay BUGBOARD_* environment variables onto parsed TOML."""

    def _env(name: str) -> str:
        return os.environ.get(name, "")

    if url := _env("BUGBOARD_API_URL"):
        data.setdefault("api", {})["base_url"] = url
    if token := _env("BUGBOARD_API_TOKEN"):
        data.setdefault("api", {})["token"] = token
    if timeout := _env("BUGBOARD_API_TIMEOUT"):
        try:
            data.setdefault("api", {})["timeout_seconds"] = float(timeout)
        except ValueError as exc:
            raise ConfigError(f"BUGBOARD_API_TIMEOUT must be a number: {timeout!r}") from exc
    if ai_url := _env("BUGBOARD_AI_URL"):
        data.setdefault("analysis", {})["base_url"] = ai_url
    if level := _env("BUGBOARD_LOG_LEVEL"):
        data.setdefault("logging", {})["level"] = level


def save_config(config_data: dict[str, Any], path: Path | None = None) -> Path:
    """Write config dict to TOML file with secure permissions (0600)."""
    import tomli_w

    cfg_path = path or _config_file_path()
    cfg_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    # Write atomically
    tmp_path = cfg_path.with_suffix(".tmp")
    try:
        with open(tmp_path, "wb") as f:
            tomli_w.dump(config_data, f)
        tmp_path.rename(cfg_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Cannot write config to {cfg_path}: {exc}") from exc

    # The file may hold an API token
    cfg_path.chmod(0o600)
    return cfg_path
