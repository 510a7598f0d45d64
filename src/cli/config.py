"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./d1doctor.yaml (working directory)
3. ~/.d1doctor/client.yaml (user home)

Environment variables override YAML: D1DOCTOR_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
With no config file, defaults apply.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from src.errors.domain import ConfigError

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")
ENV_PREFIX = "D1DOCTOR_"


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Args:
        value: String potentially containing ${VAR} references.

    Returns:
        String with all ${VAR} references replaced by their env values.
        Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve ${VAR} references in a nested data structure.

    Args:
        data: Dict, list, or scalar value to process.

    Returns:
        Same structure with all string values resolved.
    """
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class DaemonConfig(BaseModel):
    """Where the daemon listens and how the client keeps the channel alive."""

    host: str = "localhost"
    port: int = 9876
    path: str = "/ws"
    heartbeat_interval: float = 30.0
    reconnect_delays: list[float] = [1.0, 2.0, 4.0, 8.0, 8.0]
    auto_start: bool = True
    binary: str | None = None
    config_path: str = "~/.d1doctor/config.toml"
    pid_file: str = "~/.d1doctor/daemon.pid"
    start_timeout: float = 5.0

    @field_validator("reconnect_delays", mode="before")
    @classmethod
    def single_delay_as_list(cls, v: Any) -> Any:
        """Accept a bare number, e.g. D1DOCTOR_DAEMON_RECONNECT_DELAYS=8."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return [v]
        return v

    @field_validator("reconnect_delays")
    @classmethod
    def delays_non_empty(cls, v: list[float]) -> list[float]:
        """The backoff schedule needs at least one positive delay."""
        if not v:
            raise ValueError("reconnect_delays must not be empty")
        if any(d < 0 for d in v):
            raise ValueError("reconnect_delays must be non-negative")
        return v

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.path}"


class CreditsConfig(BaseModel):
    """Credit display settings. The daemon reports balances only."""

    max: float = 100


class LoggingConfig(BaseModel):
    level: str = "warning"
    file: str | None = None


class ClientConfig(BaseModel):
    """Top-level configuration for the daemon client."""

    daemon: DaemonConfig = DaemonConfig()
    credits: CreditsConfig = CreditsConfig()
    logging: LoggingConfig = LoggingConfig()


def _find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "d1doctor.yaml",
        Path.cwd() / "d1doctor.yml",
        Path.home() / ".d1doctor" / "client.yaml",
        Path.home() / ".d1doctor" / "client.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _coerce(value: str) -> Any:
    """Coerce an env var string to int, float, bool, list or keep as string."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if "," in value:
        return [_coerce(part.strip()) for part in value.split(",") if part.strip()]
    return value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply D1DOCTOR_<SECTION>_<KEY> env var overrides to config data.

    For example, ``D1DOCTOR_DAEMON_PORT=9999`` maps to section ``daemon``,
    field ``port``. Comma-separated values become lists, so
    ``D1DOCTOR_DAEMON_RECONNECT_DELAYS=1,2,4`` sets the backoff schedule;
    a single number sets a one-step schedule.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    known_sections = sorted(
        ClientConfig.model_fields.keys(), key=len, reverse=True
    )
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()  # e.g. "daemon_port"
        matched_section = None
        matched_field = None
        for section in known_sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix):
                matched_section = section
                matched_field = suffix[len(section_prefix):]
                break
        if matched_section is None or not matched_field:
            continue
        section_data = data.setdefault(matched_section, {})
        if isinstance(section_data, dict):
            section_data[matched_field] = _coerce(value)
    return data


def load_config(config_path: str | None = None) -> ClientConfig:
    """Load client configuration from YAML file with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.d1doctor/).

    Returns:
        Parsed and validated ClientConfig. Defaults (plus env overrides)
        when no file is found.

    Raises:
        ConfigError: If an explicit path is missing, the YAML is invalid,
            or validation fails.
    """
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        path = _find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        try:
            with open(path) as f:
                raw_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw_data, dict):
            raise ConfigError(f"Config root in {path} must be a mapping")

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)

    try:
        return ClientConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
