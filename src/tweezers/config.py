"""Runtime configuration loaded from ``.tweezers.yaml`` and the environment."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .memory.store import DEFAULT_CACHE_FILE

DEFAULT_CONFIG_NAME = ".tweezers.yaml"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class TweezersConfig:
    """Explicit settings threaded into the staging service."""

    precise: bool = False
    dry_run: bool = False
    debug: bool = False
    normal_context: int = 3
    precise_context: int = 0
    lines_context: int = 1
    cache_file: str = DEFAULT_CACHE_FILE
    history_limit: int = 20
    retention_days: int = 7

    @property
    def context_width(self) -> int:
        """Context lines used for hunk listing and hunk staging."""
        return self.precise_context if self.precise else self.normal_context

    def with_overrides(self, **changes: Any) -> "TweezersConfig":
        """Return a copy with every non-``None`` value in ``changes`` applied."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


def _section(data: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Configuration section '{name}' must be a mapping.")
    return dict(value)


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Configuration value '{key}' must be true or false.")


def _as_int(value: Any, key: str, *, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Configuration value '{key}' must be an integer.")
    if value < minimum:
        raise ConfigError(f"Configuration value '{key}' must be at least {minimum}.")
    return value


def _env_flag(env: Mapping[str, str], name: str) -> Optional[bool]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in _TRUTHY


def load_config(path: Path | str | None, *, env: Mapping[str, str] | None = None) -> TweezersConfig:
    """Load configuration from ``path`` and apply ``env`` overrides.

    A missing file yields the defaults. ``TWEEZERS_PRECISE`` and
    ``TWEEZERS_DEBUG`` in ``env`` override the file.
    """
    data: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if config_path.exists():
            try:
                with config_path.open("r", encoding="utf-8") as handle:
                    loaded = yaml.safe_load(handle) or {}
            except yaml.YAMLError as error:
                raise ConfigError(f"Failed to parse config {config_path}: {error}") from error
            if not isinstance(loaded, dict):
                raise ConfigError("Configuration must be a mapping at the top level.")
            data = loaded

    staging = _section(data, "staging")
    cache = _section(data, "cache")
    logging_cfg = _section(data, "logging")

    config = TweezersConfig()
    if "precise" in staging:
        config.precise = _as_bool(staging["precise"], "staging.precise")
    if "dry_run" in staging:
        config.dry_run = _as_bool(staging["dry_run"], "staging.dry_run")
    for key in ("normal_context", "precise_context", "lines_context"):
        if key in staging:
            setattr(config, key, _as_int(staging[key], f"staging.{key}", minimum=0))
    if "file" in cache:
        file_name = cache["file"]
        if not isinstance(file_name, str) or not file_name.strip():
            raise ConfigError("Configuration value 'cache.file' must be a non-empty string.")
        config.cache_file = file_name.strip()
    if "history_limit" in cache:
        config.history_limit = _as_int(cache["history_limit"], "cache.history_limit", minimum=1)
    if "retention_days" in cache:
        config.retention_days = _as_int(cache["retention_days"], "cache.retention_days", minimum=0)
    if "debug" in logging_cfg:
        config.debug = _as_bool(logging_cfg["debug"], "logging.debug")

    environment = env or {}
    precise = _env_flag(environment, "TWEEZERS_PRECISE")
    if precise is not None:
        config.precise = precise
    debug = _env_flag(environment, "TWEEZERS_DEBUG")
    if debug is not None:
        config.debug = debug
    return config


__all__ = ["DEFAULT_CONFIG_NAME", "TweezersConfig", "load_config"]
