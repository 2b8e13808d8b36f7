from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

DEFAULT_STATE = "open"
DEFAULT_LIMIT = 30
STATES = ("open", "closed", "all")
CONFIG_ENV_VAR = "GHPRS_CONFIG"


@dataclass(frozen=True)
class ListOptions:
    """Options for one ``list``/``konflux`` invocation, fixed once parsed."""

    state: str = DEFAULT_STATE
    limit: int = DEFAULT_LIMIT
    sort_by: str = ""
    approve: bool = False
    current: bool = False
    show_files: bool = False
    show_diff: bool = False
    no_color: bool = False
    tekton_only: bool = False
    migration_only: bool = False
    konflux: bool = False
    output_format: str = "table"


@dataclass
class Config:
    repositories: list[str] = field(default_factory=list)
    konflux_repositories: list[str] = field(default_factory=list)
    state: str = DEFAULT_STATE
    limit: int = DEFAULT_LIMIT

    def get_repositories(self, konflux: bool = False) -> list[str]:
        if konflux and self.konflux_repositories:
            return list(self.konflux_repositories)
        return list(self.repositories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "repositories": list(self.repositories),
            "konflux_repositories": list(self.konflux_repositories),
            "defaults": {"state": self.state, "limit": self.limit},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise ConfigError("'defaults' must be a mapping")
        config = cls(
            repositories=_string_list(data, "repositories"),
            konflux_repositories=_string_list(data, "konflux_repositories"),
            state=defaults.get("state", DEFAULT_STATE),
            limit=defaults.get("limit", DEFAULT_LIMIT),
        )
        if config.state not in STATES:
            raise ConfigError(f"Invalid default state {config.state!r}; expected one of {', '.join(STATES)}")
        if not isinstance(config.limit, int) or isinstance(config.limit, bool) or config.limit <= 0:
            raise ConfigError(f"Invalid default limit {config.limit!r}; expected a positive integer")
        return config


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a list of owner/repo strings")
    return value


def config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".config" / "ghprs" / "config.yaml"


def load_config(path: Path | None = None) -> Config:
    path = path or config_path()
    if not path.exists():
        return Config()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if data is None:
        return Config()
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return Config.from_dict(data)


def save_config(config: Config, path: Path | None = None) -> Path:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(config.to_dict(), sort_keys=False), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config file {path}: {exc}") from exc
    return path


def is_valid_repo_spec(spec: str) -> bool:
    if spec.count("/") != 1:
        return False
    owner, name = spec.split("/")
    return bool(owner) and bool(name)
