from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .env_auth import EnvAuthConfig, EnvironmentAuthManager
from .errors import ConfigurationError
from .github_rest import DEFAULT_API_URL

CONFIG_DEFAULT = "epicbot.config.yaml"

# GitHub Actions exposes `with:` inputs as INPUT_<NAME> keeping the hyphens
INPUT_EPIC_PREFIX = "INPUT_EPIC-PREFIX"
INPUT_WORKLOAD_MARKER = "INPUT_WORKLOAD-MARKER"
INPUT_CLOSE_COMPLETED = "INPUT_CLOSE-COMPLETED-EPICS"

_TRUTHY = {"1", "true", "yes", "on"}


def parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


@dataclass
class BotConfig:
    epic_prefix: str
    workload_marker: str
    close_completed_epics: bool = False
    secret_token: str | None = None
    repo: str | None = None
    api_url: str = DEFAULT_API_URL
    dry_run: bool = False
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"

    def validate(self, *, require_token: bool = False) -> BotConfig:
        if self.epic_prefix == "":
            raise ConfigurationError("Epic prefix cannot be an empty string.")
        if self.workload_marker == "":
            raise ConfigurationError("Workload marker cannot be an empty string.")
        if require_token and not self.secret_token:
            raise ConfigurationError(
                "No GitHub token available (secret-token input, GITHUB_TOKEN or GH_TOKEN)."
            )
        if require_token and not self.repo:
            raise ConfigurationError(
                "Target repository unknown; set GITHUB_REPOSITORY or pass --repo owner/repo."
            )
        return self

    def describe(self) -> dict[str, Any]:
        return {
            "epic_prefix": self.epic_prefix,
            "workload_marker": self.workload_marker,
            "close_completed_epics": self.close_completed_epics,
            "repo": self.repo,
            "dry_run": self.dry_run,
        }


def _read_file(path: Path) -> dict[str, Any]:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return cast(dict[str, Any], loaded)


def load_config(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
    *,
    load_dotenv: bool = True,
) -> BotConfig:
    """Build the bot configuration from an optional YAML file and the environment.

    Action inputs (``INPUT_*``) override file values. An explicitly passed path
    must exist; the default ``epicbot.config.yaml`` is read only when present.
    Validation is left to :meth:`BotConfig.validate` so callers decide when the
    token is required.
    """
    # loads .env into os.environ, so it must run before any input is read
    auth = EnvironmentAuthManager(
        EnvAuthConfig(load_dotenv=load_dotenv),
        environ=environ,
    )
    env = environ if environ is not None else os.environ
    raw: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigurationError(f"Configuration file not found: {p}")
        raw = _read_file(p)
    elif Path(CONFIG_DEFAULT).exists():
        raw = _read_file(Path(CONFIG_DEFAULT))

    logging_config = cast(dict[str, Any], raw.get("logging", {}) or {})
    gh = cast(dict[str, Any], raw.get("github", {}) or {})

    epic_prefix = env.get(INPUT_EPIC_PREFIX) or raw.get("epic_prefix", "")
    workload_marker = env.get(INPUT_WORKLOAD_MARKER) or raw.get("workload_marker", "")
    close_raw = env.get(INPUT_CLOSE_COMPLETED) or raw.get("close_completed_epics", False)

    return BotConfig(
        epic_prefix=str(epic_prefix or ""),
        workload_marker=str(workload_marker or ""),
        close_completed_epics=parse_flag(close_raw),
        secret_token=auth.get_github_token(),
        repo=env.get("GITHUB_REPOSITORY") or gh.get("repo"),
        api_url=str(gh.get("api_url") or env.get("GITHUB_API_URL") or DEFAULT_API_URL),
        dry_run=parse_flag(env.get("EPICBOT_DRY_RUN", raw.get("dry_run", False))),
        logging_json_enabled=bool(logging_config.get("json_enabled", False)),
        logging_level=str(logging_config.get("level", "INFO")),
    )


__all__ = ["BotConfig", "CONFIG_DEFAULT", "load_config", "parse_flag"]
