"""Environment-based authentication for EpicBot.

Resolves the GitHub token from the action's ``secret-token`` input first and
then from the usual token variables, optionally loading a local ``.env`` file
so the bot can be exercised from a workstation.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_FALLBACK_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    token_input_var: str = "INPUT_SECRET-TOKEN"
    fallback_vars: tuple[str, ...] = field(default=TOKEN_FALLBACK_VARS)


class EnvironmentAuthManager:
    """Manages authentication through environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig, environ: Mapping[str, str] | None = None):
        self.config = config
        self.logger = get_logger()
        self._environ = environ
        self._dotenv_loaded = False
        if config.load_dotenv and environ is None:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _env(self) -> Mapping[str, str]:
        return self._environ if self._environ is not None else os.environ

    def _load_dotenv(self) -> None:
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else [".env", ".env.local"]
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                load_dotenv(str(env_path))
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        env = self._env()
        for name in (self.config.token_input_var, *self.config.fallback_vars):
            raw = env.get(name)
            if raw is None:
                continue
            token = raw.strip()
            if token:
                self.logger.debug(f"Found GitHub token in {name}")
                return token
        return None


def create_env_auth_manager(
    load_dotenv: bool = True,
    dotenv_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> EnvironmentAuthManager:
    return EnvironmentAuthManager(
        EnvAuthConfig(load_dotenv=load_dotenv, dotenv_path=dotenv_path), environ=environ
    )


__all__ = ["EnvAuthConfig", "EnvironmentAuthManager", "create_env_auth_manager"]
