#!/usr/bin/env python3
"""
EFFECTIVE WORKFLOW SETTINGS
---------------------------
Runtime configuration read from the environment:

  GH_TOKEN / GITHUB_TOKEN          API token (optional for public repos)
  GH_HOST                          API host (default: github.com)
  GH_REPO                          Default OWNER/REPO when --repo is not given
  EFFECTIVE_WORKFLOW_TIMEOUT       HTTP timeout in seconds (default: 30)
  EFFECTIVE_WORKFLOW_LOG_LEVEL     Log level (default: WARNING)

When neither --repo nor GH_REPO is set, the repository is taken from the
'origin' remote of the git checkout in the working directory.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional

from effective_workflow.core.errors import ConfigurationError
from effective_workflow.core.models import Repository
from effective_workflow.core.refpath import DEFAULT_HOST, parse_repository

logger = logging.getLogger("effective_workflow.config")

DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class Settings:
    token: Optional[str] = None
    host: str = DEFAULT_HOST
    repository: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        raw_timeout = env.get("EFFECTIVE_WORKFLOW_TIMEOUT", "").strip()
        timeout = DEFAULT_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ConfigurationError(f"EFFECTIVE_WORKFLOW_TIMEOUT must be a number, got '{raw_timeout}'")
            if timeout <= 0:
                raise ConfigurationError("EFFECTIVE_WORKFLOW_TIMEOUT must be positive")

        log_level = (env.get("EFFECTIVE_WORKFLOW_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        if log_level == "WARN":
            log_level = "WARNING"
        if log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(f"EFFECTIVE_WORKFLOW_LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}")

        return cls(
            token=env.get("GH_TOKEN") or env.get("GITHUB_TOKEN") or None,
            host=(env.get("GH_HOST") or DEFAULT_HOST).strip().lower(),
            repository=env.get("GH_REPO") or None,
            timeout=timeout,
            log_level=log_level,
        )


def _git_origin_url(cwd: Optional[str] = None) -> str:
    out = subprocess.check_output(
        ["git", "remote", "get-url", "origin"],
        cwd=cwd,
        text=True,
        stderr=subprocess.DEVNULL,
    )
    return out.strip()


def current_repository(settings: Settings, override: Optional[str] = None,
                       cwd: Optional[str] = None) -> Repository:
    """Resolves the target repository: --repo, then GH_REPO, then git origin."""
    spec = override or settings.repository
    if spec:
        return parse_repository(spec, default_host=settings.host)

    try:
        remote = _git_origin_url(cwd)
    except (OSError, subprocess.CalledProcessError) as e:
        raise ConfigurationError(
            "failed to determine base repo: not in a git checkout with an 'origin' remote; use --repo OWNER/REPO"
        ) from e

    logger.debug(f"Using repository from git remote: {remote}")
    return parse_repository(remote, default_host=settings.host)
