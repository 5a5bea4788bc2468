"""Configuration defaults and environment overrides."""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAKEFILE = Path("Makefile")
DEFAULT_TIMEOUT = None  # Commands run to completion unless a timeout is given
DEFAULT_LOG_LEVEL = "WARNING"

ENV_MAKEFILE = "HMAKE_MAKEFILE"
ENV_LOG_LEVEL = "HMAKE_LOG_LEVEL"
ENV_TIMEOUT = "HMAKE_TIMEOUT"
ENV_ALLOWED_TARGETS = "HMAKE_ALLOWED_TARGETS"


@dataclass
class Settings:
    """Resolved runtime settings."""

    makefile: Path = DEFAULT_MAKEFILE
    log_level: str = DEFAULT_LOG_LEVEL
    timeout: int | None = DEFAULT_TIMEOUT
    allowed_targets: list[str] | None = None


def load_settings(
    makefile: Path | None = None,
    log_level: str | None = None,
    timeout: int | None = None,
    allowed_targets: list[str] | None = None,
) -> Settings:
    """Resolve settings: explicit values first, then environment, then defaults."""
    env_timeout = os.getenv(ENV_TIMEOUT)
    if timeout is None and env_timeout:
        try:
            timeout = int(env_timeout)
        except ValueError:
            raise ValueError(f"{ENV_TIMEOUT} must be an integer, got: {env_timeout!r}")

    if not allowed_targets and os.getenv(ENV_ALLOWED_TARGETS):
        allowed_targets = [t.strip() for t in os.getenv(ENV_ALLOWED_TARGETS, "").split(",") if t.strip()]

    return Settings(
        makefile=makefile or Path(os.getenv(ENV_MAKEFILE, str(DEFAULT_MAKEFILE))),
        log_level=(log_level or os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        timeout=timeout if timeout is not None else DEFAULT_TIMEOUT,
        allowed_targets=allowed_targets or None,
    )
