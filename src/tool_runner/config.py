"""Runtime configuration for the tool runner."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def default_max_jobs() -> int:
    """Concurrency ceiling used when none is configured: one job per CPU."""

    return os.cpu_count() or 1


@dataclass(slots=True)
class Settings:
    """Tool runner settings loaded from the environment."""

    config_path: Path = Path("tool_runner.yaml")
    max_jobs: int = field(default_factory=default_max_jobs)
    scratch_root: Path | None = None
    cache_dir: Path | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            config_path=config_path
            or Path(os.getenv("TOOL_RUNNER_CONFIG", "tool_runner.yaml")),
            max_jobs=_env_int("TOOL_RUNNER_MAX_JOBS", default=default_max_jobs()),
            scratch_root=_env_path("TOOL_RUNNER_SCRATCH_ROOT"),
            cache_dir=_env_path("TOOL_RUNNER_CACHE_DIR"),
            log_level=os.getenv("TOOL_RUNNER_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error on out-of-range values."""

        if self.max_jobs <= 0:
            raise ValueError("TOOL_RUNNER_MAX_JOBS must be > 0.")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid TOOL_RUNNER_LOG_LEVEL: {self.log_level!r}. "
                f"Use one of {', '.join(_LOG_LEVELS)}.",
            )
        if self.scratch_root is not None and not self.scratch_root.is_dir():
            raise ValueError(
                f"TOOL_RUNNER_SCRATCH_ROOT is not a directory: {str(self.scratch_root)!r}",
            )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    if not value:
        return None
    return Path(value).expanduser()
