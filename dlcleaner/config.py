"""Configuration management for dlcleaner."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError
from .schedule import ScheduleCalculator

APP_NAME = "dlcleaner"
CONFIG_FILE_NAME = "config.yaml"
CACHE_FILE_NAME = "cache.yaml"

SAMPLE_CONFIG = """\
# dlcleaner configuration
#
# Every job moves the contents of `src` into a new timestamped folder under
# `dst` whenever its cron `schedule` comes due. Register the `dlcleaner`
# command in your crontab (for example every 10 minutes) to drive it.

log_level: INFO
# log_file: ~/.config/dlcleaner/dlcleaner.log

jobs:
  - name: downloads
    src: ~/Downloads
    dst: ~/Archive/Downloads
    # minute hour day-of-month month day-of-week
    schedule: "0 3 * * 1"
"""


class Job(BaseModel):
    """Configuration for a single archive job."""

    name: str = Field(description="Unique identifier, used to track the job in the cache")
    src: str = Field(description="Directory whose contents get archived")
    dst: str = Field(description="Directory that receives timestamped archives")
    schedule: str = Field(
        description="Cron-like schedule: 'minute hour day-of-month month day-of-week'",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the job name."""
        if not v.strip():
            raise ValueError("name must not be empty")
        return v

    @field_validator("src", "dst")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand a leading '~' in paths."""
        if not v.strip():
            raise ValueError("path must not be empty")
        return os.path.expanduser(v)

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        """Validate the cron schedule format."""
        if not ScheduleCalculator.validate_schedule_format(v):
            raise ValueError(
                f"Invalid cron schedule '{v}', expected "
                "'minute hour day-of-month month day-of-week'"
            )
        return v.strip()


class JobConfig(BaseModel):
    """Main application configuration."""

    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: Optional[str] = Field(
        default=None, description="Optional path to a log file"
    )
    jobs: List[Job] = Field(
        default_factory=list, description="List of directories to archive"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator("log_file")
    @classmethod
    def expand_log_file(cls, v: Optional[str]) -> Optional[str]:
        return os.path.expanduser(v) if v else None

    @model_validator(mode="after")
    def validate_job_names_unique(self) -> JobConfig:
        """Ensure job names are unique."""
        names = [job.name for job in self.jobs]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Job names must be unique, duplicated: {', '.join(duplicates)}")
        return self


class AppPaths(BaseModel):
    """Locations of the config and cache files."""

    conf_path: Path
    cache_path: Path


def get_paths(base_dir: Optional[str] = None) -> AppPaths:
    """
    Resolve config and cache file locations.

    Args:
        base_dir: Directory holding both files (defaults to ~/.config/dlcleaner)

    Returns:
        Paths of the config and cache files
    """
    if base_dir is None:
        base = Path.home() / ".config" / APP_NAME
    else:
        base = Path(base_dir).expanduser()

    return AppPaths(
        conf_path=base / CONFIG_FILE_NAME,
        cache_path=base / CACHE_FILE_NAME,
    )


def load_config(config_path: str | Path) -> JobConfig:
    """Load and validate configuration from YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML format in config file: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigurationError(f"Config file is not valid UTF-8: {e}") from e

    if config_data is None:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(config_data, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    try:
        return JobConfig.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation error: {e}") from e


def write_default_config(config_path: str | Path) -> Path:
    """Write the sample configuration, creating parent directories."""
    config_file = Path(config_path)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(SAMPLE_CONFIG, encoding="utf-8")
    return config_file
