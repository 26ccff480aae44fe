"""Persistent next-run cache for archive jobs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import CacheError

logger = logging.getLogger(__name__)


class CachedJob(BaseModel):
    """Next scheduled run of a single job."""

    name: str = Field(description="Name of the job this entry tracks")
    next_run: datetime = Field(description="When the job is next due")

    @field_validator("next_run")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat timestamps without an offset as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CacheFile(BaseModel):
    """On-disk layout of the cache file."""

    jobs: List[CachedJob] = Field(default_factory=list)


class RunCache:
    """
    Next-run times keyed by job name.

    Entries keep their insertion order so the file written back keeps the
    order it was read in, with new jobs appended at the end.
    """

    def __init__(self) -> None:
        self._next_runs: Dict[str, datetime] = {}

    @classmethod
    def from_entries(cls, entries: Iterable[CachedJob]) -> RunCache:
        """
        Build a cache from persisted entries.

        Raises:
            CacheError: If two entries share a name
        """
        cache = cls()
        for entry in entries:
            if entry.name in cache._next_runs:
                raise CacheError(f"Duplicate job '{entry.name}' in cache")
            cache._next_runs[entry.name] = entry.next_run
        return cache

    def lookup(self, name: str) -> Tuple[bool, Optional[datetime]]:
        """Return (found, next_run) for a job."""
        if name in self._next_runs:
            return True, self._next_runs[name]
        return False, None

    def upsert(self, name: str, next_run: datetime) -> None:
        """Set the next run of a job, appending it if it is not cached yet."""
        self._next_runs[name] = next_run

    def entries(self) -> List[CachedJob]:
        return [
            CachedJob(name=name, next_run=next_run)
            for name, next_run in self._next_runs.items()
        ]

    def __len__(self) -> int:
        return len(self._next_runs)

    def __contains__(self, name: object) -> bool:
        return name in self._next_runs


def load_cache(cache_path: str | Path) -> RunCache:
    """
    Load the cache file.

    A missing or empty file is an empty cache.

    Raises:
        CacheError: If the file is not valid YAML or has the wrong shape
    """
    cache_file = Path(cache_path)

    if not cache_file.exists():
        logger.debug(f"No cache file at {cache_file}, starting empty")
        return RunCache()

    try:
        with open(cache_file, "r", encoding="utf-8") as f:
            cache_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CacheError(f"Invalid YAML format in cache file: {e}") from e
    except UnicodeDecodeError as e:
        raise CacheError(f"Cache file is not valid UTF-8: {e}") from e
    except OSError as e:
        raise CacheError(f"Cannot read cache file {cache_file}: {e}") from e

    if cache_data is None:
        return RunCache()

    try:
        cache_model = CacheFile.model_validate(cache_data)
    except ValidationError as e:
        raise CacheError(f"Cache validation error: {e}") from e

    return RunCache.from_entries(cache_model.jobs)


def write_cache(cache_path: str | Path, cache: RunCache) -> None:
    """Write the cache file, creating parent directories."""
    cache_file = Path(cache_path)

    try:
        cache_file.parent.mkdir(parents=True, exist_ok=True)
        data = CacheFile(jobs=cache.entries()).model_dump(mode="json")
        with open(cache_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
    except OSError as e:
        raise CacheError(f"Cannot write cache file {cache_file}: {e}") from e

    logger.debug(f"Wrote {len(cache)} cache entries to {cache_file}")
