from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from dlcleaner.config import Job

UTC = timezone.utc


class FixedClock:
    """Clock returning a settable, timezone-aware instant."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC))


def make_job(tmp_path: Path, name: str = "downloads", schedule: str = "0 3 * * *") -> Job:
    return Job(
        name=name,
        src=str(tmp_path / name / "src"),
        dst=str(tmp_path / name / "dst"),
        schedule=schedule,
    )


def write_file(path: Path, body: str = "data") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
