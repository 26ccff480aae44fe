from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from conftest import FixedClock, make_job, write_file
from dlcleaner import archiver as archiver_module
from dlcleaner.cache import RunCache
from dlcleaner.errors import FilesystemError, InvalidScheduleError, SourceNotFoundError
from dlcleaner.runner import JobDecision, JobRunner
from dlcleaner.schedule import ScheduleCalculator

UTC = timezone.utc


def test_select_classifies_jobs(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path)
    cache = RunCache()
    now = clock()

    assert JobRunner.select(job, cache, now) is JobDecision.NEW

    cache.upsert(job.name, now + timedelta(seconds=1))
    assert JobRunner.select(job, cache, now) is JobDecision.NOT_DUE

    cache.upsert(job.name, now)
    assert JobRunner.select(job, cache, now) is JobDecision.DUE

    cache.upsert(job.name, now - timedelta(days=3))
    assert JobRunner.select(job, cache, now) is JobDecision.DUE


def test_first_sighting_only_schedules(tmp_path: Path) -> None:
    # now matches the schedule exactly, the job must still not run
    clock = FixedClock(datetime(2024, 1, 1, 3, 0, 0, tzinfo=UTC))
    job = make_job(tmp_path)
    write_file(Path(job.src) / "file.txt")
    cache = RunCache()

    summary = JobRunner(clock=clock).run([job], cache)

    assert len(cache) == 1
    assert cache.lookup(job.name) == (True, datetime(2024, 1, 2, 3, 0, tzinfo=UTC))
    assert summary.scheduled == 1
    assert summary.executed == 0
    assert (Path(job.src) / "file.txt").exists()
    assert not Path(job.dst).exists()


def test_due_job_archives_once_and_reschedules(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path)
    write_file(Path(job.src) / "docs" / "a.txt")
    cache = RunCache()
    cache.upsert(job.name, clock() - timedelta(minutes=1))

    summary = JobRunner(clock=clock).run([job], cache)

    archives = list(Path(job.dst).iterdir())
    assert [p.name for p in archives] == ["2024-01-01-10-00-00"]
    assert (archives[0] / "docs" / "a.txt").exists()
    assert Path(job.src).is_dir()
    assert list(Path(job.src).iterdir()) == []
    assert cache.lookup(job.name) == (True, datetime(2024, 1, 2, 3, 0, tzinfo=UTC))
    assert summary.executed == 1
    assert summary.archived == 1
    assert summary.outcomes[0].archive.files_copied == 1


def test_not_due_job_is_untouched(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path)
    write_file(Path(job.src) / "file.txt")
    next_run = clock() + timedelta(hours=1)
    cache = RunCache()
    cache.upsert(job.name, next_run)

    summary = JobRunner(clock=clock).run([job], cache)

    assert cache.lookup(job.name) == (True, next_run)
    assert not Path(job.dst).exists()
    assert (Path(job.src) / "file.txt").exists()
    assert summary.skipped == 1


def test_next_run_is_anchored_to_execution_time(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path, schedule="0 * * * *")
    Path(job.src).mkdir(parents=True)
    cache = RunCache()
    cache.upsert(job.name, clock() - timedelta(days=7))

    JobRunner(clock=clock).run([job], cache)

    # one hour after now, no catch-up of the missed hourly runs
    assert cache.lookup(job.name) == (True, datetime(2024, 1, 1, 11, 0, tzinfo=UTC))


def test_empty_due_source_still_reschedules(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path)
    Path(job.src).mkdir(parents=True)
    cache = RunCache()
    cache.upsert(job.name, clock() - timedelta(minutes=1))

    summary = JobRunner(clock=clock).run([job], cache)

    assert list(Path(job.dst).iterdir()) == []
    assert cache.lookup(job.name)[1] == ScheduleCalculator.next_fire_time(job.schedule, clock())
    assert summary.executed == 1
    assert summary.archived == 0


def test_abort_keeps_earlier_progress(tmp_path: Path, clock: FixedClock) -> None:
    job_a = make_job(tmp_path, name="a")
    job_b = make_job(tmp_path, name="b")
    job_c = make_job(tmp_path, name="c")
    write_file(Path(job_a.src) / "file.txt")
    write_file(Path(job_c.src) / "file.txt")

    stale = clock() - timedelta(minutes=5)
    cache = RunCache()
    cache.upsert("a", stale)
    cache.upsert("b", stale)
    cache.upsert("c", stale)

    with pytest.raises(SourceNotFoundError):
        JobRunner(clock=clock).run([job_a, job_b, job_c], cache)

    assert cache.lookup("a") == (True, datetime(2024, 1, 2, 3, 0, tzinfo=UTC))
    assert cache.lookup("b") == (True, stale)
    assert cache.lookup("c") == (True, stale)
    assert len(list(Path(job_a.dst).iterdir())) == 1
    assert not Path(job_c.dst).exists()
    assert (Path(job_c.src) / "file.txt").exists()


def test_abort_on_new_job_with_bad_schedule(tmp_path: Path, clock: FixedClock) -> None:
    good = make_job(tmp_path, name="good")
    bad = make_job(tmp_path, name="bad").model_copy(update={"schedule": "bogus"})
    later = make_job(tmp_path, name="later")
    cache = RunCache()

    with pytest.raises(InvalidScheduleError):
        JobRunner(clock=clock).run([good, bad, later], cache)

    assert "good" in cache
    assert "bad" not in cache
    assert "later" not in cache


def test_orphaned_entries_are_kept(tmp_path: Path, clock: FixedClock) -> None:
    job = make_job(tmp_path)
    cache = RunCache()
    cache.upsert("removed-job", clock() - timedelta(days=1))

    JobRunner(clock=clock).run([job], cache)

    assert [entry.name for entry in cache.entries()] == ["removed-job", job.name]


def test_preview_does_not_mutate(tmp_path: Path, clock: FixedClock) -> None:
    due = make_job(tmp_path, name="due")
    new = make_job(tmp_path, name="new")
    write_file(Path(due.src) / "file.txt")
    stale = clock() - timedelta(minutes=1)
    cache = RunCache()
    cache.upsert("due", stale)

    outcomes = JobRunner(clock=clock).preview([due, new], cache)

    assert [o.decision for o in outcomes] == [JobDecision.DUE, JobDecision.NEW]
    assert outcomes[1].next_run == datetime(2024, 1, 2, 3, 0, tzinfo=UTC)
    assert len(cache) == 1
    assert cache.lookup("due") == (True, stale)
    assert not Path(due.dst).exists()


def test_archive_name_and_next_run_share_one_instant(tmp_path: Path) -> None:
    class SteppingClock:
        def __init__(self) -> None:
            self.now = datetime(2024, 1, 1, 2, 59, 58, tzinfo=UTC)

        def __call__(self) -> datetime:
            moment = self.now
            self.now += timedelta(seconds=1)
            return moment

    job = make_job(tmp_path)
    write_file(Path(job.src) / "file.txt")
    cache = RunCache()
    cache.upsert(job.name, datetime(2024, 1, 1, 0, 0, tzinfo=UTC))

    summary = JobRunner(clock=SteppingClock()).run([job], cache)

    # pass starts at 02:59:58, the job runs at 02:59:59
    assert summary.outcomes[0].archive.archive_path.name == "2024-01-01-02-59-59"
    assert cache.lookup(job.name) == (True, datetime(2024, 1, 1, 3, 0, tzinfo=UTC))


def test_clear_failure_keeps_cache_entry(
    tmp_path: Path, clock: FixedClock, monkeypatch: pytest.MonkeyPatch
) -> None:
    job = make_job(tmp_path)
    write_file(Path(job.src) / "file.txt")
    stale = clock() - timedelta(minutes=1)
    cache = RunCache()
    cache.upsert(job.name, stale)

    def failing_clear(path):
        raise PermissionError("read-only source")

    monkeypatch.setattr(archiver_module, "clear_directory", failing_clear)

    with pytest.raises(FilesystemError):
        JobRunner(clock=clock).run([job], cache)

    assert cache.lookup(job.name) == (True, stale)
    assert (Path(job.dst) / "2024-01-01-10-00-00" / "file.txt").exists()
