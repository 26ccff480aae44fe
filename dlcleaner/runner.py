"""Due-job selection and sequential execution of archive jobs."""

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from .archiver import ArchiveResult, Archiver
from .cache import RunCache
from .config import Job
from .schedule import ScheduleCalculator


def local_now() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


class JobDecision(str, Enum):
    """What a run does with a job."""

    NEW = "new"
    DUE = "due"
    NOT_DUE = "not_due"


class JobOutcome:
    """Result of processing one job during a run."""

    def __init__(
        self,
        job_name: str,
        decision: JobDecision,
        next_run: Optional[datetime] = None,
        archive: Optional[ArchiveResult] = None,
    ):
        self.job_name = job_name
        self.decision = decision
        self.next_run = next_run
        self.archive = archive


class RunSummary:
    """Summary of all jobs processed in a run."""

    def __init__(self, outcomes: Optional[List[JobOutcome]] = None):
        self.outcomes = outcomes or []

    @property
    def scheduled(self) -> int:
        """Number of jobs seen for the first time."""
        return sum(1 for o in self.outcomes if o.decision is JobDecision.NEW)

    @property
    def executed(self) -> int:
        """Number of due jobs that were executed."""
        return sum(1 for o in self.outcomes if o.decision is JobDecision.DUE)

    @property
    def skipped(self) -> int:
        """Number of jobs that were not due."""
        return sum(1 for o in self.outcomes if o.decision is JobDecision.NOT_DUE)

    @property
    def archived(self) -> int:
        """Number of executed jobs that produced an archive folder."""
        return sum(1 for o in self.outcomes if o.archive is not None and o.archive.archived)

    def add_outcome(self, outcome: JobOutcome) -> None:
        self.outcomes.append(outcome)


class JobRunner:
    """
    Runs every configured job whose cached next run has passed.

    A job missing from the cache is only scheduled on first sight, never
    executed. After a job runs, its next run is computed from the time it
    started rather than from the previous next run, so runs missed while
    nothing invoked the tool are not caught up.
    """

    def __init__(
        self,
        archiver: Optional[Archiver] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.archiver = archiver or Archiver()
        self.clock = clock or local_now
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def select(job: Job, cache: RunCache, now: datetime) -> JobDecision:
        """Classify a job against the cache at time now."""
        found, next_run = cache.lookup(job.name)
        if not found:
            return JobDecision.NEW
        if next_run > now:
            return JobDecision.NOT_DUE
        return JobDecision.DUE

    def run(self, jobs: List[Job], cache: RunCache) -> RunSummary:
        """
        Process jobs in order, updating cache in place.

        Errors propagate immediately: the failing job keeps its cache entry,
        later jobs are not evaluated, and updates already made to cache stay
        so the caller can persist them.

        Args:
            jobs: Configured jobs, in configuration order
            cache: Next-run cache, mutated in place

        Returns:
            Summary of what happened to each job
        """
        now = self.clock()
        summary = RunSummary()

        for job in jobs:
            decision = self.select(job, cache, now)

            if decision is JobDecision.NEW:
                next_run = ScheduleCalculator.next_fire_time(job.schedule, now)
                cache.upsert(job.name, next_run)
                self.logger.info(f"Scheduled new job '{job.name}', first run at {next_run}")
                summary.add_outcome(JobOutcome(job.name, decision, next_run))

            elif decision is JobDecision.NOT_DUE:
                _, next_run = cache.lookup(job.name)
                self.logger.debug(f"Skipping '{job.name}', next run at {next_run}")
                summary.add_outcome(JobOutcome(job.name, decision, next_run))

            else:
                self.logger.info(f"Running job '{job.name}'")
                executed_at = self.clock()
                archive = self.archiver.execute(job, executed_at)
                next_run = ScheduleCalculator.next_fire_time(job.schedule, executed_at)
                cache.upsert(job.name, next_run)
                self.logger.info(f"Job '{job.name}' done, next run at {next_run}")
                summary.add_outcome(JobOutcome(job.name, decision, next_run, archive))

        return summary

    def preview(self, jobs: List[Job], cache: RunCache) -> List[JobOutcome]:
        """Report what run() would do, without touching cache or files."""
        now = self.clock()
        outcomes = []

        for job in jobs:
            decision = self.select(job, cache, now)
            if decision is JobDecision.NEW:
                next_run = ScheduleCalculator.next_fire_time(job.schedule, now)
            else:
                _, next_run = cache.lookup(job.name)
            outcomes.append(JobOutcome(job.name, decision, next_run))

        return outcomes
