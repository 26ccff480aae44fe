"""Archival of a job's source directory into timestamped folders."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import Job
from .errors import FilesystemError, SourceNotFoundError

TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"


class ArchiveResult:
    """Result of an archive operation."""

    def __init__(
        self,
        job_name: str,
        archived: bool,
        archive_path: Optional[Path] = None,
        files_copied: int = 0,
        bytes_copied: int = 0,
    ):
        self.job_name = job_name
        self.archived = archived
        self.archive_path = archive_path
        self.files_copied = files_copied
        self.bytes_copied = bytes_copied


def archive_timestamp(moment: datetime) -> str:
    """Format a moment as an archive folder name."""
    return moment.strftime(TIMESTAMP_FORMAT)


def contains_files(path: Path) -> bool:
    """Check whether any regular file exists below path."""
    return any(p.is_file() for p in Path(path).rglob("*"))


def clear_directory(path: Path) -> None:
    """Remove every immediate child of path, keeping path itself."""
    for child in Path(path).iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def unique_archive_path(destination: Path, name: str) -> Path:
    """Return destination/name, suffixed with -1, -2, ... if already taken."""
    candidate = destination / name
    counter = 1
    while candidate.exists():
        candidate = destination / f"{name}-{counter}"
        counter += 1
    return candidate


class Archiver:
    """Moves the contents of job sources into timestamped archive folders."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def execute(self, job: Job, now: datetime) -> ArchiveResult:
        """
        Archive the source directory of a job.

        Empty sources (no regular files anywhere below them) are left alone and
        no archive folder is created. Otherwise the whole source tree is copied
        to a new folder under the destination named after `now`, then the
        source is emptied. Partial copies or clears are not rolled back.

        Args:
            job: The job to archive
            now: Time used to name the archive folder

        Returns:
            Outcome of the archive operation

        Raises:
            SourceNotFoundError: If the source directory does not exist
            FilesystemError: If creating, copying or clearing fails
        """
        source_path = Path(job.src)
        dest_path = Path(job.dst)

        if not source_path.exists():
            raise SourceNotFoundError(f"Source directory does not exist: {job.src}")
        if not source_path.is_dir():
            raise SourceNotFoundError(f"Source is not a directory: {job.src}")

        try:
            dest_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(
                f"Cannot create destination directory {job.dst}: {e}"
            ) from e

        try:
            has_files = contains_files(source_path)
        except OSError as e:
            raise FilesystemError(f"Cannot scan source directory {job.src}: {e}") from e

        if not has_files:
            self.logger.debug(f"Nothing to archive for '{job.name}': {job.src} is empty")
            return ArchiveResult(job_name=job.name, archived=False)

        archive_path = unique_archive_path(dest_path, archive_timestamp(now))
        self.logger.info(f"Copying {source_path} --> {archive_path}")

        try:
            shutil.copytree(source_path, archive_path, symlinks=True)
            files = [p for p in archive_path.rglob("*") if p.is_file() and not p.is_symlink()]
            bytes_copied = sum(p.stat().st_size for p in files)
        except OSError as e:
            raise FilesystemError(
                f"Copy of {job.src} to {archive_path} failed: {e}"
            ) from e

        try:
            clear_directory(source_path)
        except OSError as e:
            raise FilesystemError(f"Cannot clear source directory {job.src}: {e}") from e

        self.logger.info(
            f"Archived '{job.name}': {len(files)} files ({bytes_copied} bytes) to {archive_path}"
        )

        return ArchiveResult(
            job_name=job.name,
            archived=True,
            archive_path=archive_path,
            files_copied=len(files),
            bytes_copied=bytes_copied,
        )
