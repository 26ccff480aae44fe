"""Exceptions raised by dlcleaner."""


class DlcleanerError(Exception):
    """Base class for all dlcleaner errors."""


class InvalidScheduleError(DlcleanerError, ValueError):
    """A cron schedule expression could not be parsed."""


class SourceNotFoundError(DlcleanerError, FileNotFoundError):
    """A job's source directory does not exist."""


class FilesystemError(DlcleanerError, OSError):
    """Creating, copying or removing files failed."""


class ConfigurationError(DlcleanerError, ValueError):
    """The configuration file is malformed."""


class CacheError(DlcleanerError, ValueError):
    """The cache file is malformed."""
