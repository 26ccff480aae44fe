"""
dlcleaner: Cron-scheduled archival of watched directories.

This package moves the contents of watched directories (such as a downloads
folder) into timestamped archive folders on per-job cron schedules, keeping
the next due time of every job in a cache file between invocations.
"""

__version__ = "0.1.0"
