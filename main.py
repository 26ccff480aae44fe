#!/usr/bin/env python3
"""
dlcleaner: Cron-scheduled archival of watched directories.

Main entry point, meant to be invoked repeatedly from cron.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dlcleaner.cache import RunCache, load_cache, write_cache
from dlcleaner.config import AppPaths, JobConfig, get_paths, load_config, write_default_config
from dlcleaner.errors import CacheError, ConfigurationError, DlcleanerError
from dlcleaner.runner import JobOutcome, JobRunner, RunSummary

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"


def setup_logging(config: JobConfig) -> logging.Logger:
    """Set up logging configuration."""
    logger = logging.getLogger("dlcleaner")
    logger.setLevel(config.log_level)
    logger.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.log_file:
        log_file_path = Path(config.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def format_run_summary(summary: RunSummary, total_execution_time: float) -> str:
    """Format run results into a readable summary."""
    lines = ["=== dlcleaner Run Summary ==="]
    lines.append(f"Jobs processed: {len(summary.outcomes)}")
    lines.append(f"Newly scheduled: {summary.scheduled}")
    lines.append(f"Executed: {summary.executed} ({summary.archived} archived)")
    lines.append(f"Not due: {summary.skipped}")
    lines.append(f"Total execution time: {total_execution_time:.2f} seconds")

    for outcome in summary.outcomes:
        lines.append(format_outcome(outcome))

    return "\n".join(lines)


def format_outcome(outcome: JobOutcome) -> str:
    """Format a single job outcome as one line."""
    line = f"  [{outcome.decision.value}] {outcome.job_name}: next run {outcome.next_run}"
    if outcome.archive is not None:
        if outcome.archive.archived:
            line += (
                f", archived {outcome.archive.files_copied} files"
                f" to {outcome.archive.archive_path}"
            )
        else:
            line += ", source empty"
    return line


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Archive watched directories on cron schedules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dlcleaner                                # Run due jobs (cron mode)
  dlcleaner --dry-run                      # Show which jobs are due
  dlcleaner --config-dir /etc/dlcleaner    # Use another config directory
        """,
    )

    parser.add_argument(
        "--config-dir",
        help="Directory holding config.yaml and cache.yaml (default: ~/.config/dlcleaner)",
    )

    parser.add_argument(
        "--config",
        help="Path to the config file (overrides --config-dir)",
    )

    parser.add_argument(
        "--cache",
        help="Path to the cache file (overrides --config-dir)",
    )

    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Report which jobs are due without archiving or updating the cache",
    )

    return parser.parse_args(argv)


def resolve_paths(args: argparse.Namespace) -> AppPaths:
    """Resolve config and cache paths from command line arguments."""
    paths = get_paths(args.config_dir)
    if args.config:
        paths.conf_path = Path(args.config).expanduser()
    if args.cache:
        paths.cache_path = Path(args.cache).expanduser()
    return paths


def run_dry_run_mode(runner: JobRunner, config: JobConfig, cache: RunCache, logger) -> int:
    """Execute dry run mode."""
    logger.info("Running in DRY RUN mode - no files will be moved")

    if not config.jobs:
        logger.warning("No jobs configured")
        return 0

    for outcome in runner.preview(config.jobs, cache):
        logger.info(format_outcome(outcome))

    return 0


def main(argv=None) -> int:
    """Main application entry point."""
    start_time = datetime.now()
    args = parse_arguments(argv)
    paths = resolve_paths(args)

    if not paths.conf_path.exists():
        try:
            write_default_config(paths.conf_path)
        except OSError as e:
            print(f"ERROR: Cannot create config file {paths.conf_path}: {e}", file=sys.stderr)
            return 1
        print(f"Config file created at: {paths.conf_path}")
        print("Edit the config file, then register the command 'dlcleaner' in your crontab.")
        return 0

    try:
        config = load_config(paths.conf_path)
    except (ConfigurationError, OSError) as e:
        print("ERROR: Config file error occurred.", file=sys.stderr)
        print(f"Config file path: {paths.conf_path}", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    try:
        logger = setup_logging(config)
    except OSError as e:
        print("ERROR: Log file error occurred.", file=sys.stderr)
        print(f"Log file path: {config.log_file}", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    logger.info(f"Configuration loaded with {len(config.jobs)} jobs")

    try:
        cache = load_cache(paths.cache_path)
    except CacheError as e:
        logger.critical("Cache file error occurred.")
        logger.critical(f"Cache file path: {paths.cache_path}")
        logger.critical(str(e))
        return 1

    runner = JobRunner()

    if args.dry_run:
        return run_dry_run_mode(runner, config, cache, logger)

    exit_code = 0
    summary = None
    try:
        summary = runner.run(config.jobs, cache)

    except DlcleanerError as e:
        logger.error(f"Run aborted: {e}")
        exit_code = 1

    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        exit_code = 130

    except Exception as e:
        logger.critical(f"Unexpected error: {e}", exc_info=True)
        exit_code = 1

    # Updates made before an abort are kept.
    try:
        write_cache(paths.cache_path, cache)
    except CacheError as e:
        logger.critical(str(e))
        exit_code = 1

    total_time = (datetime.now() - start_time).total_seconds()
    if summary is not None:
        logger.info("\n" + format_run_summary(summary, total_time))
    logger.info(f"Run completed in {total_time:.2f} seconds")

    return exit_code


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
