"""
Command-line entry point.

Resolves arguments into BackupSettings, then runs the requested stages once,
or on a crontab schedule when --cron is given.
"""

import sys
import signal
import logging
import argparse
from typing import List, Optional

from dbdumper import configure_logging
from dbdumper.config import BackupSettings, Config, default_backup_dir
from dbdumper.backup.storage import is_s3_uri


logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    try:
        days = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if days < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {days}")
    return days


def _s3_uri(value: str) -> str:
    if not is_s3_uri(value):
        raise argparse.ArgumentTypeError(f"expected s3://bucket[/prefix]: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dbdumper',
        description='Back up all MariaDB/MySQL databases, prune old dumps and mirror them to S3.'
    )
    parser.add_argument(
        '-b', '--backup',
        action='store_true',
        help='Create a new backup'
    )
    parser.add_argument(
        '-d', '--delete',
        action='store_true',
        help='Delete old backup files'
    )
    parser.add_argument(
        '--delete-days',
        type=_non_negative_int,
        default=Config.DELETE_DAYS,
        help='Delete old backup files older than "n" days (default: %(default)s)'
    )
    parser.add_argument(
        '-s', '--sync',
        action='store_true',
        help='Sync with S3 bucket'
    )
    parser.add_argument(
        '-u', '--user',
        required=True,
        help='The username with backup privileges in mysql/mariadb'
    )
    parser.add_argument(
        '-p', '--password',
        required=True,
        help='The password of the user with backup privileges in mysql/mariadb'
    )
    parser.add_argument(
        '--backup-dir',
        default=None,
        help='The directory where to store the backup files (default: ~/mariadb-backups)'
    )
    parser.add_argument(
        '--s3-uri',
        type=_s3_uri,
        default=Config.S3_URI,
        help='S3 destination for --sync (default: %(default)s)'
    )
    parser.add_argument(
        '--storage-class',
        default=Config.STORAGE_CLASS,
        help='S3 storage class for synced objects (default: %(default)s)'
    )
    parser.add_argument(
        '--cron',
        default=None,
        help='Run on a crontab schedule, e.g. "0 3 * * *" (UTC), instead of once'
    )
    parser.add_argument(
        '--log-file',
        default=Config.LOG_FILE,
        help='Also write logs to this rotating log file'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse arguments. Exits with status 2 on usage errors."""
    return build_parser().parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> BackupSettings:
    """Build the immutable settings for this invocation."""
    return BackupSettings(
        user=args.user,
        password=args.password,
        backup_dir=args.backup_dir or default_backup_dir(),
        delete_days=args.delete_days,
        run_backup=args.backup,
        run_delete=args.delete,
        run_sync=args.sync,
        s3_uri=args.s3_uri,
        storage_class=args.storage_class,
        cron=args.cron
    )


def _handle_sigterm(signum, frame):
    raise SystemExit(0)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(verbose=args.verbose, log_file=args.log_file)

    settings = resolve_settings(args)
    logger.debug(f"Settings: {settings}")

    if settings.cron:
        from dbdumper import scheduler as scheduler_module

        try:
            scheduler_module.init_scheduler(settings)
        except ValueError as e:
            logger.error(f"Invalid cron expression {settings.cron!r}: {e}")
            return 2

        signal.signal(signal.SIGTERM, _handle_sigterm)
        scheduler_module.start_scheduler()
        return 0

    from dbdumper.backup.executor import run_backup
    return run_backup(settings)


if __name__ == '__main__':
    sys.exit(main())
