"""
Database dump producer.

Workflow:
1. Capture the current instant once
2. Dump all databases with mysqldump into <backup_dir>/<instant>_database_dump.sql
3. Compress the dump in place with gzip -9
"""

import os
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .commands import run_command, CommandError
from .compression import gzip_in_place, get_archive_size, DUMP_EXTENSION


logger = logging.getLogger(__name__)

DUMP_SUFFIX = '_database_dump'


class DumpError(Exception):
    """Raised when the database dump fails."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode


def format_timestamp(now: datetime) -> str:
    """
    Format an instant as ISO-8601 UTC with millisecond precision.

    Example: 2023-01-01T00:00:00.000Z
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


def generate_dump_filename(now: Optional[datetime] = None) -> str:
    """
    Generate the filename of an uncompressed dump.

    Format: {ISO-8601 instant}_database_dump.sql

    Args:
        now: Instant of the backup (default: current UTC time)

    Returns:
        Filename (without path)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return f"{format_timestamp(now)}{DUMP_SUFFIX}{DUMP_EXTENSION}"


class BackupProducer:
    """
    Produces one compressed dump of all databases per call to create().
    """

    def __init__(self, backup_dir: str, user: str, password: str,
                 mysqldump_bin: str = 'mysqldump', gzip_bin: str = 'gzip'):
        self.backup_dir = backup_dir
        self.user = user
        self.password = password
        self.mysqldump_bin = mysqldump_bin
        self.gzip_bin = gzip_bin

    def create(self) -> str:
        """
        Dump and compress all databases.

        Returns:
            Path of the compressed artifact

        Raises:
            DumpError: If mysqldump fails (nothing is compressed)
            CompressionError: If gzip fails (the .sql file is kept)
        """
        # Same instant for the dump and compression steps
        filename = generate_dump_filename(datetime.now(timezone.utc))
        dump_path = os.path.join(self.backup_dir, filename)

        self._dump(dump_path)
        logger.info(f"Created new mariadb backup with filename {filename}")

        archive_path = gzip_in_place(dump_path, self.gzip_bin)
        logger.info(f"Gzipped {filename} ({get_archive_size(archive_path) / 1024 / 1024:.2f} MB)")

        return archive_path

    def _dump(self, dump_path: str):
        try:
            Path(self.backup_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DumpError(f"Failed to create backup directory {self.backup_dir}: {e}")

        args = [
            self.mysqldump_bin,
            '--all-databases',
            f'--user={self.user}',
            f'--password={self.password}',
        ]

        try:
            with open(dump_path, 'w') as f:
                run_command(args, stdout=f, secrets=[self.password])
        except CommandError as e:
            self._remove_partial(dump_path)
            raise DumpError(f"Database dump failed: {e}", e.returncode)
        except OSError as e:
            self._remove_partial(dump_path)
            raise DumpError(f"Failed to write dump file {dump_path}: {e}")

    def _remove_partial(self, dump_path: str):
        if os.path.exists(dump_path):
            try:
                os.remove(dump_path)
                logger.info(f"Removed incomplete dump {os.path.basename(dump_path)}")
            except OSError as e:
                logger.warning(f"Failed to remove incomplete dump {dump_path}: {e}")
