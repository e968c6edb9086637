"""
Backup runner - sequences the requested stages of one invocation.

Workflow (each step only when requested):
1. Dump all databases and gzip the result
2. Delete backups older than the retention window
3. Mirror the backup directory to S3

The first failing stage stops the run; later stages are not attempted.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Any

from dbdumper.config import BackupSettings
from .dump import BackupProducer, DumpError
from .compression import CompressionError
from .retention import RetentionManager, RetentionError
from .storage import S3Sync, SyncError


logger = logging.getLogger(__name__)

STAGE_ERRORS = (DumpError, CompressionError, RetentionError, SyncError)


def exit_status(returncode: int) -> int:
    """
    Map a child returncode to a process exit status.

    A child killed by signal N reports -N; this becomes 128 + N, as a shell
    would report it. Zero or a missing code becomes 1.
    """
    if not returncode:
        return 1
    if returncode < 0:
        return 128 + (-returncode)
    return returncode


class BackupRunner:
    """
    Runs the backup, delete and sync stages for one set of settings.
    """

    def __init__(self, settings: BackupSettings):
        """
        Initialize backup runner.

        Args:
            settings: Resolved settings for this invocation
        """
        self.settings = settings
        self.logs = []

    def execute(self) -> Dict[str, Any]:
        """
        Run all requested stages in order.

        Returns:
            Dict with run results:
            {
                'stages': List[str],      # stages that completed
                'archive_path': str|None,
                'deleted': int,
                'errors': List[str],
                'exit_code': int,
                'logs': List[str]
            }
        """
        result = {
            'stages': [],
            'archive_path': None,
            'deleted': 0,
            'errors': [],
            'exit_code': 0,
        }

        if not self.settings.any_stage:
            self._log("No stages requested (use --backup, --delete or --sync)")

        try:
            # Sync target is checked before any stage runs
            s3_sync = self._s3_sync() if self.settings.run_sync else None

            if self.settings.run_backup:
                result['archive_path'] = self._backup()
                result['stages'].append('backup')

            if self.settings.run_delete:
                summary = self._delete()
                result['deleted'] = summary['deleted']
                result['errors'].extend(summary['errors'])
                if summary['errors']:
                    result['exit_code'] = 1
                result['stages'].append('delete')

            if self.settings.run_sync:
                self._sync(s3_sync)
                result['stages'].append('sync')

        except STAGE_ERRORS as e:
            result['errors'].append(str(e))
            result['exit_code'] = exit_status(getattr(e, 'returncode', 1))
            self._log(f"Backup run failed: {e}", level=logging.ERROR)

        result['logs'] = self.logs
        return result

    def _backup(self) -> str:
        self._log("Creating new backup")
        producer = BackupProducer(
            backup_dir=self.settings.backup_dir,
            user=self.settings.user,
            password=self.settings.password,
            mysqldump_bin=self.settings.mysqldump_bin,
            gzip_bin=self.settings.gzip_bin
        )
        return producer.create()

    def _delete(self) -> Dict[str, Any]:
        self._log(f"Deleting backups older than {self.settings.delete_days} days")
        manager = RetentionManager(self.settings.backup_dir, self.settings.delete_days)
        return manager.enforce()

    def _s3_sync(self) -> S3Sync:
        return S3Sync(
            s3_uri=self.settings.s3_uri,
            storage_class=self.settings.storage_class,
            aws_bin=self.settings.aws_bin
        )

    def _sync(self, s3_sync: S3Sync):
        self._log(f"Syncing {self.settings.backup_dir} to {self.settings.s3_uri}")
        s3_sync.sync(self.settings.backup_dir)

    def _log(self, message: str, level: int = logging.INFO):
        """
        Add a log message with timestamp.

        Args:
            message: Log message
            level: Logging level for the module logger
        """
        timestamp = datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')
        self.logs.append(f"[{timestamp}] {message}")
        logger.log(level, message)


def run_backup(settings: BackupSettings) -> int:
    """
    Run one backup invocation.

    Returns:
        Process exit code
    """
    runner = BackupRunner(settings)
    return runner.execute()['exit_code']
