"""
Retention policy enforcement for local backups.

Deletes compressed dumps in the backup directory whose creation time is older
than the configured number of days. Files that do not look like backup
artifacts are never touched.
"""

import os
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any

from .compression import is_backup_artifact


logger = logging.getLogger(__name__)


class RetentionError(Exception):
    """Raised when the backup directory cannot be inspected."""
    pass


def file_created_at(path: str) -> datetime:
    """
    Get the creation time of a file as an aware UTC datetime.

    Uses st_birthtime where the platform provides it, otherwise st_mtime
    (artifacts are never modified after creation).
    """
    stat = os.stat(path)
    timestamp = getattr(stat, 'st_birthtime', None) or stat.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class RetentionManager:
    """
    Manages retention policy enforcement for a backup directory.
    """

    def __init__(self, backup_dir: str, delete_days: int = 20, max_workers: int = 4):
        """
        Initialize retention manager.

        Args:
            backup_dir: Directory holding the backup artifacts
            delete_days: Artifacts older than this many days are deleted
            max_workers: Number of concurrent deletions
        """
        self.backup_dir = backup_dir
        self.delete_days = delete_days
        self.max_workers = max_workers

    def cutoff_date(self) -> datetime:
        return datetime.now(timezone.utc) - timedelta(days=self.delete_days)

    def find_old_backups(self) -> List[str]:
        """
        List artifacts created strictly before the cutoff date.

        Returns:
            Filenames (without path), sorted

        Raises:
            RetentionError: If the directory cannot be listed
        """
        cutoff = self.cutoff_date()

        try:
            entries = sorted(os.listdir(self.backup_dir))
        except OSError as e:
            raise RetentionError(f"Failed to list backup directory {self.backup_dir}: {e}")

        old_files = []
        for filename in entries:
            if not is_backup_artifact(filename):
                continue

            path = os.path.join(self.backup_dir, filename)
            if not os.path.isfile(path):
                continue

            try:
                created = file_created_at(path)
            except FileNotFoundError:
                # Removed since listing
                continue

            if created < cutoff:
                old_files.append(filename)

        return old_files

    def enforce(self) -> Dict[str, Any]:
        """
        Delete all artifacts older than the retention window.

        Deletions run concurrently; all of them are waited for before the
        result is reported. A failed deletion does not stop the others.

        Returns:
            Dict with summary of cleanup:
            {
                'found': int,
                'deleted': int,
                'errors': List[str]
            }

        Raises:
            RetentionError: If the directory cannot be listed
        """
        logger.debug(f"Retention: {self.delete_days} days (cutoff {self.cutoff_date().isoformat()})")
        old_files = self.find_old_backups()

        summary = {
            'found': len(old_files),
            'deleted': 0,
            'errors': []
        }

        if not old_files:
            logger.info("No old backup files to delete")
            return summary

        logger.info(f"There are {len(old_files)} old backups that will be deleted")

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results = list(pool.map(self._delete, old_files))

        for filename, error in zip(old_files, results):
            if error is None:
                summary['deleted'] += 1
            else:
                summary['errors'].append(f"Failed to delete {filename}: {error}")

        deleted = summary['deleted']
        logger.info(f"{deleted} old backup file{'' if deleted == 1 else 's'} deleted")
        if summary['errors']:
            logger.warning(f"{len(summary['errors'])} old backup files could not be deleted")

        return summary

    def _delete(self, filename: str):
        """Delete one artifact. Returns None on success, the error otherwise."""
        path = os.path.join(self.backup_dir, filename)
        try:
            os.remove(path)
            logger.debug(f"Deleted local file: {filename}")
            return None
        except OSError as e:
            logger.error(f"Failed to delete local file {filename}: {e}")
            return e
