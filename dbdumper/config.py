import os
from dataclasses import dataclass, field
from typing import Optional


def default_backup_dir() -> str:
    """Default backup directory: ~/mariadb-backups (or $BACKUP_DIR)."""
    return os.environ.get('BACKUP_DIR') or os.path.join(os.path.expanduser('~'), 'mariadb-backups')


class Config:
    """Base configuration"""

    # Retention
    DELETE_DAYS = 20

    # Remote sync
    S3_URI = os.environ.get('BACKUP_S3_URI') or 's3://rbyc-mariadb-backups/mariadb-backups'
    STORAGE_CLASS = os.environ.get('BACKUP_STORAGE_CLASS') or 'GLACIER'

    # External tools
    MYSQLDUMP_BIN = os.environ.get('MYSQLDUMP_BIN') or 'mysqldump'
    GZIP_BIN = os.environ.get('GZIP_BIN') or 'gzip'
    AWS_BIN = os.environ.get('AWS_BIN') or 'aws'

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE')

    # Scheduler
    SCHEDULER_TIMEZONE = 'UTC'


@dataclass(frozen=True)
class BackupSettings:
    """
    Resolved, immutable settings for one invocation.

    The password is excluded from repr so settings can be logged safely.
    """

    user: str
    password: str = field(repr=False)
    backup_dir: str = field(default_factory=default_backup_dir)
    delete_days: int = Config.DELETE_DAYS
    run_backup: bool = False
    run_delete: bool = False
    run_sync: bool = False
    s3_uri: str = Config.S3_URI
    storage_class: str = Config.STORAGE_CLASS
    mysqldump_bin: str = Config.MYSQLDUMP_BIN
    gzip_bin: str = Config.GZIP_BIN
    aws_bin: str = Config.AWS_BIN
    cron: Optional[str] = None

    @property
    def any_stage(self) -> bool:
        return self.run_backup or self.run_delete or self.run_sync
