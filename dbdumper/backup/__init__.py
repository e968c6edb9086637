"""
Backup module for dbdumper.

This module handles the backup stages:
- Database dump (mysqldump)
- Compression (gzip)
- Retention policy enforcement
- Remote sync (aws s3 sync)
- Execution orchestration
"""

from .executor import BackupRunner, run_backup
from .dump import BackupProducer, generate_dump_filename
from .compression import gzip_in_place, is_backup_artifact
from .storage import S3Sync
from .retention import RetentionManager

__all__ = [
    'BackupRunner',
    'run_backup',
    'BackupProducer',
    'generate_dump_filename',
    'gzip_in_place',
    'is_backup_artifact',
    'S3Sync',
    'RetentionManager'
]
