"""
Remote storage for backups.

The backup directory is mirrored to S3 with `aws s3 sync --delete`, so the
bucket prefix ends up holding exactly the local artifacts.
"""

import os
import logging

from .commands import run_command, CommandError


logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when mirroring to remote storage fails."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode


def is_s3_uri(uri: str) -> bool:
    """Check for an s3://bucket[/prefix] URI with a non-empty bucket."""
    return uri.startswith('s3://') and bool(uri[len('s3://'):].split('/', 1)[0])


class S3Sync:
    """
    Mirrors a local directory to an S3 prefix using the AWS CLI.

    Objects are stored with the configured storage class (GLACIER by
    default). Remote objects with no local counterpart are deleted.
    """

    def __init__(self, s3_uri: str, storage_class: str = 'GLACIER', aws_bin: str = 'aws'):
        """
        Initialize S3 sync handler.

        Args:
            s3_uri: Destination, e.g. s3://bucket/prefix
            storage_class: S3 storage class for uploaded objects
            aws_bin: AWS CLI executable
        """
        if not is_s3_uri(s3_uri):
            raise SyncError(f"Invalid S3 URI: {s3_uri}")

        self.s3_uri = s3_uri
        self.storage_class = storage_class
        self.aws_bin = aws_bin

    def build_command(self, local_dir: str) -> list:
        return [
            self.aws_bin, 's3', 'sync',
            local_dir, self.s3_uri,
            '--delete',
            '--storage-class', self.storage_class,
        ]

    def sync(self, local_dir: str):
        """
        Mirror local_dir to the S3 URI.

        Raises:
            SyncError: If the directory is missing or the AWS CLI fails. The
                remote side may be partially synced.
        """
        if not os.path.isdir(local_dir):
            raise SyncError(f"Backup directory not found: {local_dir}")

        try:
            run_command(self.build_command(local_dir))
        except CommandError as e:
            raise SyncError(f"S3 sync failed: {e}", e.returncode)

        logger.info("Synched mariadb backups with S3")
