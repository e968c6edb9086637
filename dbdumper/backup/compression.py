"""
Compression of database dumps.

Dumps are compressed in place with the external gzip tool at maximum
compression level: `name.sql` is replaced by `name.sql.gz`.
"""

import os

from .commands import run_command, CommandError


GZIP_EXTENSION = '.gz'
DUMP_EXTENSION = '.sql'
ARTIFACT_EXTENSION = DUMP_EXTENSION + GZIP_EXTENSION


class CompressionError(Exception):
    """Raised when compressing a dump fails."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode


def gzip_in_place(dump_path: str, gzip_bin: str = 'gzip', level: int = 9) -> str:
    """
    Compress a file in place.

    Args:
        dump_path: Path to the uncompressed dump
        gzip_bin: gzip executable
        level: Compression level (1-9)

    Returns:
        Path to the compressed file

    Raises:
        CompressionError: If gzip fails. The uncompressed file is left on disk.
    """
    if not os.path.exists(dump_path):
        raise CompressionError(f"Dump not found: {dump_path}")

    try:
        run_command([gzip_bin, f'-{level}', dump_path])
    except CommandError as e:
        raise CompressionError(f"Failed to gzip {os.path.basename(dump_path)}: {e}", e.returncode)

    return dump_path + GZIP_EXTENSION


def is_backup_artifact(filename: str) -> bool:
    """Check whether a filename looks like a compressed dump (`*.sql.gz`)."""
    return filename.endswith(ARTIFACT_EXTENSION)


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an artifact in bytes.

    Raises:
        CompressionError: If file doesn't exist or cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except FileNotFoundError:
        raise CompressionError(f"Archive not found: {archive_path}")
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")
