"""
Shared pytest fixtures for dbdumper tests.

This module provides fixtures for:
- Temporary backup directories
- Settings factories
- Mocked external tools (mysqldump, gzip, aws) via subprocess.run
- Backup artifacts with controlled creation times
"""

import os
import subprocess
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from dbdumper.config import BackupSettings


@pytest.fixture
def backup_dir(tmp_path):
    """Empty backup directory."""
    path = tmp_path / 'mariadb-backups'
    path.mkdir()
    return path


@pytest.fixture
def make_settings(backup_dir):
    """
    Factory for BackupSettings pointing at the temporary backup directory.
    """
    def _make(**overrides):
        values = {
            'user': 'backup',
            'password': 's3cr3t',
            'backup_dir': str(backup_dir),
        }
        values.update(overrides)
        return BackupSettings(**values)

    return _make


class FakeTools:
    """
    Stand-in for subprocess.run that behaves like the external tools.

    mysqldump writes a small SQL body to its stdout file, gzip renames
    <file> to <file>.gz, aws succeeds. Exit codes can be overridden per tool.
    """

    def __init__(self):
        self.calls = []
        self.returncodes = {}
        self.stderr = {}

    def fail(self, tool, returncode=1, stderr=''):
        self.returncodes[tool] = returncode
        self.stderr[tool] = stderr

    def tools_called(self):
        return [os.path.basename(args[0]) for args in self.calls]

    def __call__(self, args, stdout=None, stderr=None, text=None):
        self.calls.append(list(args))
        tool = os.path.basename(args[0])
        returncode = self.returncodes.get(tool, 0)

        if tool == 'mysqldump' and hasattr(stdout, 'write'):
            stdout.write('-- MariaDB dump\n')
            if returncode == 0:
                stdout.write('CREATE DATABASE test;\n')
        elif tool == 'gzip' and returncode == 0:
            path = args[-1]
            os.rename(path, path + '.gz')

        return subprocess.CompletedProcess(args, returncode, stdout='', stderr=self.stderr.get(tool, ''))


@pytest.fixture
def fake_tools():
    """
    Patch subprocess.run in the command wrapper with FakeTools.
    """
    tools = FakeTools()
    with patch('dbdumper.backup.commands.subprocess.run', side_effect=tools):
        yield tools


@pytest.fixture
def make_artifact(backup_dir, monkeypatch):
    """
    Factory creating a file in the backup directory with a given creation time.

    The creation time is written as mtime, and the sweeper's creation-time
    lookup is pointed at mtime so platforms reporting st_birthtime see the
    same age.
    """
    monkeypatch.setattr(
        'dbdumper.backup.retention.file_created_at',
        lambda path: datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)
    )

    def _make(filename, created=None):
        path = backup_dir / filename
        path.write_bytes(b'\x1f\x8b compressed dump')
        if created is not None:
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            timestamp = created.timestamp()
            os.utime(path, (timestamp, timestamp))
        return path

    return _make
