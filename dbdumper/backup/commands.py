"""
Thin wrapper around subprocess for the external tools (mysqldump, gzip, aws).

Commands are always executed from an argument vector, never through a shell,
so credentials and filenames are passed through untouched.
"""

import re
import logging
import subprocess
from typing import List, Optional, IO, Iterable


logger = logging.getLogger(__name__)

MASK = '******'
SECRET_OPTIONS = ('--password=',)


class CommandError(Exception):
    """Raised when an external command fails or cannot be started."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def mask_secrets(args: List[str]) -> str:
    """
    Render a command line for logging with secret option values replaced.

    Only the value of a secret option (e.g. --password=...) is masked; the
    rest of the command line is left readable.

    Args:
        args: Command argument vector

    Returns:
        Printable command string
    """
    rendered = []
    for arg in args:
        for option in SECRET_OPTIONS:
            if arg.startswith(option):
                arg = option + MASK
                break
        rendered.append(arg)
    return ' '.join(rendered)


def mask_output(text: str, secrets: Iterable[str] = ()) -> str:
    """
    Mask secrets appearing as whole whitespace-separated tokens in tool output.

    Substrings inside other words are left alone, so a short password does
    not garble the diagnostics.
    """
    for secret in secrets:
        if secret:
            text = re.sub(r'(?<!\S)' + re.escape(secret) + r'(?!\S)', MASK, text)
    return text


def run_command(
    args: List[str],
    stdout: Optional[IO] = None,
    secrets: Iterable[str] = ()
) -> subprocess.CompletedProcess:
    """
    Run an external command and wait for it to exit.

    Args:
        args: Command argument vector
        stdout: Optional open file to receive the command's standard output
        secrets: Values to mask in log output and error messages

    Returns:
        CompletedProcess of the finished command

    Raises:
        CommandError: If the executable is missing or exits non-zero
    """
    secrets = list(secrets)
    display = mask_secrets(args)
    logger.debug(f"Running: {display}")

    try:
        result = subprocess.run(
            args,
            stdout=stdout if stdout is not None else subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True
        )
    except FileNotFoundError:
        raise CommandError(f"Executable not found: {args[0]}", returncode=127)
    except OSError as e:
        raise CommandError(f"Failed to start {args[0]}: {e}")

    if result.returncode != 0:
        stderr = mask_output((result.stderr or '').strip(), secrets)
        if stderr:
            logger.error(f"{args[0]} stderr: {stderr}")
        raise CommandError(
            f"Command failed with exit status {result.returncode}: {display}",
            returncode=result.returncode,
            stderr=stderr
        )

    return result
