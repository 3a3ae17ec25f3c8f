"""Detection of the external migration CLI."""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Tuple

from loguru import logger


CLI_PATH_ENV = 'REPO_MIGRATE_CLI_PATH'
DEFAULT_CLI_NAME = 'gh'
KNOWN_CLI_PATHS = ('/usr/local/bin/gh', '/usr/bin/gh', DEFAULT_CLI_NAME)
PROBE_TIMEOUT = 10
MAX_VERSION_LENGTH = 100

# Characters with special meaning to a shell
DANGEROUS_CHARS = (
    ';', '&', '|', '$', '`', '(', ')', '{', '}', '<', '>',
    '\n', '\r', '\\', "'", '"', '*', '?', '[', ']', '!', '~',
)


def validate_cli_path(cli_path: str) -> str:
    """Validate that a CLI path is safe to execute.

    Args:
        cli_path: Absolute path, relative path or bare command name

    Returns:
        Normalized absolute path to the executable

    Raises:
        ValueError: If the path is empty, contains shell metacharacters, or
            does not resolve to an executable file
    """
    if not cli_path:
        raise ValueError('CLI path cannot be empty')

    for char in DANGEROUS_CHARS:
        if char in cli_path:
            raise ValueError(f'CLI path contains invalid character: {char!r}')

    clean_path = os.path.normpath(cli_path)
    path = Path(clean_path)

    if path.is_absolute():
        if not path.exists():
            raise ValueError(f'CLI path does not exist: {clean_path}')
        if path.is_dir():
            raise ValueError(f'CLI path is a directory, not an executable: {clean_path}')
        if not os.access(clean_path, os.X_OK):
            raise ValueError(f'CLI path is not executable: {clean_path}')
        return clean_path

    resolved = shutil.which(clean_path)
    if resolved is None:
        raise ValueError(f'CLI not found in PATH: {clean_path}')
    return resolved


def _default_cli_path() -> str:
    env_path = os.getenv(CLI_PATH_ENV)
    if env_path:
        return env_path
    for candidate in KNOWN_CLI_PATHS:
        if shutil.which(candidate):
            return candidate
    return DEFAULT_CLI_NAME


def _run_version(path: str, arg: str) -> Optional[str]:
    try:
        completed = subprocess.run(
            [path, arg],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            timeout=PROBE_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f'{path} {arg} failed: {e}')
        return None
    if completed.returncode != 0:
        return None
    return completed.stdout.decode('utf-8', errors='replace')


def check_cli_available(cli_path: Optional[str] = None) -> Tuple[bool, str, Optional[str]]:
    """Check that the migration CLI is installed and runs.

    Args:
        cli_path: Explicit path; falls back to the environment and
            well-known locations

    Returns:
        Tuple of (installed, version, error)
    """
    cli_path = cli_path or _default_cli_path()

    try:
        validated = validate_cli_path(cli_path)
    except ValueError as e:
        return False, '', f'invalid CLI path: {e}'

    output = _run_version(validated, '--version')
    if output is None:
        output = _run_version(validated, 'version')
        if output is None:
            return False, '', f'failed to execute CLI: {validated}'

    version = output.strip() or 'unknown'
    version = version.splitlines()[0]
    if len(version) > MAX_VERSION_LENGTH:
        version = version[:MAX_VERSION_LENGTH] + '...'

    logger.debug(f'Found migration CLI {validated}: {version}')
    return True, version, None
