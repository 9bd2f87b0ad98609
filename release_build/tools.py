"""
External tool invocation.

Every compiler, test runner, packager and git call goes through
ToolRunner so failures surface as ToolError and dry runs can log the
commands without executing anything.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger

from .errors import ToolError


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a finished tool invocation."""

    command: List[str]
    returncode: int
    output: str = ''


def find_tool(name: str, configured: Optional[str] = None) -> str:
    """
    Locate an external tool.

    Args:
        name: Executable name to search on PATH (e.g. "msbuild")
        configured: Explicit path from configuration, wins when set

    Returns:
        str: Path to the executable

    Raises:
        ToolError: If the tool cannot be found
    """
    if configured:
        if os.path.isfile(configured) or shutil.which(configured):
            return configured
        raise ToolError(f'{name} not found at configured path: {configured}')

    path = shutil.which(name)
    if not path:
        raise ToolError(f'{name} not found. {name} must be installed and available in PATH.')
    return path


def format_command(command: Sequence[str]) -> str:
    """Render a command line for logging, quoting arguments with spaces."""
    return ' '.join(f'"{arg}"' if ' ' in arg else arg for arg in command)


class ToolRunner:
    """
    Run external tools synchronously, failing fast on non-zero exit codes.

    In dry-run mode commands are only logged. Every command, executed or
    not, is appended to ``history``.
    """

    def __init__(self, dry_run: bool = False, secrets: Optional[Sequence[str]] = None):
        self.dry_run = dry_run
        self.history: List[List[str]] = []
        self._secrets = [s for s in (secrets or []) if s]

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, '*' * 10)
        return text

    def run(self, command: Sequence[str], cwd: Optional[str] = None, capture: bool = False) -> ToolResult:
        """
        Run a command and wait for it to finish.

        Args:
            command: Executable followed by its arguments
            cwd: Working directory for the process
            capture: Capture stdout/stderr instead of streaming to the console

        Returns:
            ToolResult: Return code and captured output (empty when not captured)

        Raises:
            ToolError: If the executable is missing or exits with a non-zero code
        """
        command = [str(arg) for arg in command]
        self.history.append(command)
        display = self._redact(format_command(command))

        if self.dry_run:
            logger.info(f'[dry-run] {display}')
            return ToolResult(command=command, returncode=0)

        logger.debug(f'Running: {display}' + (f' (in {cwd})' if cwd else ''))

        try:
            if capture:
                proc = subprocess.run(command, cwd=cwd, capture_output=True, text=True,
                                      encoding='utf-8', errors='replace')
            else:
                proc = subprocess.run(command, cwd=cwd)
        except FileNotFoundError as e:
            raise ToolError(f'Cannot execute {command[0]}: {e}', command=command) from e

        output = (proc.stdout or '') if capture else ''
        if proc.returncode != 0:
            details = (proc.stderr or proc.stdout or '').strip() if capture else ''
            message = f'Command failed with exit code {proc.returncode}: {display}'
            if details:
                message += f'\n\n{self._redact(details)}'
            raise ToolError(message, command=command, returncode=proc.returncode, output=details)

        return ToolResult(command=command, returncode=proc.returncode, output=output)

    def locate(self, name: str, configured: Optional[str] = None) -> str:
        """
        Locate a tool for this runner.

        A dry run does not need the tool to be installed, so the configured
        path or bare name is used when the lookup fails.
        """
        try:
            return find_tool(name, configured)
        except ToolError:
            if self.dry_run:
                return configured or name
            raise
