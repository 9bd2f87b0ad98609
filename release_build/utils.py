"""
Utility functions for the release build.

File matching with include/exclude patterns, directory helpers and
small formatting helpers shared by the build steps.
"""

import glob
import os
import shutil
from typing import Iterable, List, Optional


def find_files(root: str, include: Iterable[str], exclude: Optional[Iterable[str]] = None) -> List[str]:
    """
    Find files below root matching any include pattern and no exclude pattern.

    Patterns are glob patterns relative to root and support ``**``.

    Args:
        root: Directory the patterns are relative to
        include: Glob patterns selecting files
        exclude: Glob patterns removing files from the selection

    Returns:
        List[str]: Sorted absolute paths, without duplicates
    """
    if isinstance(include, str):
        include = [include]
    if isinstance(exclude, str):
        exclude = [exclude]

    matched = set()
    for pattern in include:
        for path in glob.glob(os.path.join(root, pattern), recursive=True):
            if os.path.isfile(path):
                matched.add(os.path.abspath(path))

    for pattern in exclude or []:
        for path in glob.glob(os.path.join(root, pattern), recursive=True):
            matched.discard(os.path.abspath(path))

    return sorted(matched)


def clean_dir(path: str) -> None:
    """
    Make sure path exists and is empty.

    Args:
        path: Directory to create or empty
    """
    if os.path.isdir(path):
        for entry in os.listdir(path):
            entry_path = os.path.join(path, entry)
            if os.path.isdir(entry_path) and not os.path.islink(entry_path):
                shutil.rmtree(entry_path)
            else:
                os.remove(entry_path)
    else:
        os.makedirs(path, exist_ok=True)


def resolve_path(root: str, path: str) -> str:
    """Return path unchanged if absolute, otherwise joined onto root."""
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(root, path))


def mask_secret(value: str) -> str:
    """Mask a secret for logging, keeping only whether it is set."""
    if not value:
        return '(not set)'
    return f'{"*" * 10}...{"*" * 10}'


def format_duration(seconds: float) -> str:
    """
    Format a duration for the build summary.

    Args:
        seconds: Elapsed time in seconds

    Returns:
        str: e.g. "0.42s", "1m 05s"
    """
    if seconds < 60:
        return f'{seconds:.2f}s'
    minutes, secs = divmod(int(round(seconds)), 60)
    return f'{minutes}m {secs:02d}s'
