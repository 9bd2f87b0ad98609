"""Version file - managed by setuptools-scm.

This file serves as a placeholder for development and is overwritten during builds.
The hardcoded values below are fallbacks for development when running from source.
"""

from typing import Tuple

# Placeholder values - overwritten by setuptools-scm during package build
# Matches fallback_version in pyproject.toml
__version__ = "0.0.0+unknown"
__version_tuple__: Tuple[int, int, int] = (0, 0, 0)
