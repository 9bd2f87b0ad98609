"""
Entry point for python -m release_build

Allows running the package as a module:
    python -m release_build CompleteBuild
"""

import sys

from .cli import main

if __name__ == '__main__':
    sys.exit(main())
