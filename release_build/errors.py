"""
Exceptions raised by the release build.

Every failure that should abort the build derives from BuildError so the
CLI can report it and exit with a non-zero status.
"""


class BuildError(Exception):
    """Base class for fatal build failures."""
    pass


class FormatError(BuildError):
    """Raised when a git describe string does not have the expected shape."""
    pass


class ToolError(BuildError):
    """
    Raised when an external tool cannot be found or exits with a failure.

    Carries the command, its return code and any captured output so the
    failure can be reported without re-running the tool.
    """

    def __init__(self, message: str, command=None, returncode: int = None, output: str = ''):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.output = output or ''


class TargetError(BuildError):
    """Raised for an invalid target graph or an unknown target name."""
    pass


class ReleaseError(BuildError):
    """Raised when an expected build artifact is missing."""
    pass


class PublishError(BuildError):
    """Raised when a package cannot be published to a feed."""
    pass
