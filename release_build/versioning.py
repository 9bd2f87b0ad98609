"""
Version resolution from git tags.

Turns the output of ``git describe --tags --long --match=v*`` and a build
counter into the three versions stamped on build outputs:

- assembly version: MAJOR.MINOR.PATCH.0
- file version: MAJOR.MINOR.PATCH.BUILDNUMBER
- NuGet package version, see package_version()

Examples of describe strings:
    regular:     v3.50.2-288-g64fd5c5b
    pre-release: v3.50.2-alpha1-288-g64fd5c5b
"""

import re
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from .errors import FormatError
from .tools import ToolRunner, find_tool

DESCRIBE_ARGS = ['describe', '--tags', '--long', '--match=v*']

_DESCRIBE_RE = re.compile(
    r'^v(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)'
    r'(?P<prerelease>-\w+\d*)?'
    r'-(?P<commits>\d+)-g(?P<sha>[a-z0-9]+)$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class VersionTag:
    """Nearest version tag and distance parsed from a describe string."""

    major: int
    minor: int
    patch: int
    prerelease: str
    commits_since_tag: int
    commit_sha: str


@dataclass(frozen=True)
class ResolvedVersion:
    """Versions used by every downstream build step."""

    assembly_version: str
    file_version: str
    package_version: str


def parse_describe(describe: str) -> VersionTag:
    """
    Parse a git describe string.

    Args:
        describe: Output like "v3.50.2-288-g64fd5c5b" or "v3.50.1-rc1-35-gabc123"

    Returns:
        VersionTag: Parsed tag components

    Raises:
        FormatError: If the string does not match vMAJOR.MINOR.PATCH[-PRE]-N-gSHA
    """
    match = _DESCRIBE_RE.match(describe.strip())
    if not match:
        raise FormatError(f'Invalid git describe output: {describe!r} '
                          f'(expected vMAJOR.MINOR.PATCH[-PRERELEASE]-COMMITS-gSHA)')

    return VersionTag(
        major=int(match.group('major')),
        minor=int(match.group('minor')),
        patch=int(match.group('patch')),
        prerelease=match.group('prerelease') or '',
        commits_since_tag=int(match.group('commits')),
        commit_sha=match.group('sha'),
    )


def package_version(tag: VersionTag) -> str:
    """
    Compute the NuGet package version for a tag.

    On the tag itself the tag version is used as-is. Past the tag a build
    suffix is appended. Without a pre-release suffix on the tag the patch
    number is speculatively increased and "pre" is used, so it reads as a
    pre-release of a version that does not exist yet. With a pre-release
    suffix the patch is kept and "build" is used.

    NuGet doesn't fully support SemVer 2.0 and compares pre-release labels
    as plain strings, so the commit count is padded to 4 digits to keep
    lexical order equal to numeric order.

    Examples: 3.50.3-pre0001, 3.50.3-pre0215, 3.50.1-rc1-build0003
    """
    if tag.commits_since_tag == 0:
        return f'{tag.major}.{tag.minor}.{tag.patch}{tag.prerelease}'
    if not tag.prerelease:
        return f'{tag.major}.{tag.minor}.{tag.patch + 1}-pre{tag.commits_since_tag:04d}'
    return f'{tag.major}.{tag.minor}.{tag.patch}{tag.prerelease}-build{tag.commits_since_tag:04d}'


def resolve(describe: str, build_number: int = 0) -> ResolvedVersion:
    """
    Resolve build versions from a describe string.

    Args:
        describe: git describe output
        build_number: External build counter, used as the 4th file version component

    Returns:
        ResolvedVersion: Assembly, file and package versions

    Raises:
        FormatError: If the describe string is malformed
    """
    tag = parse_describe(describe)
    return ResolvedVersion(
        assembly_version=f'{tag.major}.{tag.minor}.{tag.patch}.0',
        file_version=f'{tag.major}.{tag.minor}.{tag.patch}.{build_number}',
        package_version=package_version(tag),
    )


def explicit_version(assembly_version: str, file_version: Optional[str] = None,
                     nuget_version: Optional[str] = None) -> ResolvedVersion:
    """
    Use explicitly supplied versions without parsing or validation.

    File and package versions fall back to the assembly version.
    """
    return ResolvedVersion(
        assembly_version=assembly_version,
        file_version=file_version or assembly_version,
        package_version=nuget_version or assembly_version,
    )


def describe_head(runner: ToolRunner, git_path: str = 'git', cwd: Optional[str] = None) -> str:
    """
    Describe HEAD relative to the nearest v* tag.

    Runs even in dry-run mode since it only reads the repository.

    Raises:
        ToolError: If git fails (e.g. no matching tag)
    """
    reader = ToolRunner(dry_run=False) if runner.dry_run else runner
    result = reader.run([git_path] + DESCRIBE_ARGS, cwd=cwd, capture=True)
    return result.output.strip()


def calculate_version_from_git(runner: ToolRunner, build_number: int = 0,
                               git_path: str = 'git', cwd: Optional[str] = None) -> ResolvedVersion:
    """Resolve versions from the tags of the repository at cwd."""
    describe = describe_head(runner, git_path=git_path, cwd=cwd)
    logger.debug(f'git describe: {describe}')
    return resolve(describe, build_number)


def resolve_build_version(config, runner: ToolRunner) -> ResolvedVersion:
    """
    Resolve the versions for this build from configuration.

    BuildVersion "git" (the default) derives versions from tags; any other
    value is taken as the assembly version, optionally with separate
    BuildFileVersion and BuildNugetVersion overrides.
    """
    if config.uses_git_version:
        git_path = find_tool('git', config.git_path)
        return calculate_version_from_git(runner, config.build_number, git_path=git_path, cwd=config.root_dir)

    logger.debug('Using explicit version parameters, skipping git describe')
    return explicit_version(config.build_version, config.build_file_version, config.build_nuget_version)
