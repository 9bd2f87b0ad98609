"""
MSBuild invocation.

Cleans and rebuilds the solutions with the resolved versions and the
strong-name key passed as MSBuild properties.
"""

from typing import List, Tuple

from loguru import logger

from .config import Config
from .errors import BuildError
from .tools import ToolRunner
from .utils import find_files, resolve_path
from .versioning import ResolvedVersion


def msbuild_properties(config: Config, version: ResolvedVersion, configuration: str) -> List[Tuple[str, str]]:
    """
    Build the MSBuild property list for a configuration.

    The property is deliberately not called "Version": MSBuild consumes it
    in other tasks such as NuGet restore.
    """
    return [
        ('Configuration', configuration),
        ('AssemblyOriginatorKeyFile', resolve_path(config.root_dir, config.sign_key_path)),
        ('AssemblyVersion', version.assembly_version),
        ('FileVersion', version.file_version),
        ('InformationalVersion', version.package_version),
    ]


def msbuild_command(msbuild_path: str, solution: str, target: str,
                    properties: List[Tuple[str, str]]) -> List[str]:
    """Compose the MSBuild command line for one solution."""
    command = [msbuild_path, solution, f'/t:{target}']
    command.extend(f'/p:{key}={value}' for key, value in properties)
    command.extend(['/m', '/nologo', '/v:minimal'])
    return command


def build_solutions(runner: ToolRunner, config: Config, version: ResolvedVersion,
                    target: str, configuration: str) -> int:
    """
    Run an MSBuild target against every configured solution.

    Args:
        runner: Tool runner
        config: Build configuration
        version: Resolved versions
        target: MSBuild target, e.g. "Clean" or "Rebuild"
        configuration: Build configuration, e.g. "Verify" or "Release"

    Returns:
        int: Number of solutions built

    Raises:
        BuildError: If no solution matches the configured pattern
        ToolError: If MSBuild fails
    """
    solutions = find_files(config.root_dir, config.solution_glob)
    if not solutions:
        raise BuildError(f'No solution matches {config.solution_glob} in {config.root_dir}')

    msbuild_path = runner.locate('msbuild', config.msbuild_path)
    properties = msbuild_properties(config, version, configuration)

    for solution in solutions:
        logger.info(f'MSBuild {target} ({configuration}): {solution}')
        runner.run(msbuild_command(msbuild_path, solution, target, properties), cwd=config.root_dir)

    return len(solutions)


def clean(runner: ToolRunner, config: Config, version: ResolvedVersion, configuration: str) -> int:
    return build_solutions(runner, config, version, 'Clean', configuration)


def rebuild(runner: ToolRunner, config: Config, version: ResolvedVersion, configuration: str) -> int:
    return build_solutions(runner, config, version, 'Rebuild', configuration)
