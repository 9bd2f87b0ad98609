"""
Configuration management for the release build.

Handles build parameter loading from CLI arguments, environment variables
and a .env file, validation, and provides a centralized configuration
object for every build step.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from dotenv import load_dotenv
from loguru import logger

from .utils import mask_secret

# Load environment variables from .env file
load_dotenv()

GIT_VERSION_MODE = 'git'
VALID_LOG_LEVELS = ['DEBUG', 'VERBOSE', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

EnvKey = Union[str, Tuple[str, ...]]


def _read_env(env_key: EnvKey) -> str:
    """Return the first non-empty environment value among the given keys."""
    keys = (env_key,) if isinstance(env_key, str) else env_key
    for key in keys:
        value = os.environ.get(key, '')
        if value.strip():
            return value
    return ''


def get_config_value(cli_args, field_name: str, env_key: EnvKey, default, value_type: type = str):
    """
    Get configuration value with proper precedence: CLI args > env vars > defaults.

    Args:
        cli_args: CLI arguments object or None
        field_name: Name of the CLI argument field
        env_key: Environment variable key, or a tuple of alternative keys
        default: Default value if neither CLI nor env var is set
        value_type: Type to convert the value to (str, int, bool)

    Returns:
        The configuration value converted to the specified type
    """
    cli_value = getattr(cli_args, field_name, None) if cli_args else None
    if cli_value is not None:
        return cli_value

    env_value = _read_env(env_key)

    if value_type == bool:
        if env_value.strip().lower() in ('true', '1', 'yes'):
            return True
        elif env_value.strip().lower() in ('false', '0', 'no'):
            return False
        return default

    if not env_value:
        return default

    try:
        return value_type(env_value.strip())
    except (ValueError, TypeError):
        logger.warning(f'Ignoring invalid value for {env_key}: {env_value!r} (using {default!r})')
        return default


def get_config_value_str(cli_args, field_name: str, env_key: EnvKey, default: str = '') -> str:
    """Get string configuration value."""
    return get_config_value(cli_args, field_name, env_key, default, str)


def get_config_value_int(cli_args, field_name: str, env_key: EnvKey, default: int = 0) -> int:
    """Get integer configuration value."""
    return get_config_value(cli_args, field_name, env_key, default, int)


def get_config_value_bool(cli_args, field_name: str, env_key: EnvKey, default: bool = False) -> bool:
    """Get boolean configuration value."""
    return get_config_value(cli_args, field_name, env_key, default, bool)


@dataclass
class Config:
    """Configuration object containing all build parameters."""

    # Versioning
    build_version: str
    build_file_version: str
    build_nuget_version: str
    build_number: int

    # Compilation and tests
    configuration: str
    parallelize_tests: bool
    max_parallel_threads: int

    # Publishing
    nuget_prerelease_key: str
    nuget_release_key: str
    publish_timeout: int

    # Layout, relative paths are resolved against root_dir
    root_dir: str
    solution_glob: str
    sign_key_path: str
    release_folder: str
    nuget_output_folder: str
    nunit_tools_folder: str

    # External tools, looked up on PATH when empty
    git_path: str
    msbuild_path: str
    nuget_path: str
    xunit_path: str
    nunit2_path: str
    nunit3_path: str

    # Behaviour
    dry_run: bool
    log_level: str

    @property
    def uses_git_version(self) -> bool:
        """Whether versions are derived from git tags. Only the exact value "git" selects this."""
        return self.build_version == GIT_VERSION_MODE


def _validate_numbers(build_number: int, max_parallel_threads: int, publish_timeout: int,
                      validation_errors: list) -> None:
    """
    Validate numeric build parameters.

    Args:
        build_number: External build counter
        max_parallel_threads: xUnit worker thread limit (0 = runner default)
        publish_timeout: HTTP timeout for package uploads in seconds
        validation_errors: List to append validation errors
    """
    if build_number < 0:
        validation_errors.append(f'BuildNumber must be 0 or greater (got: {build_number})')
    if max_parallel_threads < 0:
        validation_errors.append(f'MaxParallelThreads must be 0 or greater (got: {max_parallel_threads})')
    if publish_timeout <= 0:
        validation_errors.append(f'PUBLISH_TIMEOUT must be greater than 0 (got: {publish_timeout})')


def _validate_paths(root_dir: str, validation_errors: list) -> None:
    """
    Validate the repository root used to resolve every relative path.

    Args:
        root_dir: Repository root directory
        validation_errors: List to append validation errors
    """
    if not os.path.isdir(root_dir):
        validation_errors.append(f'BUILD_ROOT ({root_dir}) does not exist or is not a directory')


def load_config(cli_args=None) -> Optional[Config]:
    """
    Load and validate configuration from CLI arguments and environment variables.
    CLI arguments take precedence over environment variables.

    Environment variable names follow the build parameter names used by the
    CI servers (BuildVersion, BuildNumber, ...). A variable named ``Version``
    is deliberately never read because MSBuild consumes it and breaks tasks
    such as NuGet restore.

    Args:
        cli_args: Parsed CLI arguments or None

    Returns:
        Config: Validated configuration object, or None if validation failed
    """
    build_version = get_config_value_str(cli_args, 'build_version', 'BuildVersion', GIT_VERSION_MODE)
    build_file_version = get_config_value_str(cli_args, 'build_file_version', 'BuildFileVersion', '')
    build_nuget_version = get_config_value_str(cli_args, 'build_nuget_version', 'BuildNugetVersion', '')
    build_number = get_config_value_int(cli_args, 'build_number', 'BuildNumber', 0)

    configuration = get_config_value_str(cli_args, 'configuration', 'Configuration', 'Release')
    parallelize_tests = get_config_value_bool(cli_args, 'parallelize_tests', 'ParallelizeTests', False)
    max_parallel_threads = get_config_value_int(cli_args, 'max_parallel_threads', 'MaxParallelThreads', 0)

    nuget_prerelease_key = get_config_value_str(cli_args, 'nuget_prerelease_key', 'NuGetPreReleaseKey', '')
    nuget_release_key = get_config_value_str(cli_args, 'nuget_release_key', 'NuGetReleaseKey', '')
    publish_timeout = get_config_value_int(cli_args, 'publish_timeout', 'PUBLISH_TIMEOUT', 300)

    root_dir = os.path.abspath(get_config_value_str(cli_args, 'root_dir', 'BUILD_ROOT', os.getcwd()))
    solution_glob = get_config_value_str(cli_args, 'solution_glob', 'BUILD_SOLUTIONS', 'Src/AutoFixture.AllProjects.sln')
    sign_key_path = get_config_value_str(cli_args, 'sign_key_path', 'BUILD_SIGN_KEY', 'Src/AutoFixture.snk')
    release_folder = get_config_value_str(cli_args, 'release_folder', 'BUILD_RELEASE_FOLDER', 'Release')
    nuget_output_folder = get_config_value_str(cli_args, 'nuget_output_folder', 'BUILD_NUGET_OUTPUT', 'NuGetPackages')
    nunit_tools_folder = get_config_value_str(cli_args, 'nunit_tools_folder', 'BUILD_NUNIT_TOOLS',
                                              'Packages/NUnit.Runners.2.6.2/tools')

    git_path = get_config_value_str(cli_args, 'git_path', 'GIT_PATH', '')
    msbuild_path = get_config_value_str(cli_args, 'msbuild_path', 'MSBUILD_PATH', '')
    nuget_path = get_config_value_str(cli_args, 'nuget_path', 'NUGET_PATH', '')
    xunit_path = get_config_value_str(cli_args, 'xunit_path', 'XUNIT_PATH', '')
    nunit2_path = get_config_value_str(cli_args, 'nunit2_path', 'NUNIT2_PATH', '')
    nunit3_path = get_config_value_str(cli_args, 'nunit3_path', 'NUNIT3_PATH', '')

    dry_run = get_config_value_bool(cli_args, 'dry_run', 'DRY_RUN', False)
    log_level = get_config_value_str(cli_args, 'log_level', 'LOG_LEVEL', 'INFO').upper()

    validation_errors = []

    if log_level not in VALID_LOG_LEVELS:
        validation_errors.append(f'LOG_LEVEL must be one of {VALID_LOG_LEVELS} (got: {log_level})')

    if not build_version.strip():
        validation_errors.append(f'BuildVersion must be "{GIT_VERSION_MODE}" or an explicit version string')

    _validate_numbers(build_number, max_parallel_threads, publish_timeout, validation_errors)
    _validate_paths(root_dir, validation_errors)

    if validation_errors:
        logger.error('❌ Configuration Error:')
        for i, error_msg in enumerate(validation_errors, 1):
            logger.error(f'   {i}. {error_msg}')
        return None

    config = Config(
        build_version=build_version.strip(),
        build_file_version=build_file_version.strip(),
        build_nuget_version=build_nuget_version.strip(),
        build_number=build_number,
        configuration=configuration,
        parallelize_tests=parallelize_tests,
        max_parallel_threads=max_parallel_threads,
        nuget_prerelease_key=nuget_prerelease_key,
        nuget_release_key=nuget_release_key,
        publish_timeout=publish_timeout,
        root_dir=root_dir,
        solution_glob=solution_glob,
        sign_key_path=sign_key_path,
        release_folder=release_folder,
        nuget_output_folder=nuget_output_folder,
        nunit_tools_folder=nunit_tools_folder,
        git_path=git_path,
        msbuild_path=msbuild_path,
        nuget_path=nuget_path,
        xunit_path=xunit_path,
        nunit2_path=nunit2_path,
        nunit3_path=nunit3_path,
        dry_run=dry_run,
        log_level=log_level,
    )

    logger.debug(f'BuildVersion = {config.build_version}')
    logger.debug(f'BuildFileVersion = {config.build_file_version or "(assembly version)"}')
    logger.debug(f'BuildNugetVersion = {config.build_nuget_version or "(assembly version)"}')
    logger.debug(f'BuildNumber = {config.build_number}')
    logger.debug(f'Configuration = {config.configuration}')
    logger.debug(f'ParallelizeTests = {config.parallelize_tests}')
    logger.debug(f'MaxParallelThreads = {config.max_parallel_threads}')
    logger.debug(f'NuGetPreReleaseKey = {mask_secret(config.nuget_prerelease_key)}')
    logger.debug(f'NuGetReleaseKey = {mask_secret(config.nuget_release_key)}')
    logger.debug(f'BUILD_ROOT = {config.root_dir}')
    logger.debug(f'DRY_RUN = {config.dry_run}')

    return config
