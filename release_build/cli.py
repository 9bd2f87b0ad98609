"""
Command-line interface for the release build.

Main entry point that orchestrates all components: configuration,
version resolution, the target graph and error reporting.
"""

import argparse
import signal
import sys
from typing import List, Optional

from loguru import logger
from rich.console import Console

from .config import VALID_LOG_LEVELS, load_config
from .errors import BuildError
from .logging_config import setup_logging
from .pipeline import DEFAULT_TARGET, BuildContext, create_build_graph
from .tools import ToolRunner
from .versioning import resolve_build_version

# Shared console for coordinated logging and summary output
console = Console()


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog='release-build',
        description='Build, test, package and publish the AutoFixture libraries'
    )

    parser.add_argument('target', nargs='?', default=DEFAULT_TARGET,
                        help=f'Target to run (default: {DEFAULT_TARGET})')
    parser.add_argument('--list-targets', action='store_true', help='List build targets and exit')

    # Versioning
    parser.add_argument('--build-version', help='"git" to derive versions from tags, or an explicit assembly version (default: git)')
    parser.add_argument('--build-file-version', help='Explicit file version (default: the assembly version)')
    parser.add_argument('--build-nuget-version', help='Explicit NuGet package version (default: the assembly version)')
    parser.add_argument('--build-number', type=int, help='Build counter used as the last file version component (default: 0)')

    # Compilation and tests
    parser.add_argument('--configuration', help='Configuration whose test assemblies are run (default: Release)')
    parser.add_argument('--parallelize-tests', action='store_true', default=None, help='Run xUnit test collections in parallel')
    parser.add_argument('--max-parallel-threads', type=int, help='Maximum xUnit worker threads, 0 for the runner default (default: 0)')

    # Publishing
    parser.add_argument('--nuget-prerelease-key', help='API key for the pre-release (MyGet) feed')
    parser.add_argument('--nuget-release-key', help='API key for nuget.org')
    parser.add_argument('--publish-timeout', type=int, help='Upload timeout in seconds (default: 300)')

    # Layout, relative paths are resolved against the root
    parser.add_argument('--root-dir', help='Repository root (default: current directory)')
    parser.add_argument('--solution-glob', help='Solutions to build (default: Src/AutoFixture.AllProjects.sln)')
    parser.add_argument('--sign-key-path', help='Strong-name key file (default: Src/AutoFixture.snk)')
    parser.add_argument('--release-folder', help='Release folder the packages are built from (default: Release)')
    parser.add_argument('--nuget-output-folder', help='NuGet package output folder (default: NuGetPackages)')
    parser.add_argument('--nunit-tools-folder', help='NUnit 2 runner tools folder (default: Packages/NUnit.Runners.2.6.2/tools)')

    # External tools, looked up on PATH when not given
    parser.add_argument('--git-path', help='Path to git')
    parser.add_argument('--msbuild-path', help='Path to MSBuild')
    parser.add_argument('--nuget-path', help='Path to nuget.exe')
    parser.add_argument('--xunit-path', help='Path to the xUnit 2 console runner')
    parser.add_argument('--nunit2-path', help='Path to the NUnit 2 console runner')
    parser.add_argument('--nunit3-path', help='Path to the NUnit 3 console runner')

    parser.add_argument('--dry-run', action='store_true', default=None, help='Log commands without running them')
    parser.add_argument('--log-level', choices=VALID_LOG_LEVELS + [level.lower() for level in VALID_LOG_LEVELS],
                        help='Logging level (default: INFO)')

    return parser.parse_args(argv)


def signal_handler(signum, frame):
    """Handle interrupt signals by aborting the build."""
    logger.warning('Received interrupt signal, aborting build...')
    console.show_cursor(True)
    sys.exit(130)


def list_targets() -> None:
    """Print the build targets and their dependencies."""
    console.print(create_build_graph().describe())


def run_build(target: str, config) -> int:
    """
    Resolve versions and run a target.

    Returns:
        int: Process exit code
    """
    runner = ToolRunner(dry_run=config.dry_run,
                        secrets=[config.nuget_release_key, config.nuget_prerelease_key])
    graph = create_build_graph()

    try:
        # Fail on an unknown target before doing any work
        graph.get(target)
        version = resolve_build_version(config, runner)
        logger.info(f'Assembly version: {version.assembly_version}, '
                    f'File version: {version.file_version}, '
                    f'NuGet version: {version.package_version}')
        context = BuildContext(config=config, version=version, runner=runner)
        graph.run(target, context, console=console)
    except (BuildError, OSError) as e:
        # OSError covers file system failures of the target actions
        logger.error(f'❌ Build failed: {e}')
        return 1

    logger.info(f'✅ Target {target} completed successfully')
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    setup_logging(console=console)

    args = parse_arguments(argv)
    if args.log_level:
        setup_logging(args.log_level.upper(), console=console)

    if args.list_targets:
        list_targets()
        return 0

    signal.signal(signal.SIGINT, signal_handler)
    # SIGTERM doesn't exist on Windows
    if hasattr(signal, 'SIGTERM'):
        signal.signal(signal.SIGTERM, signal_handler)

    config = load_config(args)
    if config is None:
        return 1

    setup_logging(config.log_level, console=console)

    return run_build(args.target, config)


if __name__ == '__main__':
    sys.exit(main())
