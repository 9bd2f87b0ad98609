"""
The AutoFixture build definition.

Declares every build target and the order between them. Target names
match the ones used by the CI servers, e.g. ``release-build CompleteBuild``
or ``release-build PublishNuGetPreRelease``.
"""

from dataclasses import dataclass

from loguru import logger

from . import msbuild, nuget, release, test_runners
from .assembly_info import patch_assembly_infos
from .config import Config
from .targets import TargetGraph
from .tools import ToolRunner
from .utils import find_files, resolve_path
from .versioning import ResolvedVersion

DEFAULT_TARGET = 'CompleteBuild'
ASSEMBLY_INFO_PATTERN = 'Src/*/Properties/AssemblyInfo.*'


@dataclass
class BuildContext:
    """State shared by all target actions of one build invocation."""

    config: Config
    version: ResolvedVersion
    runner: ToolRunner


def patch_assembly_versions(ctx: BuildContext) -> None:
    logger.info(f'Patching assembly versions. Assembly version: {ctx.version.assembly_version}, '
                f'File version: {ctx.version.file_version}, NuGet version: {ctx.version.package_version}')
    files = find_files(ctx.config.root_dir, ASSEMBLY_INFO_PATTERN)
    if ctx.runner.dry_run:
        logger.info(f'[dry-run] would patch {len(files)} AssemblyInfo file(s)')
        return
    changed = patch_assembly_infos(files, ctx.version)
    logger.info(f'Patched {changed} of {len(files)} AssemblyInfo file(s)')


def clean_release_folder(ctx: BuildContext) -> None:
    if ctx.runner.dry_run:
        logger.info(f'[dry-run] would clean {ctx.config.release_folder}')
        return
    release.clean_release_folder(ctx.config)


def clean_nuget_packages(ctx: BuildContext) -> None:
    if ctx.runner.dry_run:
        logger.info(f'[dry-run] would clean {ctx.config.nuget_output_folder}')
        return
    nuget.clean_packages(ctx.config)


def copy_to_release_folder(ctx: BuildContext) -> None:
    files = release.release_files(ctx.config)
    destination = resolve_path(ctx.config.root_dir, ctx.config.release_folder)
    if ctx.runner.dry_run:
        logger.info(f'[dry-run] would copy {len(files)} file(s) to {destination}')
        return
    release.copy_to_release_folder(files, destination)


def _publish(ctx: BuildContext, feed: nuget.Feed, api_key: str) -> None:
    count = nuget.publish_packages(ctx.config, feed, api_key, dry_run=ctx.runner.dry_run)
    logger.info(f'Published {count} package(s) to {feed.name}')


def create_build_graph() -> TargetGraph:
    """
    Create the graph of build targets.

    Returns:
        TargetGraph: Targets with their dependencies declared
    """
    graph = TargetGraph()

    graph.add('CleanAll', description='Clean every configuration')
    graph.add('CleanVerify', lambda ctx: msbuild.clean(ctx.runner, ctx.config, ctx.version, 'Verify'),
              'MSBuild Clean in Verify configuration')
    graph.add('CleanRelease', lambda ctx: msbuild.clean(ctx.runner, ctx.config, ctx.version, 'Release'),
              'MSBuild Clean in Release configuration')
    graph.add('CleanReleaseFolder', clean_release_folder, 'Empty the release folder')

    graph.add('Verify', lambda ctx: msbuild.rebuild(ctx.runner, ctx.config, ctx.version, 'Verify'),
              'Rebuild in Verify configuration (code analysis)')
    graph.add('PatchAssemblyVersions', patch_assembly_versions, 'Stamp versions into AssemblyInfo files')
    graph.add('BuildOnly', lambda ctx: msbuild.rebuild(ctx.runner, ctx.config, ctx.version, 'Release'),
              'Rebuild in Release configuration')
    graph.add('TestOnly', lambda ctx: test_runners.run_all_tests(ctx.runner, ctx.config),
              'Run xUnit, NUnit 2 and NUnit 3 tests')

    graph.add('BuildAndTestOnly', description='Build and test without verification')
    graph.add('Build', description='Verify, patch versions and build')
    graph.add('Test', description='Build and test')

    graph.add('CopyToReleaseFolder', copy_to_release_folder, 'Copy build outputs to the release folder')
    graph.add('CleanNuGetPackages', clean_nuget_packages, 'Empty the NuGet output folder')
    graph.add('NuGetPack', lambda ctx: nuget.pack(ctx.runner, ctx.config, ctx.version), 'Pack NuGet packages')

    graph.add('PublishNuGetPreReleaseOnly',
              lambda ctx: _publish(ctx, nuget.PRERELEASE_FEED, ctx.config.nuget_prerelease_key),
              'Publish packages to the pre-release feed')
    graph.add('PublishNuGetReleaseOnly',
              lambda ctx: _publish(ctx, nuget.RELEASE_FEED, ctx.config.nuget_release_key),
              'Publish packages to nuget.org')

    graph.add('CompleteBuild', description='Build, test and pack')
    graph.add('PublishNuGetPreRelease', description='Complete build and publish to the pre-release feed')
    graph.add('PublishNuGetRelease', description='Complete build and publish to nuget.org')
    graph.add('PublishNuGetAll', description='Complete build and publish everywhere')

    graph.depends('CleanAll', 'CleanVerify', 'CleanRelease')
    graph.depends('Verify', 'CleanReleaseFolder', 'CleanAll')
    graph.depends('Build', 'Verify', 'PatchAssemblyVersions', 'BuildOnly')
    graph.depends('Test', 'Build', 'TestOnly')
    graph.chain('BuildOnly', 'TestOnly', 'BuildAndTestOnly')
    graph.depends('CopyToReleaseFolder', 'Test')
    graph.depends('NuGetPack', 'CleanNuGetPackages', 'CopyToReleaseFolder')
    graph.depends('CompleteBuild', 'NuGetPack')
    graph.depends('PublishNuGetRelease', 'NuGetPack', 'PublishNuGetReleaseOnly')
    graph.depends('PublishNuGetPreRelease', 'NuGetPack', 'PublishNuGetPreReleaseOnly')
    graph.depends('PublishNuGetAll', 'PublishNuGetRelease', 'PublishNuGetPreRelease')

    return graph
