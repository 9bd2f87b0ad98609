"""
Pytest configuration and shared fixtures for test suite.

Provides a real Config rooted in a temporary repository layout, a
dry-run tool runner, resolved versions, and helpers for building fake
.nupkg files.
"""

import os
import zipfile

import pytest

from release_build.config import Config
from release_build.tools import ToolRunner
from release_build.versioning import ResolvedVersion


def make_config(root_dir, **overrides) -> Config:
    """Create a Config with sensible defaults rooted at root_dir."""
    values = dict(
        build_version='git',
        build_file_version='',
        build_nuget_version='',
        build_number=0,
        configuration='Release',
        parallelize_tests=False,
        max_parallel_threads=0,
        nuget_prerelease_key='',
        nuget_release_key='',
        publish_timeout=300,
        root_dir=str(root_dir),
        solution_glob='Src/AutoFixture.AllProjects.sln',
        sign_key_path='Src/AutoFixture.snk',
        release_folder='Release',
        nuget_output_folder='NuGetPackages',
        nunit_tools_folder='Packages/NUnit.Runners.2.6.2/tools',
        git_path='',
        msbuild_path='',
        nuget_path='',
        xunit_path='',
        nunit2_path='',
        nunit3_path='',
        dry_run=False,
        log_level='INFO',
    )
    values.update(overrides)
    return Config(**values)


def touch(root, relative_path, content=b''):
    """Create a file (and its folders) below root and return its path."""
    path = os.path.join(str(root), *relative_path.split('/'))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)
    return path


def create_nupkg(folder, file_name, package_id, version, namespaced=True):
    """
    Write a minimal .nupkg containing only a .nuspec.

    Returns:
        str: Path to the package
    """
    xmlns = ' xmlns="http://schemas.microsoft.com/packaging/2011/08/nuspec.xsd"' if namespaced else ''
    nuspec = (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<package{xmlns}><metadata>'
        f'<id>{package_id}</id><version>{version}</version>'
        '<authors>AutoFixture</authors>'
        '</metadata></package>'
    )
    os.makedirs(str(folder), exist_ok=True)
    path = os.path.join(str(folder), file_name)
    with zipfile.ZipFile(path, 'w') as archive:
        archive.writestr(f'{package_id}.nuspec', nuspec)
        archive.writestr('lib/net45/placeholder.txt', 'x')
    return path


@pytest.fixture
def repo_root(tmp_path):
    """A repository root with the solution and sign key present."""
    touch(tmp_path, 'Src/AutoFixture.AllProjects.sln', b'Microsoft Visual Studio Solution File')
    touch(tmp_path, 'Src/AutoFixture.snk', b'key')
    return tmp_path


@pytest.fixture
def config(repo_root):
    """A Config rooted at the temporary repository."""
    return make_config(repo_root, msbuild_path='msbuild', nuget_path='nuget')


@pytest.fixture
def dry_runner():
    """A tool runner that records commands without executing them."""
    return ToolRunner(dry_run=True)


@pytest.fixture
def resolved_version():
    """Versions as resolved from v3.50.2-288-g64fd5c5b with build number 7."""
    return ResolvedVersion(
        assembly_version='3.50.2.0',
        file_version='3.50.2.7',
        package_version='3.50.3-pre0288',
    )


@pytest.fixture
def config_factory():
    """Return the make_config helper for tests that need custom settings."""
    return make_config


@pytest.fixture
def file_factory():
    """Return the touch helper for creating files below a root."""
    return touch


@pytest.fixture
def nupkg_factory():
    """Return the create_nupkg helper."""
    return create_nupkg
