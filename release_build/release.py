"""
Release folder layout.

Collects the compiled assemblies of every shipped project, their symbols
and XML documentation, plus the NuGet content scripts, into one flat
release folder that the .nuspec files pack from.
"""

import os
import shutil
from typing import Iterable, List, Tuple

from loguru import logger

from .config import Config
from .errors import ReleaseError
from .utils import clean_dir, find_files, resolve_path

# (project folder under Src, assembly name)
SHIPPED_ASSEMBLIES: List[Tuple[str, str]] = [
    ('AutoFixture', 'Ploeh.AutoFixture'),
    ('SemanticComparison', 'Ploeh.SemanticComparison'),
    ('AutoMoq', 'Ploeh.AutoFixture.AutoMoq'),
    ('AutoRhinoMock', 'Ploeh.AutoFixture.AutoRhinoMock'),
    ('AutoFakeItEasy', 'Ploeh.AutoFixture.AutoFakeItEasy'),
    ('AutoFakeItEasy2', 'Ploeh.AutoFixture.AutoFakeItEasy2'),
    ('AutoNSubstitute', 'Ploeh.AutoFixture.AutoNSubstitute'),
    ('AutoFoq', 'Ploeh.AutoFixture.AutoFoq'),
    ('AutoFixture.xUnit.net', 'Ploeh.AutoFixture.Xunit'),
    ('AutoFixture.xUnit.net2', 'Ploeh.AutoFixture.Xunit2'),
    ('AutoFixture.NUnit2', 'Ploeh.AutoFixture.NUnit2'),
    ('AutoFixture.NUnit2', 'Ploeh.AutoFixture.NUnit2.Addins'),
    ('AutoFixture.NUnit3', 'Ploeh.AutoFixture.NUnit3'),
    ('Idioms', 'Ploeh.AutoFixture.Idioms'),
    ('Idioms.FsCheck', 'Ploeh.AutoFixture.Idioms.FsCheck'),
]

ASSEMBLY_EXTENSIONS = ('dll', 'pdb', 'XML')
NUGET_CONTENT_PATTERNS = ['NuGet/*.ps1', 'NuGet/*.txt', 'NuGet/*.pp']


def build_output_files(configuration: str = 'Release') -> List[str]:
    """Relative paths of every shipped assembly, symbol and documentation file."""
    files = []
    for project, assembly in SHIPPED_ASSEMBLIES:
        for extension in ASSEMBLY_EXTENSIONS:
            files.append(f'Src/{project}/bin/{configuration}/{assembly}.{extension}')
    return files


def release_files(config: Config) -> List[str]:
    """
    Absolute paths of every file that goes into the release folder.

    Build outputs always come from the Release configuration, followed by
    the NUnit 2 core interfaces the NUnit 2 add-in needs and the NuGet
    content scripts.
    """
    files = [resolve_path(config.root_dir, path) for path in build_output_files('Release')]
    files.append(resolve_path(config.root_dir, os.path.join(config.nunit_tools_folder, 'lib', 'nunit.core.interfaces.dll')))
    files.extend(find_files(config.root_dir, NUGET_CONTENT_PATTERNS))
    return files


def copy_to_release_folder(files: Iterable[str], release_folder: str) -> int:
    """
    Copy files flat into the release folder.

    Raises:
        ReleaseError: If any file is missing (nothing is copied in that case)
            or a file cannot be copied
    """
    files = list(files)
    missing = [path for path in files if not os.path.isfile(path)]
    if missing:
        for path in missing:
            logger.error(f'Missing build artifact: {path}')
        raise ReleaseError(f'{len(missing)} build artifact(s) missing, cannot create release folder')

    try:
        os.makedirs(release_folder, exist_ok=True)
        for path in files:
            shutil.copy2(path, release_folder)
            logger.debug(f'Copied {os.path.basename(path)}')
    except OSError as e:
        raise ReleaseError(f'Cannot copy build artifacts to {release_folder}: {e}') from e

    logger.info(f'Copied {len(files)} file(s) to {release_folder}')
    return len(files)


def clean_release_folder(config: Config) -> str:
    folder = resolve_path(config.root_dir, config.release_folder)
    try:
        clean_dir(folder)
    except OSError as e:
        raise ReleaseError(f'Cannot clean release folder {folder}: {e}') from e
    logger.info(f'Cleaned {folder}')
    return folder
