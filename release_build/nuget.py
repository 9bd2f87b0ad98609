"""
NuGet packaging and publishing.

Packs every .nuspec from the release folder and pushes the resulting
packages to a NuGet v2 feed. Symbol packages (*.symbols.nupkg) go to the
feed's symbol server.
"""

import os
import xml.etree.ElementTree
import zipfile
from dataclasses import dataclass
from typing import List

import requests
from loguru import logger

from .config import Config
from .errors import BuildError, PublishError
from .tools import ToolRunner
from .utils import clean_dir, find_files, resolve_path
from .versioning import ResolvedVersion

USER_AGENT = 'release-build'
SYMBOLS_SUFFIX = 'symbols.nupkg'


@dataclass(frozen=True)
class Feed:
    """A package feed and its symbol server."""

    name: str
    api_url: str
    symbol_url: str


PRERELEASE_FEED = Feed(
    name='MyGet',
    api_url='https://www.myget.org/F/autofixture/api/v2/package',
    symbol_url='https://www.myget.org/F/autofixture/symbols/api/v2/package',
)

RELEASE_FEED = Feed(
    name='NuGet',
    api_url='https://www.nuget.org/api/v2/package',
    symbol_url='https://nuget.smbsrc.net/',
)


@dataclass(frozen=True)
class PackageMetadata:
    id: str
    version: str


@dataclass(frozen=True)
class PublishItem:
    """One package upload: what, where, and the version label used in logs."""

    package_id: str
    version: str
    feed_url: str
    path: str


def nuspec_files(config: Config) -> List[str]:
    return find_files(config.root_dir, 'NuGet/*.nuspec')


def pack_command(nuget_path: str, nuspec: str, version: str, base_path: str, output_dir: str) -> List[str]:
    return [
        nuget_path, 'pack', nuspec,
        '-Version', version,
        '-BasePath', base_path,
        '-OutputDirectory', output_dir,
        '-Symbols',
        '-NoPackageAnalysis',
    ]


def clean_packages(config: Config) -> str:
    folder = resolve_path(config.root_dir, config.nuget_output_folder)
    try:
        clean_dir(folder)
    except OSError as e:
        raise BuildError(f'Cannot clean NuGet output folder {folder}: {e}') from e
    logger.info(f'Cleaned {folder}')
    return folder


def pack(runner: ToolRunner, config: Config, version: ResolvedVersion) -> int:
    """
    Pack every NuGet/*.nuspec with the resolved package version.

    Returns:
        int: Number of .nuspec files packed

    Raises:
        BuildError: If there is nothing to pack or the output folder cannot be created
        ToolError: If nuget pack fails
    """
    specs = nuspec_files(config)
    if not specs:
        raise BuildError(f'No .nuspec files found in {os.path.join(config.root_dir, "NuGet")}')

    nuget_path = runner.locate('nuget', config.nuget_path)
    base_path = resolve_path(config.root_dir, config.release_folder)
    output_dir = resolve_path(config.root_dir, config.nuget_output_folder)
    if not runner.dry_run:
        try:
            os.makedirs(output_dir, exist_ok=True)
        except OSError as e:
            raise BuildError(f'Cannot create NuGet output folder {output_dir}: {e}') from e

    for spec in specs:
        logger.info(f'📦 Packing {os.path.basename(spec)} {version.package_version}')
        runner.run(pack_command(nuget_path, spec, version.package_version, base_path, output_dir),
                   cwd=config.root_dir)
    return len(specs)


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def read_package_metadata(path: str) -> PackageMetadata:
    """
    Read the id and version from the .nuspec stored inside a .nupkg.

    Raises:
        PublishError: If the package is not a valid NuGet package
    """
    try:
        with zipfile.ZipFile(path) as archive:
            names = [n for n in archive.namelist() if n.endswith('.nuspec') and '/' not in n]
            if not names:
                raise PublishError(f'No .nuspec found in package {path}')
            root = xml.etree.ElementTree.fromstring(archive.read(names[0]))
    except (OSError, zipfile.BadZipFile, xml.etree.ElementTree.ParseError) as e:
        raise PublishError(f'Invalid package {path}: {e}') from e

    values = {}
    for element in root.iter():
        name = _local_name(element.tag)
        if name in ('id', 'version') and name not in values and element.text:
            values[name] = element.text.strip()

    if 'id' not in values or 'version' not in values:
        raise PublishError(f'Package {path} has no id or version in its .nuspec')
    return PackageMetadata(id=values['id'], version=values['version'])


def plan_publish(package_folder: str, feed: Feed) -> List[PublishItem]:
    """
    Work out which feed each package in the folder goes to.

    Symbol packages go to the symbol server and are labelled "<version>.symbols".
    """
    items = []
    for path in find_files(package_folder, '*.nupkg'):
        meta = read_package_metadata(path)
        is_symbols = path.endswith(SYMBOLS_SUFFIX)
        items.append(PublishItem(
            package_id=meta.id,
            version=f'{meta.version}.symbols' if is_symbols else meta.version,
            feed_url=feed.symbol_url if is_symbols else feed.api_url,
            path=path,
        ))
    return items


def publish_package(path: str, feed_url: str, api_key: str, timeout: int = 300) -> None:
    """
    Push one package to a NuGet v2 feed.

    Raises:
        PublishError: On connection failure, an error response or an unreadable package
    """
    headers = {
        'X-NuGet-ApiKey': api_key,
        'User-Agent': USER_AGENT,
    }
    try:
        with open(path, 'rb') as f:
            response = requests.put(
                feed_url,
                headers=headers,
                files={'package': (os.path.basename(path), f, 'application/octet-stream')},
                timeout=timeout,
            )
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise PublishError(f'Timed out publishing {os.path.basename(path)} to {feed_url}') from e
    except requests.exceptions.ConnectionError as e:
        raise PublishError(f'Cannot connect to {feed_url}: {e}') from e
    except requests.exceptions.HTTPError as e:
        status = getattr(e.response, 'status_code', 'unknown')
        reason = getattr(e.response, 'reason', '') or ''
        raise PublishError(f'Feed {feed_url} rejected {os.path.basename(path)}: {status} {reason}'.strip()) from e
    except requests.exceptions.RequestException as e:
        raise PublishError(f'Publishing {os.path.basename(path)} failed: {e}') from e
    except OSError as e:
        raise PublishError(f'Cannot read package {path}: {e}') from e


def publish_packages(config: Config, feed: Feed, api_key: str, dry_run: bool = False) -> int:
    """
    Publish every package in the NuGet output folder to a feed.

    Returns:
        int: Number of packages published

    Raises:
        PublishError: If the API key is missing or an upload fails
    """
    if not api_key:
        raise PublishError(f'No API key supplied for the {feed.name} feed')

    folder = resolve_path(config.root_dir, config.nuget_output_folder)
    items = plan_publish(folder, feed)
    if not items:
        logger.warning(f'No packages found in {folder}, nothing to publish')
        return 0

    for item in items:
        if dry_run:
            logger.info(f'[dry-run] publish {item.package_id} {item.version} to {item.feed_url}')
            continue
        logger.info(f'🚀 Publishing {item.package_id} {item.version} to {item.feed_url}')
        publish_package(item.path, item.feed_url, api_key, timeout=config.publish_timeout)

    return len(items)
