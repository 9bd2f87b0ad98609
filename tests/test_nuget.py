"""
Tests for nuget.py module.

Tests packing, reading package metadata, routing packages to feeds and
uploading them over HTTP.
"""

import os
import zipfile

import pytest
import requests
from unittest.mock import MagicMock, patch

from release_build.errors import BuildError, PublishError
from release_build.nuget import (
    PRERELEASE_FEED,
    RELEASE_FEED,
    Feed,
    pack,
    plan_publish,
    publish_package,
    publish_packages,
    read_package_metadata,
)

TEST_FEED = Feed(name='Test', api_url='https://feed.test/api/v2/package',
                 symbol_url='https://feed.test/symbols/api/v2/package')


class TestFeeds:
    """Test the well-known feeds."""

    def test_release_symbols_go_to_symbol_source(self):
        assert RELEASE_FEED.api_url == 'https://www.nuget.org/api/v2/package'
        assert RELEASE_FEED.symbol_url == 'https://nuget.smbsrc.net/'

    def test_prerelease_feed(self):
        assert 'myget.org' in PRERELEASE_FEED.api_url
        assert 'symbols' in PRERELEASE_FEED.symbol_url


class TestPack:
    """Test nuget pack invocation."""

    def test_pack(self, config, resolved_version, dry_runner, file_factory):
        file_factory(config.root_dir, 'NuGet/AutoFixture.nuspec')
        file_factory(config.root_dir, 'NuGet/AutoFixture.AutoMoq.nuspec')

        assert pack(dry_runner, config, resolved_version) == 2

        command = dry_runner.history[0]
        assert command[:2] == ['nuget', 'pack']
        assert command[command.index('-Version') + 1] == '3.50.3-pre0288'
        assert command[command.index('-BasePath') + 1] == os.path.join(config.root_dir, 'Release')
        assert command[command.index('-OutputDirectory') + 1] == os.path.join(config.root_dir, 'NuGetPackages')
        assert '-Symbols' in command

    def test_dry_run_creates_no_output_folder(self, config, resolved_version, dry_runner, file_factory):
        file_factory(config.root_dir, 'NuGet/AutoFixture.nuspec')
        pack(dry_runner, config, resolved_version)
        assert not os.path.exists(os.path.join(config.root_dir, 'NuGetPackages'))

    def test_nothing_to_pack(self, config, resolved_version, dry_runner):
        with pytest.raises(BuildError, match='No .nuspec'):
            pack(dry_runner, config, resolved_version)


class TestReadPackageMetadata:
    """Test reading the .nuspec inside a package."""

    def test_namespaced_nuspec(self, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.3-pre0288.nupkg', 'AutoFixture', '3.50.3-pre0288')
        meta = read_package_metadata(path)
        assert meta.id == 'AutoFixture'
        assert meta.version == '3.50.3-pre0288'

    def test_plain_nuspec(self, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2', namespaced=False)
        assert read_package_metadata(path).version == '3.50.2'

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / 'broken.nupkg'
        path.write_bytes(b'not a zip')
        with pytest.raises(PublishError, match='Invalid package'):
            read_package_metadata(str(path))

    def test_no_nuspec(self, tmp_path):
        path = str(tmp_path / 'empty.nupkg')
        with zipfile.ZipFile(path, 'w') as archive:
            archive.writestr('lib/net45/a.dll', 'x')
        with pytest.raises(PublishError, match='No .nuspec'):
            read_package_metadata(path)


class TestPlanPublish:
    """Test routing packages to feeds."""

    def test_symbols_go_to_symbol_server(self, tmp_path, nupkg_factory):
        nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        nupkg_factory(tmp_path, 'AutoFixture.3.50.2.symbols.nupkg', 'AutoFixture', '3.50.2')

        items = {os.path.basename(item.path): item for item in plan_publish(str(tmp_path), TEST_FEED)}

        assert items['AutoFixture.3.50.2.nupkg'].feed_url == TEST_FEED.api_url
        assert items['AutoFixture.3.50.2.nupkg'].version == '3.50.2'
        assert items['AutoFixture.3.50.2.symbols.nupkg'].feed_url == TEST_FEED.symbol_url
        assert items['AutoFixture.3.50.2.symbols.nupkg'].version == '3.50.2.symbols'

    def test_empty_folder(self, tmp_path):
        assert plan_publish(str(tmp_path), TEST_FEED) == []


class TestPublishPackage:
    """Test uploading a single package."""

    @patch('requests.put')
    def test_publish(self, mock_put, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        mock_put.return_value = MagicMock(status_code=201)

        publish_package(path, TEST_FEED.api_url, 'api-key', timeout=30)

        args, kwargs = mock_put.call_args
        assert args[0] == TEST_FEED.api_url
        assert kwargs['headers']['X-NuGet-ApiKey'] == 'api-key'
        assert kwargs['files']['package'][0] == 'AutoFixture.3.50.2.nupkg'
        assert kwargs['timeout'] == 30

    @patch('requests.put')
    def test_rejected(self, mock_put, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        response = MagicMock(status_code=409, reason='Conflict')
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
        mock_put.return_value = response

        with pytest.raises(PublishError, match='409 Conflict'):
            publish_package(path, TEST_FEED.api_url, 'api-key')

    @patch('requests.put', side_effect=requests.exceptions.ConnectionError('refused'))
    def test_connection_error(self, mock_put, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        with pytest.raises(PublishError, match='Cannot connect'):
            publish_package(path, TEST_FEED.api_url, 'api-key')

    @patch('requests.put')
    def test_unreadable_package(self, mock_put, tmp_path):
        with pytest.raises(PublishError, match='Cannot read package'):
            publish_package(str(tmp_path / 'missing.nupkg'), TEST_FEED.api_url, 'api-key')
        mock_put.assert_not_called()

    @patch('requests.put', side_effect=requests.exceptions.Timeout())
    def test_timeout(self, mock_put, tmp_path, nupkg_factory):
        path = nupkg_factory(tmp_path, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        with pytest.raises(PublishError, match='Timed out'):
            publish_package(path, TEST_FEED.api_url, 'api-key')


class TestPublishPackages:
    """Test publishing the whole package folder."""

    @patch('release_build.nuget.publish_package')
    def test_publish_all(self, mock_publish, config, nupkg_factory):
        folder = os.path.join(config.root_dir, 'NuGetPackages')
        nupkg_factory(folder, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')
        nupkg_factory(folder, 'AutoFixture.3.50.2.symbols.nupkg', 'AutoFixture', '3.50.2')

        assert publish_packages(config, TEST_FEED, 'api-key') == 2

        urls = sorted(call[0][1] for call in mock_publish.call_args_list)
        assert urls == sorted([TEST_FEED.api_url, TEST_FEED.symbol_url])
        assert all(call[1]['timeout'] == 300 for call in mock_publish.call_args_list)

    @patch('release_build.nuget.publish_package')
    def test_missing_api_key(self, mock_publish, config):
        with pytest.raises(PublishError, match='No API key'):
            publish_packages(config, TEST_FEED, '')
        mock_publish.assert_not_called()

    @patch('release_build.nuget.publish_package')
    def test_dry_run(self, mock_publish, config, nupkg_factory):
        folder = os.path.join(config.root_dir, 'NuGetPackages')
        nupkg_factory(folder, 'AutoFixture.3.50.2.nupkg', 'AutoFixture', '3.50.2')

        assert publish_packages(config, TEST_FEED, 'api-key', dry_run=True) == 1
        mock_publish.assert_not_called()

    @patch('release_build.nuget.publish_package')
    def test_nothing_to_publish(self, mock_publish, config):
        assert publish_packages(config, TEST_FEED, 'api-key') == 0
        mock_publish.assert_not_called()
