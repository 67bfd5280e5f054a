"""
Tests for installed package scanning.
"""

import json

from nixup.adapters.mock import MockPackageSource
from nixup.core.models.config import NixupConfig
from nixup.core.models.package import InstalledPackage
from nixup.core.services.exclusions import ExclusionFilter
from nixup.core.services.installed_scan import InstalledScanner, load_installed, scan_paths
from nixup.core.services.store_path import StorePathParser


class TestScanPaths:
    """Tests for turning store paths into the installed list."""

    def test_filters_and_dedupes(self, make_store_path):
        paths = [
            make_store_path("systemd-258.1"),
            make_store_path("curl-8.16.0-bin"),
            make_store_path("curl-8.16.0"),
            make_store_path("glibc-2.40-66"),
            make_store_path("jq-1.7.1"),
            make_store_path("source"),
            make_store_path("nixos-system-host-25.05"),
            "",
        ]
        result = scan_paths(paths, StorePathParser(), ExclusionFilter())

        assert result == [
            InstalledPackage(name="curl", version="8.16.0"),
            InstalledPackage(name="nixos-system-host", version="25.05"),
            InstalledPackage(name="systemd", version="258.1"),
        ]

    def test_min_name_length(self, make_store_path):
        paths = [make_store_path("jq-1.7.1")]
        result = scan_paths(paths, StorePathParser(), ExclusionFilter(), min_name_length=2)
        assert result == [InstalledPackage(name="jq", version="1.7.1")]

    def test_first_sorted_path_wins(self, make_store_path):
        """Two versions of one name: the lexically first path is kept."""
        paths = [
            make_store_path("python3-3.12.8", hash_="b" * 32),
            make_store_path("python3-3.11.10", hash_="a" * 32),
        ]
        result = scan_paths(paths, StorePathParser(), ExclusionFilter())
        assert result == [InstalledPackage(name="python3", version="3.11.10")]

    def test_empty_input(self):
        assert scan_paths([], StorePathParser(), ExclusionFilter()) == []


class TestInstalledScanner:
    """Tests for the cached installed-package scan."""

    def test_scan_writes_cache(self, config: NixupConfig, mock_source: MockPackageSource):
        packages = InstalledScanner(config, mock_source).get_installed()

        assert [p.name for p in packages] == ["curl", "systemd"]
        assert json.loads(config.installed_cache.read_text()) == [
            {"name": "curl", "version": "8.16.0"},
            {"name": "systemd", "version": "258.1"},
        ]
        assert mock_source.call_log == [("closure", "/run/test-system")]

    def test_cache_reused(self, config: NixupConfig, mock_source: MockPackageSource):
        scanner = InstalledScanner(config, mock_source)
        scanner.get_installed()
        scanner.get_installed()
        assert mock_source.calls("closure") == 1

    def test_force_rescan(self, config: NixupConfig, mock_source: MockPackageSource):
        scanner = InstalledScanner(config, mock_source)
        scanner.get_installed()
        scanner.get_installed(force_rescan=True)
        assert mock_source.calls("closure") == 2

    def test_failure_without_cache(self, config: NixupConfig, mock_source: MockPackageSource):
        mock_source.set_failure("closure", "no such path")
        assert InstalledScanner(config, mock_source).get_installed() == []
        assert not config.installed_cache.exists()

    def test_failure_falls_back_to_cache(self, config: NixupConfig, mock_source: MockPackageSource):
        scanner = InstalledScanner(config, mock_source)
        first = scanner.get_installed()

        mock_source.set_failure("closure")
        assert scanner.get_installed(force_rescan=True) == first

    def test_respects_config_filters(self, cache_dir, mock_source: MockPackageSource):
        config = NixupConfig(cache_dir=cache_dir, exclude_patterns=("curl",))
        names = [p.name for p in InstalledScanner(config, mock_source).get_installed()]
        assert names == ["glibc-2.40", "systemd"]


class TestLoadInstalled:
    """Tests for reading the installed cache."""

    def test_missing(self, tmp_path):
        assert load_installed(tmp_path / "installed.json") is None

    def test_invalid_shape(self, tmp_path):
        path = tmp_path / "installed.json"
        path.write_text(json.dumps({"curl": "8.16.0"}))
        assert load_installed(path) is None
